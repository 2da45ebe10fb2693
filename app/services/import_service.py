"""
app/services/import_service.py

Service layer for the tabular import workflow.

The synchronous chain runs parse -> profile -> resolve mapping -> transform
-> validate -> summarize in one pass. The async entry points only await the
upload read and, for workbooks, the binary decode in a worker thread; the
rest of the chain then runs to completion. A finished dataset replaces any
previous dataset with the same name in the registry.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache, partial
from typing import Mapping

from fastapi import UploadFile

from app.config import get_import_settings
from app.domain.dataset import Dataset, StaticRecordSource
from app.domain.fields import DERIVED_FIELDS
from app.domain.imports import ImportPreview, ImportResult, ParsedTable
from app.domain.registry import DatasetRegistry
from app.mappers.schema_mapper import MODE_AUTO_DETECT, MODE_CONFIRM, SchemaMapper
from app.parsers.tabular_parser import FORMAT_DELIMITED, FORMAT_WORKBOOK, TabularParser, detect_format
from app.profiling.schema_profiler import SchemaProfiler
from app.services.aggregation_service import AggregationService
from app.services.export_service import ExportService
from app.transformers.record_transformer import RecordTransformer
from app.validators.data_validator import DataValidator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UploadTooLargeError(ValueError):
    """
    Raised when an uploaded file exceeds the configured byte limit.
    """

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Upload is {size} bytes; the limit is {limit} bytes.")
        self.size = size
        self.limit = limit


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ImportService:
    """
    Coordinates parsing, mapping, transformation, validation and aggregation.
    """

    def __init__(
        self,
        *,
        registry: DatasetRegistry | None = None,
        parser: TabularParser | None = None,
        profiler: SchemaProfiler | None = None,
        mapper: SchemaMapper | None = None,
        transformer: RecordTransformer | None = None,
        validator: DataValidator | None = None,
        aggregator: AggregationService | None = None,
        exporter: ExportService | None = None,
        max_upload_bytes: int | None = None,
    ) -> None:
        settings = get_import_settings()
        self._registry = registry if registry is not None else DatasetRegistry()
        self._parser = parser or TabularParser(delimiter=settings.default_delimiter)
        self._profiler = profiler or SchemaProfiler()
        self._mapper = mapper or SchemaMapper()
        self._transformer = transformer or RecordTransformer()
        self._validator = validator or DataValidator()
        self._aggregator = aggregator or AggregationService()
        self._exporter = exporter or ExportService()
        self._max_upload_bytes = max_upload_bytes if max_upload_bytes is not None else settings.max_upload_bytes

    @property
    def registry(self) -> DatasetRegistry:
        return self._registry

    @property
    def aggregator(self) -> AggregationService:
        return self._aggregator

    @property
    def exporter(self) -> ExportService:
        return self._exporter

    # ------------------------------------------------------------------
    # Synchronous pipeline
    # ------------------------------------------------------------------

    def parse(
        self,
        content: bytes | str,
        *,
        filename: str = "",
        sheet_name: str | None = None,
    ) -> ParsedTable:
        """
        Parse file content, deriving the format from *filename* when given.
        """

        if filename:
            format_hint, delimiter = detect_format(filename)
        else:
            format_hint, delimiter = FORMAT_DELIMITED, None
        return self._parser.parse(
            content,
            format_hint=format_hint,
            delimiter=delimiter,
            sheet_name=sheet_name,
            source_description=filename,
        )

    def preview(self, table: ParsedTable) -> ImportPreview:
        """
        Profile the table and suggest a mapping at the auto-detect threshold.

        Missing required fields are reported, not raised.
        """

        profiles = self._profiler.profile(table.headers, table.rows)
        mapping = self._mapper.resolve_mapping(profiles, mode=MODE_AUTO_DETECT, require=False)
        return ImportPreview(
            headers=table.headers,
            profiles=profiles,
            suggested_mapping=mapping,
            missing_required=mapping.missing_required(),
            diagnostics=list(table.diagnostics),
            row_count=len(table.rows),
            sheet_names=table.sheet_names,
        )

    def build_dataset(
        self,
        table: ParsedTable,
        *,
        dataset_name: str,
        overrides: Mapping[str, str | None] | None = None,
        mode: str = MODE_CONFIRM,
        template_name: str | None = None,
        save_template_as: str | None = None,
        register: bool = True,
    ) -> ImportResult:
        """
        Run the full chain on a parsed table and (by default) register the dataset.

        Raises :class:`SchemaMappingError` / :class:`MissingRequiredFieldError`
        before any record is transformed when the mapping is unusable.
        """

        profiles = self._profiler.profile(table.headers, table.rows)
        template = self._registry.get_template(template_name) if template_name else None
        mapping = self._mapper.resolve_mapping(
            profiles,
            overrides=overrides,
            template=template,
            mode=mode,
            require=True,
        )

        transformed = self._transformer.transform(table, mapping)
        validated_headers = [name for name in transformed.headers if name not in DERIVED_FIELDS]
        report = self._validator.validate(
            transformed.records,
            validated_headers,
            diagnostics=transformed.diagnostics,
            row_numbers=transformed.row_numbers,
        )

        records = tuple(transformed.records)
        summary = self._aggregator.summarize(StaticRecordSource(records=records))
        dataset = Dataset(
            name=dataset_name,
            headers=transformed.headers,
            records=records,
            summary=summary,
            uploaded_at=datetime.now(timezone.utc),
            source_description=table.source_description,
        )

        if register:
            self._registry.replace(dataset)
        if save_template_as:
            self._registry.save_template(save_template_as, mapping)

        logger.info(
            "Import complete dataset=%r records=%d skipped=%d dropped=%d quality=%d",
            dataset_name,
            dataset.record_count,
            table.skipped_rows,
            transformed.dropped_rows,
            report.quality.overall,
        )
        return ImportResult(
            dataset=dataset,
            report=report,
            mapping=mapping,
            diagnostics=[*table.diagnostics, *transformed.diagnostics],
            rows_skipped=table.skipped_rows,
            rows_dropped=transformed.dropped_rows,
        )

    def export_dataset(self, name: str) -> str:
        dataset = self._registry.get(name)
        return self._exporter.to_delimited(dataset, headers=dataset.headers)

    # ------------------------------------------------------------------
    # Async entry points
    # ------------------------------------------------------------------

    async def preview_upload(self, upload: UploadFile, *, sheet_name: str | None = None) -> ImportPreview:
        table = await self._parse_upload(upload, sheet_name=sheet_name)
        return self.preview(table)

    async def import_upload(
        self,
        upload: UploadFile,
        *,
        dataset_name: str | None = None,
        sheet_name: str | None = None,
        overrides: Mapping[str, str | None] | None = None,
        mode: str = MODE_CONFIRM,
        template_name: str | None = None,
        save_template_as: str | None = None,
    ) -> ImportResult:
        table = await self._parse_upload(upload, sheet_name=sheet_name)
        return self.build_dataset(
            table,
            dataset_name=dataset_name or upload.filename or "upload",
            overrides=overrides,
            mode=mode,
            template_name=template_name,
            save_template_as=save_template_as,
        )

    async def _parse_upload(self, upload: UploadFile, *, sheet_name: str | None) -> ParsedTable:
        filename = upload.filename or ""
        format_hint, _ = detect_format(filename)
        content = await upload.read()
        if len(content) > self._max_upload_bytes:
            raise UploadTooLargeError(len(content), self._max_upload_bytes)

        if format_hint == FORMAT_WORKBOOK:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(
                None,
                partial(self.parse, content, filename=filename, sheet_name=sheet_name),
            )
        return self.parse(content, filename=filename, sheet_name=sheet_name)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_import_service() -> ImportService:
    """
    Build and cache the process-wide import service and its registry.
    """
    return ImportService()
