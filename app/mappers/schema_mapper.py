"""
app/mappers/schema_mapper.py

Mapping resolution from profiled source columns to semantic fields.
"""

from __future__ import annotations

import logging
from typing import Final, Mapping, Sequence

from app.config import get_import_settings
from app.domain.fields import REQUIRED_FIELDS, SEMANTIC_FIELDS, normalize_header
from app.domain.imports import ColumnProfile, FieldMapping
from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError

logger = logging.getLogger(__name__)

MODE_CONFIRM: Final[str] = "confirm"
MODE_AUTO_DETECT: Final[str] = "auto_detect"
MAPPING_MODES: tuple[str, ...] = (MODE_CONFIRM, MODE_AUTO_DETECT)

STRATEGY_OVERRIDE: Final[str] = "override"
STRATEGY_TEMPLATE: Final[str] = "template"
STRATEGY_AUTOMATIC: Final[str] = "automatic"


class SchemaMapper:
    """
    Resolves column profiles plus user choices into a :class:`FieldMapping`.

    Precedence is user overrides, then saved template entries, then automatic
    suggestions at or above the mode's confidence threshold. Each semantic
    field is held by at most one source column.
    """

    def __init__(
        self,
        *,
        validator: MappingValidator | None = None,
        confirm_threshold: float | None = None,
        auto_detect_threshold: float | None = None,
    ) -> None:
        settings = get_import_settings()
        self._validator = validator or MappingValidator(
            required_fields=REQUIRED_FIELDS,
            semantic_fields=SEMANTIC_FIELDS,
        )
        self._thresholds = {
            MODE_CONFIRM: confirm_threshold if confirm_threshold is not None else settings.confirm_threshold,
            MODE_AUTO_DETECT: (
                auto_detect_threshold if auto_detect_threshold is not None else settings.auto_detect_threshold
            ),
        }

    def threshold_for(self, mode: str) -> float:
        try:
            return self._thresholds[mode]
        except KeyError:
            raise ValueError(f"Unknown mapping mode {mode!r}; expected one of {MAPPING_MODES}.") from None

    def resolve_mapping(
        self,
        profiles: Sequence[ColumnProfile],
        *,
        overrides: Mapping[str, str | None] | None = None,
        template: FieldMapping | None = None,
        mode: str = MODE_CONFIRM,
        require: bool = True,
    ) -> FieldMapping:
        """
        Resolve the final mapping.

        ``overrides`` maps source column to semantic field; an empty or None
        field leaves that column unmapped. With ``require`` the required
        fields must all be mapped or :class:`MissingRequiredFieldError` is raised.
        """

        threshold = self.threshold_for(mode)
        source_headers = tuple(profile.name for profile in profiles)
        if not source_headers:
            raise SchemaMappingError(
                message="File headers are empty; cannot resolve a field mapping.",
                errors=[MappingErrorDetail(code="empty_headers", message="No headers were provided.")],
            )

        header_lookup = self._header_lookup(source_headers)
        field_to_source: dict[str, str] = {}
        strategies: dict[str, str] = {}
        decided: set[str] = set()
        mapping_errors: list[MappingErrorDetail] = []

        for raw_source, raw_field in (overrides or {}).items():
            source_column = self._match_source(raw_source, source_headers, header_lookup)
            if source_column is None:
                mapping_errors.append(
                    MappingErrorDetail(
                        code="override_source_not_found",
                        message="Override points to a source column not present in the file headers.",
                        semantic_field=raw_field or None,
                        source_column=raw_source,
                        context={"source_headers": list(source_headers)},
                    )
                )
                continue

            semantic_field = (raw_field or "").strip()
            self._release_source(source_column, field_to_source)
            decided.add(source_column)
            if not semantic_field:
                strategies[source_column] = STRATEGY_OVERRIDE
                continue
            if semantic_field not in SEMANTIC_FIELDS:
                mapping_errors.append(
                    MappingErrorDetail(
                        code="invalid_override_field",
                        message="Override contains an unknown semantic field.",
                        semantic_field=semantic_field,
                        source_column=source_column,
                        context={"semantic_fields": list(SEMANTIC_FIELDS)},
                    )
                )
                continue

            previous = field_to_source.get(semantic_field)
            if previous is not None and previous != source_column:
                logger.info(
                    "Override remaps %r from %r to %r",
                    semantic_field,
                    previous,
                    source_column,
                )
            field_to_source[semantic_field] = source_column
            strategies[source_column] = STRATEGY_OVERRIDE

        if template is not None:
            for source_column, semantic_field in template.source_to_field.items():
                if source_column not in source_headers or source_column in decided:
                    continue
                if semantic_field in field_to_source or semantic_field not in SEMANTIC_FIELDS:
                    continue
                field_to_source[semantic_field] = source_column
                strategies[source_column] = STRATEGY_TEMPLATE
                decided.add(source_column)

        candidates = sorted(
            (
                profile
                for profile in self._first_occurrences(profiles)
                if profile.suggested_field is not None and profile.confidence >= threshold
            ),
            key=lambda profile: (-profile.confidence, profile.position),
        )
        for profile in candidates:
            if profile.name in decided or profile.suggested_field in field_to_source:
                continue
            field_to_source[profile.suggested_field] = profile.name
            strategies[profile.name] = STRATEGY_AUTOMATIC
            decided.add(profile.name)

        source_to_field = {
            source: semantic_field
            for semantic_field, source in field_to_source.items()
        }
        ordered = {header: source_to_field[header] for header in source_headers if header in source_to_field}

        self._validator.validate(
            mapping=ordered,
            source_headers=source_headers,
            pre_errors=mapping_errors,
            require_fields=require,
        )

        confidences = {profile.name: profile.confidence for profile in self._first_occurrences(profiles)}
        resolved = FieldMapping(
            source_to_field=ordered,
            source_headers=source_headers,
            strategies={header: strategies[header] for header in source_headers if header in strategies},
            confidences={header: confidences[header] for header in ordered},
        )
        logger.info(
            "Mapping resolved mode=%s mapped=%d missing_required=%s",
            mode,
            len(ordered),
            resolved.missing_required(),
        )
        return resolved

    @staticmethod
    def _header_lookup(source_headers: Sequence[str]) -> dict[str, str]:
        lookup: dict[str, str] = {}
        for header in source_headers:
            key = normalize_header(header)
            if key and key not in lookup:
                lookup[key] = header
        return lookup

    @staticmethod
    def _match_source(
        raw_source: str,
        source_headers: Sequence[str],
        header_lookup: Mapping[str, str],
    ) -> str | None:
        if raw_source in source_headers:
            return raw_source
        return header_lookup.get(normalize_header(raw_source or ""))

    @staticmethod
    def _release_source(source_column: str, field_to_source: dict[str, str]) -> None:
        for semantic_field, holder in list(field_to_source.items()):
            if holder == source_column:
                del field_to_source[semantic_field]

    @staticmethod
    def _first_occurrences(profiles: Sequence[ColumnProfile]) -> list[ColumnProfile]:
        seen: set[str] = set()
        firsts: list[ColumnProfile] = []
        for profile in profiles:
            if profile.name in seen:
                continue
            seen.add(profile.name)
            firsts.append(profile)
        return firsts
