"""
app/api/routers/imports.py

Import and dataset HTTP endpoints.

POST   /imports/preview                 profile an upload and suggest a mapping
POST   /imports                         run the full import and register the dataset
GET    /datasets                        list registered datasets
GET    /datasets/{name}                 one dataset summary
DELETE /datasets/{name}                 evict a dataset
GET    /datasets/{name}/breakdowns      totals grouped by Customer, Product Type, ...
GET    /datasets/{name}/trends          totals per day, week or month
GET    /datasets/{name}/daily-recap     totals and breakdowns for one day
GET    /datasets/{name}/summary         summary statistics, optionally for one product type
GET    /datasets/{name}/export          CSV download

All pipeline work lives in ImportService; the router only handles HTTP
plumbing (form decoding, serialisation, error mapping).
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import NoReturn

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_tabular_upload
from app.domain.dataset import RecordSource
from app.domain.fields import FIELD_CUSTOMER
from app.domain.registry import DatasetNotFoundError
from app.mappers.schema_mapper import MAPPING_MODES, MODE_CONFIRM
from app.parsers.tabular_parser import ParseError
from app.schemas.imports import (
    BreakdownResponse,
    BreakdownRowResponse,
    DatasetResponse,
    ImportPreviewResponse,
    ImportResultResponse,
    SummaryStatisticsResponse,
)
from app.services.aggregation_service import PERIOD_MONTHLY
from app.services.import_service import ImportService, UploadTooLargeError, get_import_service
from app.validators.mapping_validator import SchemaMappingError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["imports"])


# ---------------------------------------------------------------------------
# Helpers (no business logic)
# ---------------------------------------------------------------------------


def _parse_overrides(raw: str | None) -> dict[str, str | None] | None:
    if raw is None or not raw.strip():
        return None
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"overrides must be a JSON object: {exc.msg}.",
        ) from exc
    if not isinstance(decoded, dict) or not all(
        isinstance(key, str) and (value is None or isinstance(value, str)) for key, value in decoded.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="overrides must map source column names to semantic field names (or null).",
        )
    return decoded


def _raise_http(exc: Exception, *, action: str) -> NoReturn:
    if isinstance(exc, HTTPException):
        raise exc
    if isinstance(exc, (SchemaMappingError, ParseError)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    if isinstance(exc, UploadTooLargeError):
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)) from exc
    if isinstance(exc, DatasetNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.exception("Import endpoint failed action=%s", action)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action} failed; see server logs for details.",
    ) from exc


def _source_for(service: ImportService, name: str, product_type: str | None) -> RecordSource:
    dataset = service.registry.get(name)
    if product_type:
        return service.aggregator.filter_by_product_type(dataset, product_type)
    return dataset


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


@router.post("/imports/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = Depends(get_tabular_upload),
    sheet_name: str | None = Form(default=None),
    service: ImportService = Depends(get_import_service),
) -> ImportPreviewResponse:
    """
    Parse and profile an upload without building a dataset.
    """

    try:
        preview = await service.preview_upload(file, sheet_name=sheet_name)
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Preview")
    finally:
        await file.close()
    return ImportPreviewResponse.from_domain(preview)


@router.post("/imports", response_model=ImportResultResponse, status_code=status.HTTP_201_CREATED)
async def create_import(
    file: UploadFile = Depends(get_tabular_upload),
    dataset_name: str | None = Form(default=None),
    sheet_name: str | None = Form(default=None),
    mode: str = Form(default=MODE_CONFIRM),
    overrides: str | None = Form(default=None, description="JSON object of source column -> semantic field"),
    template_name: str | None = Form(default=None),
    save_template_as: str | None = Form(default=None),
    service: ImportService = Depends(get_import_service),
) -> ImportResultResponse:
    """
    Run the full import pipeline and register (or replace) the dataset.
    """

    try:
        if mode not in MAPPING_MODES:
            raise ValueError(f"mode must be one of {list(MAPPING_MODES)}.")
        result = await service.import_upload(
            file,
            dataset_name=dataset_name,
            sheet_name=sheet_name,
            overrides=_parse_overrides(overrides),
            mode=mode,
            template_name=template_name,
            save_template_as=save_template_as,
        )
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Import")
    finally:
        await file.close()
    return ImportResultResponse.from_domain(result)


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


@router.get("/datasets", response_model=list[DatasetResponse])
def list_datasets(service: ImportService = Depends(get_import_service)) -> list[DatasetResponse]:
    registry = service.registry
    return [DatasetResponse.from_domain(registry.get(name)) for name in registry.names()]


@router.get("/datasets/{name}", response_model=DatasetResponse)
def get_dataset(name: str, service: ImportService = Depends(get_import_service)) -> DatasetResponse:
    try:
        return DatasetResponse.from_domain(service.registry.get(name))
    except DatasetNotFoundError as exc:
        _raise_http(exc, action="Dataset lookup")


@router.delete("/datasets/{name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dataset(name: str, service: ImportService = Depends(get_import_service)) -> Response:
    try:
        service.registry.evict(name)
    except DatasetNotFoundError as exc:
        _raise_http(exc, action="Dataset eviction")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/datasets/{name}/breakdowns", response_model=BreakdownResponse)
def get_breakdown(
    name: str,
    by: str = Query(default=FIELD_CUSTOMER, description="Customer, Product Type, Location or Driver."),
    top: int | None = Query(default=None, ge=1, le=1000),
    product_type: str | None = Query(default=None, description="Restrict to one product type."),
    service: ImportService = Depends(get_import_service),
) -> BreakdownResponse:
    try:
        source = _source_for(service, name, product_type)
        rows = service.aggregator.breakdown(source, by, limit=top)
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Breakdown")
    return BreakdownResponse(
        dataset=name,
        by=by,
        rows=[BreakdownRowResponse.from_domain(row) for row in rows],
    )


@router.get("/datasets/{name}/trends", response_model=BreakdownResponse)
def get_trends(
    name: str,
    period: str = Query(default=PERIOD_MONTHLY, description="daily, weekly or monthly."),
    product_type: str | None = Query(default=None, description="Restrict to one product type."),
    service: ImportService = Depends(get_import_service),
) -> BreakdownResponse:
    try:
        source = _source_for(service, name, product_type)
        rows = service.aggregator.trends(source, period)
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Trends")
    return BreakdownResponse(
        dataset=name,
        by=period,
        rows=[BreakdownRowResponse.from_domain(row) for row in rows],
    )


@router.get("/datasets/{name}/daily-recap")
def get_daily_recap(
    name: str,
    day: date = Query(..., description="Calendar date (YYYY-MM-DD)."),
    service: ImportService = Depends(get_import_service),
) -> dict[str, object]:
    try:
        recap = service.aggregator.daily_recap(service.registry.get(name), day)
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Daily recap")
    if recap is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No records on {day.isoformat()} in dataset {name!r}.",
        )
    return {
        "dataset": name,
        "day": recap.day.isoformat(),
        "deliveries": recap.deliveries,
        "total_sales": recap.total_sales,
        "total_gallons": recap.total_gallons,
        "total_profit": recap.total_profit,
        "unique_customers": recap.unique_customers,
        "avg_profit_margin": recap.avg_profit_margin,
        "product_breakdown": [BreakdownRowResponse.from_domain(row).model_dump() for row in recap.product_breakdown],
        "customer_breakdown": [BreakdownRowResponse.from_domain(row).model_dump() for row in recap.customer_breakdown],
    }


@router.get("/datasets/{name}/summary", response_model=SummaryStatisticsResponse)
def get_summary(
    name: str,
    product_type: str | None = Query(default=None, description="Restrict to one product type."),
    service: ImportService = Depends(get_import_service),
) -> SummaryStatisticsResponse:
    try:
        source = _source_for(service, name, product_type)
        summary = service.aggregator.summarize(source)
    except Exception as exc:  # noqa: BLE001
        _raise_http(exc, action="Summary")
    return SummaryStatisticsResponse.from_domain(summary)


@router.get("/datasets/{name}/export")
def export_dataset(name: str, service: ImportService = Depends(get_import_service)) -> StreamingResponse:
    """
    Stream the dataset's records as a CSV file download.
    """

    try:
        dataset = service.registry.get(name)
    except DatasetNotFoundError as exc:
        _raise_http(exc, action="Export")

    result = service.exporter.collect(dataset, headers=dataset.headers)
    logger.info("Dataset export name=%r rows=%d", name, len(result.rows))
    return StreamingResponse(
        content=service.exporter.iter_lines(result),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{name}_export.csv"',
            "X-Row-Count": str(len(result.rows)),
        },
    )
