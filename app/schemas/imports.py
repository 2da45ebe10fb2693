"""
app/schemas/imports.py

Response schemas for import and dataset endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.dataset import BreakdownRow, Dataset, SummaryStatistics
from app.domain.imports import ColumnProfile, ImportPreview, ImportResult, RowDiagnostic
from app.domain.validation import FieldAnalysis, ValidationIssue, ValidationReport

MAX_DIAGNOSTICS_IN_RESPONSE = 200


class RowDiagnosticResponse(BaseModel):
    """
    API response model for one row-level diagnostic.
    """

    row_number: int = Field(..., ge=1)
    code: str
    message: str
    column: str | None = None
    value: str | None = None

    @classmethod
    def from_domain(cls, item: RowDiagnostic) -> "RowDiagnosticResponse":
        return cls(
            row_number=item.row_number,
            code=item.code,
            message=item.message,
            column=item.column,
            value=item.value,
        )


class ColumnProfileResponse(BaseModel):
    name: str
    position: int = Field(..., ge=0)
    inferred_type: str
    sample_values: list[str] = Field(default_factory=list)
    suggested_field: str | None = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    match_reason: str

    @classmethod
    def from_domain(cls, profile: ColumnProfile) -> "ColumnProfileResponse":
        return cls(
            name=profile.name,
            position=profile.position,
            inferred_type=profile.inferred_type,
            sample_values=list(profile.sample_values),
            suggested_field=profile.suggested_field,
            confidence=profile.confidence,
            match_reason=profile.match_reason,
        )


class ImportPreviewResponse(BaseModel):
    """
    API response model for the mapping-confirmation step.
    """

    headers: list[str]
    profiles: list[ColumnProfileResponse]
    suggested_mapping: dict[str, str]
    missing_required: list[str] = Field(default_factory=list)
    row_count: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    diagnostics: list[RowDiagnosticResponse] = Field(default_factory=list)
    sheet_names: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, preview: ImportPreview) -> "ImportPreviewResponse":
        return cls(
            headers=list(preview.headers),
            profiles=[ColumnProfileResponse.from_domain(item) for item in preview.profiles],
            suggested_mapping=dict(preview.suggested_mapping.source_to_field),
            missing_required=list(preview.missing_required),
            row_count=preview.row_count,
            rows_skipped=sum(1 for item in preview.diagnostics if item.code == "row_length_mismatch"),
            diagnostics=[
                RowDiagnosticResponse.from_domain(item)
                for item in preview.diagnostics[:MAX_DIAGNOSTICS_IN_RESPONSE]
            ],
            sheet_names=list(preview.sheet_names),
        )


class ValidationIssueResponse(BaseModel):
    code: str
    severity: str
    message: str
    field: str | None = None
    count: int = Field(0, ge=0)
    row_number: int | None = None
    samples: list[Any] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, issue: ValidationIssue) -> "ValidationIssueResponse":
        return cls(
            code=issue.code,
            severity=issue.severity,
            message=issue.message,
            field=issue.field,
            count=issue.count,
            row_number=issue.row_number,
            samples=[str(item) if isinstance(item, (date, datetime)) else item for item in issue.samples],
        )


class FieldAnalysisResponse(BaseModel):
    field: str
    total: int = Field(..., ge=0)
    empty: int = Field(..., ge=0)
    unique: int = Field(..., ge=0)
    data_type: str
    outlier_count: int = Field(0, ge=0)
    patterns: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, analysis: FieldAnalysis) -> "FieldAnalysisResponse":
        return cls(
            field=analysis.field,
            total=analysis.total,
            empty=analysis.empty,
            unique=analysis.unique,
            data_type=analysis.data_type,
            outlier_count=len(analysis.outliers),
            patterns=dict(analysis.patterns),
        )


class QualityScoresResponse(BaseModel):
    completeness: int = Field(..., ge=0, le=100)
    consistency: int = Field(..., ge=0, le=100)
    accuracy: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=0, le=100)


class ValidationReportResponse(BaseModel):
    """
    API response model for a validation report.
    """

    errors: list[ValidationIssueResponse] = Field(default_factory=list)
    warnings: list[ValidationIssueResponse] = Field(default_factory=list)
    suggestions: list[ValidationIssueResponse] = Field(default_factory=list)
    field_analysis: list[FieldAnalysisResponse] = Field(default_factory=list)
    quality: QualityScoresResponse
    severity_counts: dict[str, int] = Field(default_factory=dict)
    has_blocking_errors: bool = False

    @classmethod
    def from_domain(cls, report: ValidationReport) -> "ValidationReportResponse":
        return cls(
            errors=[ValidationIssueResponse.from_domain(item) for item in report.errors],
            warnings=[ValidationIssueResponse.from_domain(item) for item in report.warnings],
            suggestions=[ValidationIssueResponse.from_domain(item) for item in report.suggestions],
            field_analysis=[FieldAnalysisResponse.from_domain(item) for item in report.field_analysis.values()],
            quality=QualityScoresResponse(
                completeness=report.quality.completeness,
                consistency=report.quality.consistency,
                accuracy=report.quality.accuracy,
                overall=report.quality.overall,
            ),
            severity_counts=report.severity_counts(),
            has_blocking_errors=report.has_blocking_errors,
        )


class SummaryStatisticsResponse(BaseModel):
    total_sales: float
    total_gallons: float
    total_profit: float
    total_cost: float
    record_count: int = Field(..., ge=0)
    avg_profit_margin: float
    avg_revenue_per_gallon: float
    distinct_customers: int = Field(..., ge=0)
    distinct_product_types: int = Field(..., ge=0)
    distinct_drivers: int = Field(..., ge=0)
    distinct_locations: int = Field(..., ge=0)
    first_date: date | None = None
    last_date: date | None = None

    @classmethod
    def from_domain(cls, summary: SummaryStatistics) -> "SummaryStatisticsResponse":
        return cls(**summary.to_dict())


class DatasetResponse(BaseModel):
    """
    API response model for one registered dataset (records excluded).
    """

    name: str
    headers: list[str]
    record_count: int = Field(..., ge=0)
    uploaded_at: datetime
    source_description: str
    summary: SummaryStatisticsResponse

    @classmethod
    def from_domain(cls, dataset: Dataset) -> "DatasetResponse":
        return cls(
            name=dataset.name,
            headers=list(dataset.headers),
            record_count=dataset.record_count,
            uploaded_at=dataset.uploaded_at,
            source_description=dataset.source_description,
            summary=SummaryStatisticsResponse.from_domain(dataset.summary),
        )


class ImportResultResponse(BaseModel):
    """
    API response model for a completed import.
    """

    dataset: DatasetResponse
    mapping: dict[str, str]
    mapping_strategies: dict[str, str] = Field(default_factory=dict)
    report: ValidationReportResponse
    rows_skipped: int = Field(..., ge=0)
    rows_dropped: int = Field(..., ge=0)
    diagnostic_count: int = Field(..., ge=0)
    diagnostics: list[RowDiagnosticResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: ImportResult) -> "ImportResultResponse":
        return cls(
            dataset=DatasetResponse.from_domain(result.dataset),
            mapping=dict(result.mapping.source_to_field),
            mapping_strategies=dict(result.mapping.strategies),
            report=ValidationReportResponse.from_domain(result.report),
            rows_skipped=result.rows_skipped,
            rows_dropped=result.rows_dropped,
            diagnostic_count=len(result.diagnostics),
            diagnostics=[
                RowDiagnosticResponse.from_domain(item)
                for item in result.diagnostics[:MAX_DIAGNOSTICS_IN_RESPONSE]
            ],
        )


class BreakdownRowResponse(BaseModel):
    key: str
    sales: float
    gallons: float
    profit: float
    transactions: int = Field(..., ge=0)

    @classmethod
    def from_domain(cls, row: BreakdownRow) -> "BreakdownRowResponse":
        return cls(
            key=row.key,
            sales=row.sales,
            gallons=row.gallons,
            profit=row.profit,
            transactions=row.transactions,
        )


class BreakdownResponse(BaseModel):
    dataset: str
    by: str
    rows: list[BreakdownRowResponse] = Field(default_factory=list)
