"""
app/domain/validation.py

Validation report models produced by the data validator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final

SEVERITY_HIGH: Final[str] = "high"
SEVERITY_MEDIUM: Final[str] = "medium"
SEVERITY_LOW: Final[str] = "low"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One field-level or record-level finding.

    ``count`` is the number of affected values or rows; ``samples`` keeps a
    bounded list of offending values for display.
    """

    code: str
    severity: str
    message: str
    field: str | None = None
    count: int = 0
    row_number: int | None = None
    samples: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Outlier:
    row_number: int
    value: float


@dataclass
class FieldAnalysis:
    """
    Per-field counts, detected type and findings.
    """

    field: str
    total: int = 0
    empty: int = 0
    unique: int = 0
    data_type: str = "unknown"
    issues: list[ValidationIssue] = field(default_factory=list)
    outliers: list[Outlier] = field(default_factory=list)
    patterns: dict[str, int] = field(default_factory=dict)

    @property
    def non_empty(self) -> int:
        return self.total - self.empty

    @property
    def completeness_ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.non_empty / self.total


@dataclass(frozen=True)
class QualityScores:
    completeness: int = 0
    consistency: int = 0
    accuracy: int = 0
    overall: int = 0


@dataclass
class ValidationReport:
    """
    Structured outcome of validating one set of processed records.
    """

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    suggestions: list[ValidationIssue] = field(default_factory=list)
    field_analysis: dict[str, FieldAnalysis] = field(default_factory=dict)
    quality: QualityScores = field(default_factory=QualityScores)

    @property
    def has_blocking_errors(self) -> bool:
        return any(issue.severity == SEVERITY_HIGH for issue in self.all_issues())

    def all_issues(self) -> list[ValidationIssue]:
        return [*self.errors, *self.warnings, *self.suggestions]

    def severity_counts(self) -> dict[str, int]:
        counts = {SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 0, SEVERITY_LOW: 0}
        for issue in self.all_issues():
            counts[issue.severity] = counts.get(issue.severity, 0) + 1
        return counts

    def issues_for(self, field_name: str) -> list[ValidationIssue]:
        return [issue for issue in self.all_issues() if issue.field == field_name]
