"""
app/validators/mapping_validator.py

Validation for resolved source-column to semantic-field mappings.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    One problem found in a source-column to semantic-field mapping.
    """

    code: str
    message: str
    semantic_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None

    @property
    def subject(self) -> str | None:
        return self.semantic_field or self.source_column

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SchemaMappingError(ValueError):
    """
    Raised when a mapping cannot be applied; carries every detail found.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    @classmethod
    def from_details(cls, errors: Sequence[MappingErrorDetail]) -> SchemaMappingError:
        summary = "; ".join(f"{error.code} ({error.subject})" for error in errors)
        return cls(message=f"Schema mapping validation failed: {summary}", errors=errors)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "errors": [error.to_dict() for error in self.errors]}


class MissingRequiredFieldError(SchemaMappingError):
    """
    Raised when one or more required semantic fields have no source column.
    """

    def __init__(
        self,
        *,
        missing_fields: Sequence[str],
        errors: Sequence[MappingErrorDetail],
    ) -> None:
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            message=f"Missing required fields: {', '.join(self.missing_fields)}.",
            errors=errors,
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["missing_fields"] = list(self.missing_fields)
        return payload


class MappingValidator:
    """
    Validates resolved source-to-field mappings.
    """

    def __init__(
        self,
        *,
        required_fields: Sequence[str],
        semantic_fields: Sequence[str],
    ) -> None:
        self._required_fields = tuple(required_fields)
        self._semantic_fields = tuple(semantic_fields)
        self._semantic_set = set(self._semantic_fields)

    def validate(
        self,
        *,
        mapping: Mapping[str, str],
        source_headers: Sequence[str],
        pre_errors: Sequence[MappingErrorDetail] | None = None,
        require_fields: bool = True,
    ) -> None:
        """
        Validate mapping and raise structured errors if invalid.
        """

        errors: list[MappingErrorDetail] = list(pre_errors or [])
        headers_set = set(source_headers)

        for source_column, semantic_field in mapping.items():
            if semantic_field not in self._semantic_set:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_semantic_field",
                        message="Unknown semantic field in mapping.",
                        semantic_field=semantic_field,
                        source_column=source_column,
                    )
                )
            if source_column not in headers_set:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_source_column",
                        message="Mapped source column does not exist in the file headers.",
                        semantic_field=semantic_field,
                        source_column=source_column,
                    )
                )

        field_counts = Counter(mapping.values())
        for semantic_field, count in sorted(field_counts.items()):
            if count > 1:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_field_mapping",
                        message="Several source columns map to the same semantic field.",
                        semantic_field=semantic_field,
                        context={
                            "source_columns": [
                                source for source, mapped in mapping.items() if mapped == semantic_field
                            ]
                        },
                    )
                )

        missing: list[str] = []
        if require_fields:
            mapped_fields = set(mapping.values())
            for required in self._required_fields:
                if required not in mapped_fields:
                    missing.append(required)
                    errors.append(
                        MappingErrorDetail(
                            code="required_field_unmapped",
                            message="Required semantic field is not mapped.",
                            semantic_field=required,
                            context={"source_headers": list(source_headers)},
                        )
                    )

        if missing:
            raise MissingRequiredFieldError(missing_fields=missing, errors=errors)
        if errors:
            raise SchemaMappingError.from_details(errors)
