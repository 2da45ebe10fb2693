"""
app/domain/registry.py

Session-owned store of imported datasets and saved mapping templates.
"""

from __future__ import annotations

import logging

from app.domain.dataset import Dataset
from app.domain.imports import FieldMapping

logger = logging.getLogger(__name__)


class DatasetNotFoundError(KeyError):
    """
    Raised when a dataset or template name is not registered.
    """

    def __init__(self, name: str, *, kind: str = "dataset") -> None:
        super().__init__(name)
        self.name = name
        self.kind = kind

    def __str__(self) -> str:
        return f"No {self.kind} named {self.name!r} is registered."


class DatasetExistsError(ValueError):
    """
    Raised by :meth:`DatasetRegistry.create` when the name is already taken.
    """


class DatasetRegistry:
    """
    Named datasets owned by one importing session.

    Datasets are only ever added, replaced wholesale, or evicted; the stored
    objects themselves are immutable.
    """

    def __init__(self) -> None:
        self._datasets: dict[str, Dataset] = {}
        self._templates: dict[str, FieldMapping] = {}

    def create(self, dataset: Dataset) -> Dataset:
        if dataset.name in self._datasets:
            raise DatasetExistsError(f"Dataset {dataset.name!r} already exists; use replace().")
        self._datasets[dataset.name] = dataset
        logger.info("Dataset registered name=%r records=%d", dataset.name, dataset.record_count)
        return dataset

    def replace(self, dataset: Dataset) -> Dataset | None:
        """
        Store *dataset*, returning the previous dataset with the same name if any.
        """

        previous = self._datasets.get(dataset.name)
        self._datasets[dataset.name] = dataset
        logger.info(
            "Dataset %s name=%r records=%d",
            "replaced" if previous is not None else "registered",
            dataset.name,
            dataset.record_count,
        )
        return previous

    def evict(self, name: str) -> Dataset:
        try:
            dataset = self._datasets.pop(name)
        except KeyError:
            raise DatasetNotFoundError(name) from None
        logger.info("Dataset evicted name=%r", name)
        return dataset

    def get(self, name: str) -> Dataset:
        try:
            return self._datasets[name]
        except KeyError:
            raise DatasetNotFoundError(name) from None

    def names(self) -> list[str]:
        return sorted(self._datasets)

    def __contains__(self, name: object) -> bool:
        return name in self._datasets

    def __len__(self) -> int:
        return len(self._datasets)

    # ------------------------------------------------------------------
    # Mapping templates
    # ------------------------------------------------------------------

    def save_template(self, name: str, mapping: FieldMapping) -> None:
        self._templates[name] = mapping
        logger.info("Mapping template saved name=%r fields=%d", name, len(mapping.source_to_field))

    def get_template(self, name: str) -> FieldMapping:
        try:
            return self._templates[name]
        except KeyError:
            raise DatasetNotFoundError(name, kind="mapping template") from None

    def template_names(self) -> list[str]:
        return sorted(self._templates)
