"""Shared state of the memories pipeline."""

import logging
from dataclasses import dataclass, field, fields
from typing import Any

from pydantic import TypeAdapter

from .models import (
    ClusterDraft,
    DaySummary,
    HomeDescriptor,
    MediaAsset,
    SelectionResult,
)

logger = logging.getLogger(__name__)


@dataclass
class MemoryData:
    """Containers passed between the pipeline steps.

    Attributes:
        media: Media items of the library.
        home: Home descriptor of the library owner.
        days: Day summaries keyed by local date.
        runs: Away runs as lists of date keys.
        drafts: Scored drafts, one per qualifying run.
        selections: Curated members, one per draft.
    """

    media: list[MediaAsset] = field(default_factory=list)
    home: HomeDescriptor | None = None
    days: dict[str, DaySummary] = field(default_factory=dict)
    runs: list[list[str]] = field(default_factory=list)
    drafts: list[ClusterDraft] = field(default_factory=list)
    selections: list[SelectionResult] = field(default_factory=list)

    @classmethod
    def field_names(cls) -> set[str]:
        """Names of all containers."""
        return {f.name for f in fields(cls)}

    def validate(self, name: str, step: str | None = None) -> None:
        """Validate container ``name`` against its declared type.

        Raises:
            ValueError: If ``name`` is not a container.
            pydantic.ValidationError: If the content does not match.
        """
        if name not in self.field_names():
            msg = f"Unknown memory data container '{name}'."
            raise ValueError(msg)
        validate_value(name, getattr(self, name))
        logger.debug("Validated '%s' for step '%s'", name, step)


_ADAPTERS: dict[str, TypeAdapter] = {}


def validate_value(name: str, value: Any) -> Any:  # noqa: ANN401
    """Validate ``value`` against the type of container ``name``."""
    if name not in _ADAPTERS:
        annotation = next(
            f.type for f in fields(MemoryData) if f.name == name
        )
        _ADAPTERS[name] = TypeAdapter(annotation)
    return _ADAPTERS[name].validate_python(value)
