"""Data types shared by the catalog store, resolver and service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_provider(provider: str) -> str:
    """Return the canonical provider key used for comparisons."""

    return (provider or "").strip().lower()


class ModelDescriptor(BaseModel):
    """Metadata for one selectable model.

    Unknown keys from the descriptor source are kept as extra metadata and
    surface again through :meth:`model_dump`. ``provider`` is stored in its
    normalized form (stripped, lowercase), so a source supplying ``"OpenAI"``
    is served back as ``"openai"``; ``id`` is only stripped.

    Attributes:
        id: Unique model identifier within a catalog.
        provider: Provider key (e.g. ``"openai"``).
        display_name: Human-readable model name.
        accessible_default: Whether the model is usable without a provider key.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)
    display_name: str = ""
    accessible_default: bool = False
    description: Optional[str] = None
    context_window: Optional[int] = None
    tags: Tuple[str, ...] = ()

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Model id must be a non-empty string")
        return cleaned

    @field_validator("provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        cleaned = normalize_provider(value)
        if not cleaned:
            raise ValueError("Provider must be a non-empty string")
        return cleaned

    @property
    def name(self) -> str:
        """Display name, falling back to the id."""
        return self.display_name or self.id


@dataclass(frozen=True)
class CatalogSnapshot:
    """One immutable, fully built version of the model catalog.

    Descriptor order is the order the source returned them in. Ids are
    unique; construction fails with ``ValueError`` otherwise.
    """

    descriptors: Tuple[ModelDescriptor, ...]
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _index: Dict[str, ModelDescriptor] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        descriptors = tuple(self.descriptors)
        index: Dict[str, ModelDescriptor] = {}
        duplicates = []
        for descriptor in descriptors:
            if descriptor.id in index:
                duplicates.append(descriptor.id)
            index[descriptor.id] = descriptor
        if duplicates:
            raise ValueError(
                f"Duplicate model ids in catalog: {', '.join(sorted(set(duplicates)))}"
            )
        object.__setattr__(self, "descriptors", descriptors)
        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.descriptors)

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self.descriptors)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._index

    def get(self, model_id: str) -> Optional[ModelDescriptor]:
        return self._index.get(model_id)

    def ids(self) -> Tuple[str, ...]:
        return tuple(descriptor.id for descriptor in self.descriptors)

    def for_provider(self, provider: str) -> Tuple[ModelDescriptor, ...]:
        key = normalize_provider(provider)
        return tuple(d for d in self.descriptors if d.provider == key)

    def providers(self) -> Tuple[str, ...]:
        """Distinct providers in first-seen order."""
        seen: Dict[str, None] = {}
        for descriptor in self.descriptors:
            seen.setdefault(descriptor.provider, None)
        return tuple(seen)


@dataclass(frozen=True)
class ResolvedModel:
    """A descriptor paired with a per-request ``accessible`` flag.

    The flag lives here rather than on the descriptor so that cached
    snapshots stay identical for every user.
    """

    descriptor: ModelDescriptor
    accessible: bool

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def provider(self) -> str:
        return self.descriptor.provider

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into a JSON-friendly mapping for the HTTP boundary."""
        payload = self.descriptor.model_dump(mode="json")
        payload["accessible"] = self.accessible
        return payload


__all__ = [
    "CatalogSnapshot",
    "ModelDescriptor",
    "ResolvedModel",
    "normalize_provider",
]
