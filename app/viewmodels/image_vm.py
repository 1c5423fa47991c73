"""Lightweight view model wrapper around one library image."""

from __future__ import annotations

from dataclasses import dataclass
from core.models import ImageMetadata, ImageReference


@dataclass
class ImageVM:
    """Expose convenient properties for bindings/templates."""

    ref: ImageReference
    metadata: ImageMetadata | None
    path: str | None = None
    is_favorite: bool = False
    is_selected: bool = False

    @property
    def file_name(self) -> str:
        """Image identifier within its folder."""
        return self.ref.image

    @property
    def folder(self) -> str:
        return self.ref.folder

    @property
    def has_metadata(self) -> bool:
        """True when any metadata field is set."""
        return self.metadata is not None and not self.metadata.is_empty()

    @property
    def source(self) -> str:
        return self.metadata.source if self.metadata else ""

    @property
    def author(self) -> str:
        return self.metadata.author if self.metadata else ""

    @property
    def tags(self) -> tuple[str, ...]:
        return self.metadata.tags if self.metadata else ()
