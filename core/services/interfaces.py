"""Core service interfaces, error types and shared result structures.

This module defines the store and timer contracts consumed by the core, the
error taxonomy raised across them, and simple dataclasses reporting the
outcome of batch operations to the view-model layer.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from core.models import FolderInfo, ImageMetadata, ImageReference, MetadataGroups, TagWithCount


class StoreError(Exception):
    """Base class for failures reported by a metadata store."""


class ImageNotFoundError(StoreError):
    """A folder or image no longer exists in the library."""


class StoreIOError(StoreError):
    """Reading from or writing to the store failed."""


class MetadataValidationError(StoreError):
    """A metadata record is malformed and was not persisted."""


@dataclass
class BulkSaveResult:
    """Outcome of a bulk metadata save.

    Attributes:
        saved: References written successfully, in processing order.
        failed: Tuples of (reference, reason) for failures.
    """

    saved: list[ImageReference] = field(default_factory=list)
    failed: list[tuple[ImageReference, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every write succeeded."""
        return not self.failed


@dataclass
class FolderLoadResult:
    """Outcome of populating metadata and paths for an image list.

    Attributes:
        metadata: Loaded records by reference; absent records are omitted.
        paths: Displayable paths by reference.
        failed: Tuples of (reference, reason) for per-image load failures.
    """

    metadata: dict[ImageReference, ImageMetadata] = field(default_factory=dict)
    paths: dict[ImageReference, str] = field(default_factory=dict)
    failed: list[tuple[ImageReference, str]] = field(default_factory=list)


class IMetadataStore:
    """Interface for the persistence collaborator of the library."""

    def list_folders(self) -> list[FolderInfo]:
        """Return library folders sorted by name."""
        raise NotImplementedError

    def list_images(self, folder: str) -> list[str]:
        """Return image identifiers of `folder` in store order."""
        raise NotImplementedError

    def resolve_path(self, folder: str, image: str) -> str:
        """Return a path usable by the rendering surface."""
        raise NotImplementedError

    def load_metadata(self, folder: str, image: str) -> ImageMetadata | None:
        """Return the stored record, or None when the image has none."""
        raise NotImplementedError

    def save_metadata(self, folder: str, image: str, metadata: ImageMetadata) -> None:
        """Replace the stored record of the image."""
        raise NotImplementedError

    def iter_metadata(self) -> Iterator[tuple[ImageReference, ImageMetadata]]:
        """Yield every stored record of the library in a deterministic order."""
        raise NotImplementedError

    def compute_groups(self) -> MetadataGroups:
        """Return the reverse groupings of the whole stored corpus."""
        raise NotImplementedError

    def tag_counts(self) -> list[TagWithCount]:
        """Return distinct tags of the stored corpus with their counts."""
        raise NotImplementedError


class IIntervalTimer:
    """Interface for a repeating timer driving auto-advance."""

    def start(self, interval_ms: int, callback: Callable[[], None]) -> None:
        """Arm the timer; any previous arming is replaced."""
        raise NotImplementedError

    def stop(self) -> None:
        """Cancel the timer; no callback fires afterwards."""
        raise NotImplementedError

    @property
    def is_active(self) -> bool:
        """True while the timer is armed."""
        raise NotImplementedError


class IFavoritesStore:
    """Interface for persisting the favorite image set in toggle order."""

    def load(self) -> list[ImageReference]:
        """Return the saved favorites; an absent set is empty."""
        raise NotImplementedError

    def save(self, favorites: list[ImageReference]) -> None:
        """Persist `favorites`; raises `StoreIOError` when the write fails."""
        raise NotImplementedError
