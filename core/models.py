"""Core domain models for library images, their metadata and groupings."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MetadataField(str, Enum):
    """Metadata field used to group images in metadata browse mode."""

    SOURCES = "sources"
    AUTHORS = "authors"
    TAGS = "tags"


class BrowseMode(str, Enum):
    """Active grouping strategy for the image list."""

    FOLDERS = "folders"
    METADATA = "metadata"
    FAVORITES = "favorites"


class SortOrder(str, Enum):
    """Sort order of the visible image list, by image name."""

    NONE = "none"
    ASC = "asc"
    DESC = "desc"

    def cycled(self) -> SortOrder:
        """Return the next order in the cycle none -> asc -> desc -> none."""
        if self is SortOrder.NONE:
            return SortOrder.ASC
        if self is SortOrder.ASC:
            return SortOrder.DESC
        return SortOrder.NONE


@dataclass(frozen=True, order=True)
class ImageReference:
    """Unique `(folder, image)` key of a library image."""

    folder: str
    image: str

    @property
    def key(self) -> str:
        """String form `folder/image` used by the favorites file."""
        return f"{self.folder}/{self.image}"

    @classmethod
    def from_key(cls, key: str) -> ImageReference:
        """Parse a `folder/image` key; the folder is the part before the first slash."""
        folder, sep, image = key.partition("/")
        if not sep or not folder or not image:
            raise ValueError(f"Invalid image key: {key!r}")
        return cls(folder=folder, image=image)


@dataclass(frozen=True)
class ImageMetadata:
    """User-edited metadata of one image.

    Records are values: a save replaces the whole record. `tags` keeps
    insertion order and is stored as a tuple.
    """

    source: str = ""
    author: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    def is_empty(self) -> bool:
        """True when source, author and tags are all empty."""
        return not self.source and not self.author and not self.tags

    def to_dict(self) -> dict[str, object]:
        """Serializable form with the three schema fields."""
        return {"source": self.source, "author": self.author, "tags": list(self.tags)}


EMPTY_METADATA = ImageMetadata()


@dataclass
class MetadataGroups:
    """Reverse index from metadata value to the images carrying it, per field."""

    sources: dict[str, list[ImageReference]] = field(default_factory=dict)
    authors: dict[str, list[ImageReference]] = field(default_factory=dict)
    tags: dict[str, list[ImageReference]] = field(default_factory=dict)

    def for_field(self, metadata_field: MetadataField) -> dict[str, list[ImageReference]]:
        """Return the grouping for `metadata_field`."""
        return getattr(self, metadata_field.value)


@dataclass(frozen=True)
class TagWithCount:
    """A distinct tag and the number of images carrying it."""

    tag: str
    count: int


@dataclass(frozen=True)
class FolderInfo:
    """A library folder and its size on disk in megabytes."""

    name: str
    size_mb: float
