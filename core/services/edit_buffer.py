"""In-progress metadata edit, shared by the single and bulk editors."""

from __future__ import annotations

from collections.abc import Iterable

from core.models import ImageMetadata, TagWithCount


class MetadataEditBuffer:
    """Mutable working copy of a metadata record.

    Tags keep insertion order and never contain duplicates: invalid input is
    rejected silently at the point of entry.
    """

    def __init__(self, initial: ImageMetadata | None = None) -> None:
        self.source = ""
        self.author = ""
        self._tags: list[str] = []
        if initial is not None:
            self.load(initial)

    @classmethod
    def for_bulk(cls) -> MetadataEditBuffer:
        """Empty buffer; a bulk save overwrites every field with it."""
        return cls()

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._tags)

    def load(self, metadata: ImageMetadata) -> None:
        """Replace the buffer content with `metadata`."""
        self.source = metadata.source
        self.author = metadata.author
        self._tags = []
        for tag in metadata.tags:
            self.add_tag(tag)

    def add_tag(self, text: str) -> bool:
        """Append `text` trimmed; returns False when empty or already present."""
        tag = text.strip()
        if not tag or tag in self._tags:
            return False
        self._tags.append(tag)
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove `tag` by exact match; returns False when it is not present."""
        try:
            self._tags.remove(tag)
        except ValueError:
            return False
        return True

    def suggestions(self, tag_counts: Iterable[TagWithCount]) -> list[TagWithCount]:
        """Existing library tags that are not in the buffer yet."""
        return [tc for tc in tag_counts if tc.tag not in self._tags]

    def to_metadata(self) -> ImageMetadata:
        return ImageMetadata(source=self.source, author=self.author, tags=tuple(self._tags))
