"""Reverse index from metadata values to the images carrying them.

`build_groups` and `count_tags` are pure functions over a mapping of records.
`MetadataIndex` owns one snapshot of records and keeps groups and tag counts
derived from that same snapshot, patching only the affected groups after a
save.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from loguru import logger

from core.models import (
    EMPTY_METADATA,
    ImageMetadata,
    ImageReference,
    MetadataField,
    MetadataGroups,
    TagWithCount,
)


def _keys_for(metadata: ImageMetadata) -> list[tuple[MetadataField, str]]:
    """Return the (field, value) group keys `metadata` belongs to."""
    keys: list[tuple[MetadataField, str]] = []
    if metadata.source:
        keys.append((MetadataField.SOURCES, metadata.source))
    if metadata.author:
        keys.append((MetadataField.AUTHORS, metadata.author))
    for tag in metadata.tags:
        keys.append((MetadataField.TAGS, tag))
    return keys


def build_groups(records: Mapping[ImageReference, ImageMetadata]) -> MetadataGroups:
    """Build the three groupings; order inside a group is the traversal order of `records`."""
    groups = MetadataGroups()
    for ref, metadata in records.items():
        for metadata_field, value in _keys_for(metadata):
            groups.for_field(metadata_field).setdefault(value, []).append(ref)
    return groups


def sort_tag_counts(counts: Iterable[TagWithCount]) -> list[TagWithCount]:
    """Order by count descending, then tag ascending."""
    return sorted(counts, key=lambda tc: (-tc.count, tc.tag))


def count_tags(records: Mapping[ImageReference, ImageMetadata]) -> list[TagWithCount]:
    """Return one entry per distinct tag with the number of images carrying it."""
    counts: dict[str, int] = {}
    for metadata in records.values():
        for tag in metadata.tags:
            counts[tag] = counts.get(tag, 0) + 1
    return sort_tag_counts(TagWithCount(tag=t, count=c) for t, c in counts.items())


class MetadataIndex:
    """Keeps `MetadataGroups` current for one snapshot of records."""

    def __init__(self) -> None:
        self._records: dict[ImageReference, ImageMetadata] = {}
        self._positions: dict[ImageReference, int] = {}
        self._groups = MetadataGroups()

    @property
    def groups(self) -> MetadataGroups:
        """Groupings of the current snapshot."""
        return self._groups

    def __len__(self) -> int:
        return len(self._records)

    def record(self, ref: ImageReference) -> ImageMetadata:
        """Return the record of `ref`; unknown references have the empty record."""
        return self._records.get(ref, EMPTY_METADATA)

    def rebuild(self, records: Mapping[ImageReference, ImageMetadata]) -> MetadataGroups:
        """Replace the snapshot with `records` and rebuild every group."""
        self._records = dict(records)
        self._positions = {ref: i for i, ref in enumerate(self._records)}
        self._groups = build_groups(self._records)
        logger.debug(
            "Metadata index rebuilt: {} records, {} sources, {} authors, {} tags",
            len(self._records),
            len(self._groups.sources),
            len(self._groups.authors),
            len(self._groups.tags),
        )
        return self._groups

    def tag_counts(self) -> list[TagWithCount]:
        """Tag counts of the snapshot, consistent with `groups`."""
        return sort_tag_counts(
            TagWithCount(tag=tag, count=len(refs)) for tag, refs in self._groups.tags.items()
        )

    def patch(self, ref: ImageReference, metadata: ImageMetadata) -> None:
        """Re-index `ref` after its record was replaced by `metadata`."""
        self.patch_many([(ref, metadata)])

    def patch_many(self, updates: Iterable[tuple[ImageReference, ImageMetadata]]) -> None:
        """Re-index a batch of replaced records.

        Groups end up identical to a full rebuild of the updated snapshot:
        references inside a touched group are kept in snapshot order.
        """
        touched: set[tuple[MetadataField, str]] = set()
        for ref, metadata in updates:
            previous = self._records.get(ref)
            if previous is not None:
                for key in _keys_for(previous):
                    refs = self._groups.for_field(key[0]).get(key[1])
                    if refs is not None and ref in refs:
                        refs.remove(ref)
                        touched.add(key)
            else:
                self._positions[ref] = len(self._positions)
            self._records[ref] = metadata
            for key in _keys_for(metadata):
                self._groups.for_field(key[0]).setdefault(key[1], []).append(ref)
                touched.add(key)

        for metadata_field, value in touched:
            grouping = self._groups.for_field(metadata_field)
            refs = grouping.get(value)
            if not refs:
                grouping.pop(value, None)
                continue
            refs.sort(key=self._positions.__getitem__)

    def refs_for(self, metadata_field: MetadataField, value: str) -> list[ImageReference]:
        """References carrying `value` in `metadata_field`; empty for unknown values."""
        return list(self._groups.for_field(metadata_field).get(value, []))

    def values(self, metadata_field: MetadataField) -> list[tuple[str, int]]:
        """Distinct values of `metadata_field` with their image counts, sorted by value."""
        grouping = self._groups.for_field(metadata_field)
        return [(value, len(grouping[value])) for value in sorted(grouping)]

    def all_tags(self) -> list[str]:
        """Distinct tags of the snapshot, sorted."""
        return sorted(self._groups.tags)
