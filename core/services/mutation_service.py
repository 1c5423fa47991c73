"""Single and bulk metadata writes with consistent re-indexing.

Writes go through the store first. The in-memory records and the metadata
index are only updated for writes the store accepted, so a failed write never
leaves a partially applied record behind.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableMapping

from loguru import logger

from core.models import ImageMetadata, ImageReference
from core.services.interfaces import BulkSaveResult, IMetadataStore, StoreError
from core.services.metadata_index import MetadataIndex


class MutationService:
    """Applies metadata edits and keeps the in-memory map and index current."""

    def __init__(
        self,
        store: IMetadataStore,
        index: MetadataIndex,
        records: MutableMapping[ImageReference, ImageMetadata],
    ) -> None:
        """Create a MutationService.

        Args:
            store: Persistence collaborator written through on every save.
            index: Metadata index patched after successful writes.
            records: In-memory metadata map of the loaded image list.
        """
        self._store = store
        self._index = index
        self._records = records

    def save_one(self, ref: ImageReference, metadata: ImageMetadata) -> ImageMetadata:
        """Persist `metadata` for `ref`, then update the map and the index.

        Raises:
            StoreIOError: The store write failed; nothing was changed.
            MetadataValidationError: The record was rejected; nothing was changed.
        """
        try:
            self._store.save_metadata(ref.folder, ref.image, metadata)
        except StoreError as ex:
            logger.error("Save metadata failed for {}: {}", ref.key, ex)
            raise
        self._records[ref] = metadata
        self._index.patch(ref, metadata)
        logger.info("Metadata saved for {}", ref.key)
        return metadata

    def save_bulk(self, refs: Iterable[ImageReference], metadata: ImageMetadata) -> BulkSaveResult:
        """Overwrite the record of every reference in `refs` with `metadata`.

        Each write is independent: a failure is recorded and the remaining
        references are still attempted. The index is refreshed once at the
        end for the references that were written.
        """
        ordered = sorted(refs) if isinstance(refs, (set, frozenset)) else list(refs)
        result = BulkSaveResult()
        for ref in ordered:
            try:
                self._store.save_metadata(ref.folder, ref.image, metadata)
            except StoreError as ex:
                logger.error("Bulk save failed for {}: {}", ref.key, ex)
                result.failed.append((ref, str(ex)))
                continue
            self._records[ref] = metadata
            result.saved.append(ref)

        self._index.patch_many((ref, metadata) for ref in result.saved)
        logger.info(
            "Bulk metadata save: {} saved, {} failed", len(result.saved), len(result.failed)
        )
        return result
