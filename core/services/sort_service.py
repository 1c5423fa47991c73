"""Filtering and sorting of the visible image list.

The projection is pure: it never mutates the list it receives and is
recomputed on demand whenever the list, the sort order or the filter changes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import locale

from loguru import logger

from core.models import ImageMetadata, ImageReference, SortOrder


def init_collation(locale_name: str = "") -> bool:
    """Set the collation used by the default sort key; `""` selects the user locale.

    Returns False, keeping the current collation, when the locale is unavailable.
    """
    try:
        locale.setlocale(locale.LC_COLLATE, locale_name)
    except locale.Error as ex:
        logger.warning("Collation locale {!r} unavailable: {}", locale_name, ex)
        return False
    logger.debug("Collation locale: {}", locale.setlocale(locale.LC_COLLATE))
    return True


def has_no_metadata(metadata: ImageMetadata | None) -> bool:
    """True when the record is absent or every field is empty."""
    return metadata is None or metadata.is_empty()


class SortService:
    """Provides the filtered and sorted projection of an image list."""

    def __init__(self, sort_key: Callable[[str], object] | None = None) -> None:
        """Create a SortService.

        Args:
            sort_key: Key applied to image names; defaults to `locale.strxfrm`,
                which is case-sensitive and follows the active collation.
        """
        self._sort_key = sort_key or locale.strxfrm

    def filter_and_sort(
        self,
        refs: Sequence[ImageReference],
        sort_order: SortOrder,
        only_no_metadata: bool,
        metadata_for: Callable[[ImageReference], ImageMetadata | None],
    ) -> list[ImageReference]:
        """Return the visible projection of `refs`.

        Args:
            refs: Active image list, in browse order.
            sort_order: `NONE` keeps the browse order; otherwise sort by image name.
            only_no_metadata: Keep only images whose metadata is absent or empty.
            metadata_for: Lookup of the cached record of a reference.
        """
        result = list(refs)
        if only_no_metadata:
            result = [ref for ref in result if has_no_metadata(metadata_for(ref))]

        if sort_order is SortOrder.NONE:
            return result

        # Folder breaks ties between equal names coming from different folders
        result.sort(
            key=lambda ref: (self._sort_key(ref.image), ref.image, ref.folder),
            reverse=sort_order is SortOrder.DESC,
        )
        return result
