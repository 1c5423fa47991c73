"""Persistence of the favorite image set as a JSON list of `folder/image` keys."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from core.models import ImageReference
from core.services.interfaces import IFavoritesStore, StoreIOError


class JsonFavoritesStore(IFavoritesStore):
    """Load and save favorites in toggle order."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def load(self) -> list[ImageReference]:
        """Return saved favorites; a missing or invalid file yields an empty list."""
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as ex:
            logger.warning("Favorites file unreadable {}: {}", self._path, ex)
            return []
        if not isinstance(data, list):
            logger.warning("Favorites file {} is not a list", self._path)
            return []
        favorites: list[ImageReference] = []
        for key in data:
            try:
                favorites.append(ImageReference.from_key(str(key)))
            except ValueError as ex:
                logger.warning("Skipping favorite entry: {}", ex)
        return favorites

    def save(self, favorites: list[ImageReference]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps([ref.key for ref in favorites], ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as ex:
            raise StoreIOError(f"Failed to write favorites {self._path}: {ex}") from ex
