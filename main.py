from __future__ import annotations

import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication
from loguru import logger

from app.viewmodels.library_vm import LibraryVM
from core.services.navigation import MAX_INTERVAL_SECONDS, MIN_INTERVAL_SECONDS
from core.services.sort_service import init_collation
from infrastructure.favorites_store import JsonFavoritesStore
from infrastructure.json_metadata_store import JsonMetadataStore
from infrastructure.logging import init_logging
from infrastructure.qt_timer import QtIntervalTimer
from infrastructure.settings import JsonSettings

BASE_DIR = Path(__file__).parent


def build_library(settings: JsonSettings) -> LibraryVM:
    """Wire the store, timer and favorites configured in `settings` into a LibraryVM."""
    root = settings.get_path("library.root", "~/.config/image-library")
    store = JsonMetadataStore(root)
    favorites = None
    if settings.get("favorites.persist", True):
        favorites = JsonFavoritesStore(root / "favorites.json")
    return LibraryVM(
        store,
        QtIntervalTimer(),
        favorites_store=favorites,
        max_workers=settings.get_int("loading.max_workers", 8, minimum=1),
        interval_seconds=settings.get_int(
            "slideshow.interval_seconds",
            3,
            minimum=MIN_INTERVAL_SECONDS,
            maximum=MAX_INTERVAL_SECONDS,
        ),
    )


def main() -> int:
    settings = JsonSettings(BASE_DIR / "settings.json")
    init_logging(settings.get("logging.dir"), level=str(settings.get("logging.level", "INFO")))
    init_collation(str(settings.get("sorting.locale", "")))

    app = QCoreApplication(sys.argv)  # pylint: disable=unused-variable
    vm = build_library(settings)
    vm.load_folders()

    print(f"{len(vm.folders)} folders")
    for folder in vm.folders:
        print(f"  {folder.name}  {folder.size_mb:.0f}MB")
    tag_counts = vm.tag_counts()
    print(f"{len(tag_counts)} tags")
    for tc in tag_counts:
        print(f"  {tc.tag} ({tc.count})")
    if vm.last_load.failed:
        logger.warning("{} images of the first folder failed to load", len(vm.last_load.failed))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
