from __future__ import annotations

from collections.abc import Callable

import pytest

from core.models import (
    FolderInfo,
    ImageMetadata,
    ImageReference,
    MetadataGroups,
    TagWithCount,
)
from core.services.interfaces import (
    IIntervalTimer,
    IMetadataStore,
    ImageNotFoundError,
    StoreIOError,
)
from core.services.metadata_index import build_groups, count_tags


class FakeStore(IMetadataStore):
    """In-memory store with switchable per-image failures."""

    def __init__(self) -> None:
        self.folders: dict[str, list[str]] = {}
        self.records: dict[ImageReference, ImageMetadata] = {}
        self.fail_save: set[ImageReference] = set()
        self.fail_load: set[ImageReference] = set()
        self.fail_path: set[ImageReference] = set()
        self.saves: list[ImageReference] = []

    def add(self, folder: str, image: str, metadata: ImageMetadata | None = None) -> ImageReference:
        self.folders.setdefault(folder, []).append(image)
        ref = ImageReference(folder, image)
        if metadata is not None:
            self.records[ref] = metadata
        return ref

    def list_folders(self) -> list[FolderInfo]:
        return [FolderInfo(name=name, size_mb=0.0) for name in sorted(self.folders)]

    def list_images(self, folder: str) -> list[str]:
        if folder not in self.folders:
            raise ImageNotFoundError(folder)
        return list(self.folders[folder])

    def resolve_path(self, folder: str, image: str) -> str:
        if ImageReference(folder, image) in self.fail_path:
            raise ImageNotFoundError(f"{folder}/{image}")
        return f"/library/{folder}/{image}"

    def load_metadata(self, folder: str, image: str) -> ImageMetadata | None:
        ref = ImageReference(folder, image)
        if ref in self.fail_load:
            raise StoreIOError(f"read failed: {ref.key}")
        return self.records.get(ref)

    def save_metadata(self, folder: str, image: str, metadata: ImageMetadata) -> None:
        ref = ImageReference(folder, image)
        if ref in self.fail_save:
            raise StoreIOError(f"write failed: {ref.key}")
        self.records[ref] = metadata
        self.saves.append(ref)

    def iter_metadata(self):
        for ref in sorted(self.records):
            yield ref, self.records[ref]

    def compute_groups(self) -> MetadataGroups:
        return build_groups(dict(self.iter_metadata()))

    def tag_counts(self) -> list[TagWithCount]:
        return count_tags(dict(self.iter_metadata()))


class ManualTimer(IIntervalTimer):
    """Timer fired by hand from tests."""

    def __init__(self) -> None:
        self.interval_ms: int | None = None
        self._callback: Callable[[], None] | None = None
        self.starts = 0

    def start(self, interval_ms: int, callback: Callable[[], None]) -> None:
        self.interval_ms = interval_ms
        self._callback = callback
        self.starts += 1

    def stop(self) -> None:
        self._callback = None

    @property
    def is_active(self) -> bool:
        return self._callback is not None

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self._callback is not None:
                self._callback()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture
def scenario_records() -> dict[ImageReference, ImageMetadata]:
    return {
        ImageReference("A", "img1"): ImageMetadata(source="X", tags=("cat",)),
        ImageReference("A", "img2"): ImageMetadata(source="", tags=("cat", "dog")),
    }
