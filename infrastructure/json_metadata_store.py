"""File-system persistence for library images and their metadata records.

Images live under `<root>/images/<folder>/`; each record is a pretty-printed
JSON file at `<root>/metadata/<folder>/<image>.json` holding exactly the
`source`, `author` and `tags` fields.
"""

from __future__ import annotations

from collections.abc import Iterator
import json
import os
from pathlib import Path
import tempfile
from typing import Any

from loguru import logger

from core.models import (
    FolderInfo,
    ImageMetadata,
    ImageReference,
    MetadataGroups,
    TagWithCount,
)
from core.services.interfaces import (
    IMetadataStore,
    ImageNotFoundError,
    MetadataValidationError,
    StoreIOError,
)
from core.services.metadata_index import build_groups, count_tags

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg")
METADATA_SUFFIX = ".json"


def _folder_size_bytes(path: Path) -> int:
    """Total size of regular files below `path`; unreadable entries count as 0."""
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.path.getsize(os.path.join(root, name))
            except OSError as ex:
                logger.debug("getsize failed for {}: {}", name, ex)
    return total


def _metadata_from_json(data: Any) -> ImageMetadata:
    """Build a record from decoded JSON, raising ValueError when malformed."""
    if not isinstance(data, dict):
        raise ValueError("metadata must be a JSON object")
    source = data.get("source", "")
    author = data.get("author", "")
    tags = data.get("tags", [])
    if not isinstance(source, str) or not isinstance(author, str):
        raise ValueError("source and author must be strings")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError("tags must be a list of strings")
    # Drop repeated tags from hand-edited files, keeping the first occurrence
    return ImageMetadata(source=source, author=author, tags=tuple(dict.fromkeys(tags)))


def validate_metadata(metadata: ImageMetadata) -> None:
    """Raise `MetadataValidationError` unless `metadata` can be persisted."""
    if not isinstance(metadata.source, str) or not isinstance(metadata.author, str):
        raise MetadataValidationError("source and author must be strings")
    if not all(isinstance(t, str) and t for t in metadata.tags):
        raise MetadataValidationError("tags must be non-empty strings")
    if len(set(metadata.tags)) != len(metadata.tags):
        raise MetadataValidationError(f"duplicate tags: {list(metadata.tags)}")


class JsonMetadataStore(IMetadataStore):
    """Load and save image metadata as one JSON file per image."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()
        self._images_dir = self._root / "images"
        self._metadata_dir = self._root / "metadata"

    @property
    def root(self) -> Path:
        return self._root

    def _metadata_file(self, folder: str, image: str) -> Path:
        return self._metadata_dir / folder / f"{image}{METADATA_SUFFIX}"

    def list_folders(self) -> list[FolderInfo]:
        """Return image folders sorted by name with their recursive size."""
        if not self._images_dir.exists():
            return []
        folders: list[FolderInfo] = []
        try:
            for entry in self._images_dir.iterdir():
                if entry.is_dir():
                    size_mb = _folder_size_bytes(entry) / (1024.0 * 1024.0)
                    folders.append(FolderInfo(name=entry.name, size_mb=size_mb))
        except OSError as ex:
            raise StoreIOError(f"Failed to list folders: {ex}") from ex
        folders.sort(key=lambda f: f.name)
        return folders

    def list_images(self, folder: str) -> list[str]:
        """Return image file names of `folder`, sorted."""
        folder_path = self._images_dir / folder
        if not folder_path.is_dir():
            raise ImageNotFoundError(f"Folder not found: {folder}")
        try:
            names = [
                entry.name
                for entry in folder_path.iterdir()
                if entry.is_file() and entry.name.lower().endswith(IMAGE_EXTENSIONS)
            ]
        except OSError as ex:
            raise StoreIOError(f"Failed to list images of {folder}: {ex}") from ex
        names.sort()
        return names

    def resolve_path(self, folder: str, image: str) -> str:
        path = self._images_dir / folder / image
        if not path.is_file():
            raise ImageNotFoundError(f"Image not found: {folder}/{image}")
        return str(path)

    def load_metadata(self, folder: str, image: str) -> ImageMetadata | None:
        """Return the record, None when absent, or an empty record when unreadable JSON."""
        path = self._metadata_file(folder, image)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as ex:
            raise StoreIOError(f"Failed to read metadata {path}: {ex}") from ex
        try:
            return _metadata_from_json(json.loads(text))
        except ValueError as ex:
            logger.warning("Invalid metadata for {}/{}: {}. Using defaults.", folder, image, ex)
            return ImageMetadata()

    def save_metadata(self, folder: str, image: str, metadata: ImageMetadata) -> None:
        """Replace the record atomically: write a temp file, then rename over the target."""
        validate_metadata(metadata)
        path = self._metadata_file(folder, image)
        payload = json.dumps(metadata.to_dict(), ensure_ascii=False, indent=2)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, suffix=".tmp", delete=False
            ) as f:
                tmp_name = f.name
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as ex:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreIOError(f"Failed to write metadata {path}: {ex}") from ex

    def iter_metadata(self) -> Iterator[tuple[ImageReference, ImageMetadata]]:
        """Yield every parseable record, ordered by folder then image."""
        if not self._metadata_dir.exists():
            return
        try:
            folder_dirs = sorted(p for p in self._metadata_dir.iterdir() if p.is_dir())
        except OSError as ex:
            raise StoreIOError(f"Failed to scan metadata: {ex}") from ex
        for folder_dir in folder_dirs:
            try:
                files = sorted(
                    p
                    for p in folder_dir.iterdir()
                    if p.is_file() and p.name.endswith(METADATA_SUFFIX)
                )
            except OSError as ex:
                logger.error("Metadata folder scan failed for {}: {}", folder_dir, ex)
                continue
            for file in files:
                try:
                    metadata = _metadata_from_json(json.loads(file.read_text(encoding="utf-8")))
                except (OSError, ValueError) as ex:
                    logger.warning("Skipping metadata file {}: {}", file, ex)
                    continue
                image = file.name[: -len(METADATA_SUFFIX)]
                yield ImageReference(folder=folder_dir.name, image=image), metadata

    def load_all(self) -> dict[ImageReference, ImageMetadata]:
        """Snapshot of the stored corpus."""
        return dict(self.iter_metadata())

    def compute_groups(self) -> MetadataGroups:
        return build_groups(self.load_all())

    def tag_counts(self) -> list[TagWithCount]:
        return count_tags(self.load_all())
