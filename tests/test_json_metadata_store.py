import json

import pytest

from core.models import ImageMetadata, ImageReference, TagWithCount
from core.services.interfaces import ImageNotFoundError, MetadataValidationError, StoreIOError
from infrastructure.json_metadata_store import JsonMetadataStore


@pytest.fixture
def library(tmp_path):
    images = tmp_path / "images"
    (images / "b_folder").mkdir(parents=True)
    (images / "a_folder").mkdir()
    (images / "a_folder" / "z.png").write_bytes(b"\x00" * 2048)
    (images / "a_folder" / "A.JPG").write_bytes(b"\x00" * 1024)
    (images / "a_folder" / "notes.txt").write_text("not an image")
    (images / "a_folder" / "sub").mkdir()
    (images / "a_folder" / "sub" / "deep.gif").write_bytes(b"\x00" * 1024)
    return JsonMetadataStore(tmp_path)


def test_list_folders_sorted_with_size(library):
    folders = library.list_folders()
    assert [f.name for f in folders] == ["a_folder", "b_folder"]
    expected_bytes = 2048 + 1024 + len("not an image") + 1024
    assert folders[0].size_mb == pytest.approx(expected_bytes / (1024 * 1024))
    assert folders[1].size_mb == 0


def test_list_folders_without_root_is_empty(tmp_path):
    assert JsonMetadataStore(tmp_path / "missing").list_folders() == []


def test_list_images_filters_extensions_and_sorts(library):
    assert library.list_images("a_folder") == ["A.JPG", "z.png"]
    assert library.list_images("b_folder") == []


def test_list_images_of_missing_folder_raises_not_found(library):
    with pytest.raises(ImageNotFoundError):
        library.list_images("gone")


def test_resolve_path(library, tmp_path):
    expected = tmp_path / "images" / "a_folder" / "z.png"
    assert library.resolve_path("a_folder", "z.png") == str(expected)
    with pytest.raises(ImageNotFoundError):
        library.resolve_path("a_folder", "missing.png")


def test_load_absent_metadata_is_none(library):
    assert library.load_metadata("a_folder", "z.png") is None


def test_save_then_load_replaces_whole_record(library, tmp_path):
    library.save_metadata("a_folder", "z.png", ImageMetadata("work", "artist", ("cat", "dog")))
    library.save_metadata("a_folder", "z.png", ImageMetadata(source="other"))

    path = tmp_path / "metadata" / "a_folder" / "z.png.json"
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "source": "other",
        "author": "",
        "tags": [],
    }
    assert library.load_metadata("a_folder", "z.png") == ImageMetadata(source="other")
    assert [p.name for p in path.parent.iterdir()] == ["z.png.json"]


def test_save_rejects_duplicate_tags(library, tmp_path):
    with pytest.raises(MetadataValidationError):
        library.save_metadata("a_folder", "z.png", ImageMetadata(tags=("cat", "cat")))
    assert not (tmp_path / "metadata" / "a_folder" / "z.png.json").exists()


def test_save_io_failure_raises_store_io_error(library, tmp_path):
    # A file where the metadata folder should be makes the directory creation fail
    (tmp_path / "metadata").write_text("blocker")
    with pytest.raises(StoreIOError):
        library.save_metadata("a_folder", "z.png", ImageMetadata(source="x"))


def test_unparseable_record_loads_as_empty(library, tmp_path):
    folder = tmp_path / "metadata" / "a_folder"
    folder.mkdir(parents=True)
    (folder / "z.png.json").write_text("{not json", encoding="utf-8")
    (folder / "A.JPG.json").write_text('{"source": 3}', encoding="utf-8")
    assert library.load_metadata("a_folder", "z.png") == ImageMetadata()
    assert library.load_metadata("a_folder", "A.JPG") == ImageMetadata()


def test_duplicate_tags_in_file_are_collapsed(library, tmp_path):
    folder = tmp_path / "metadata" / "a_folder"
    folder.mkdir(parents=True)
    (folder / "z.png.json").write_text('{"tags": ["b", "a", "b"]}', encoding="utf-8")
    assert library.load_metadata("a_folder", "z.png").tags == ("b", "a")


def test_corpus_groups_and_counts(library, tmp_path):
    library.save_metadata("b_folder", "img1", ImageMetadata(source="X", tags=("cat",)))
    library.save_metadata("a_folder", "img2", ImageMetadata(tags=("cat", "dog")))
    (tmp_path / "metadata" / "a_folder" / "broken.png.json").write_text("[", encoding="utf-8")

    refs = [ref for ref, _m in library.iter_metadata()]
    assert refs == [ImageReference("a_folder", "img2"), ImageReference("b_folder", "img1")]

    groups = library.compute_groups()
    assert groups.tags["cat"] == refs
    assert groups.sources == {"X": [ImageReference("b_folder", "img1")]}
    assert library.tag_counts() == [TagWithCount("cat", 2), TagWithCount("dog", 1)]


def test_empty_corpus(library):
    assert library.load_all() == {}
    assert library.tag_counts() == []
