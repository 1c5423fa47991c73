from core.models import ImageMetadata, TagWithCount
from core.services.edit_buffer import MetadataEditBuffer


def test_adding_same_tag_twice_keeps_one():
    buf = MetadataEditBuffer()
    assert buf.add_tag("cat") is True
    assert buf.add_tag("cat") is False
    assert buf.tags == ("cat",)


def test_add_tag_trims_and_rejects_blank():
    buf = MetadataEditBuffer()
    assert buf.add_tag("  dog  ") is True
    assert buf.add_tag("dog ") is False
    assert buf.add_tag("   ") is False
    assert buf.add_tag("") is False
    assert buf.tags == ("dog",)


def test_tags_are_case_sensitive_and_keep_insertion_order():
    buf = MetadataEditBuffer()
    for tag in ("b", "A", "a"):
        buf.add_tag(tag)
    assert buf.tags == ("b", "A", "a")


def test_remove_tag_absent_is_noop():
    buf = MetadataEditBuffer(ImageMetadata(tags=("cat", "dog")))
    assert buf.remove_tag("bird") is False
    assert buf.tags == ("cat", "dog")
    assert buf.remove_tag("cat") is True
    assert buf.tags == ("dog",)


def test_load_and_to_metadata_round_trip_fields():
    original = ImageMetadata(source="work", author="artist", tags=("x", "y"))
    buf = MetadataEditBuffer(original)
    buf.author = "other"
    assert buf.to_metadata() == ImageMetadata(source="work", author="other", tags=("x", "y"))
    # The source record is a value and is never touched by the buffer
    assert original.author == "artist"


def test_bulk_buffer_starts_empty():
    assert MetadataEditBuffer.for_bulk().to_metadata().is_empty()


def test_suggestions_skip_tags_already_in_buffer():
    buf = MetadataEditBuffer(ImageMetadata(tags=("cat",)))
    counts = [TagWithCount("cat", 3), TagWithCount("dog", 1)]
    assert buf.suggestions(counts) == [TagWithCount("dog", 1)]
