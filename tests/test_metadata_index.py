from core.models import ImageMetadata, ImageReference, MetadataField, TagWithCount
from core.services.metadata_index import MetadataIndex, build_groups, count_tags

IMG1 = ImageReference("A", "img1")
IMG2 = ImageReference("A", "img2")


def test_scenario_groups_and_counts(scenario_records):
    """Tags, sources and counts of the two-image corpus."""
    groups = build_groups(scenario_records)
    assert groups.tags["cat"] == [IMG1, IMG2]
    assert groups.tags["dog"] == [IMG2]
    assert groups.sources == {"X": [IMG1]}
    assert groups.authors == {}
    assert count_tags(scenario_records) == [TagWithCount("cat", 2), TagWithCount("dog", 1)]


def test_tag_membership_matches_records():
    """A reference is under a tag group iff the tag is in its record."""
    records = {}
    for i in range(1, 12):
        tags = ["a"]
        if i % 2 == 0:
            tags.append("b")
        if i % 3 == 0:
            tags.append("c")
        author = "me" if i % 2 else ""
        records[ImageReference("f", f"i{i}")] = ImageMetadata(author=author, tags=tuple(tags))
    groups = build_groups(records)
    for ref, metadata in records.items():
        for tag in ("a", "b", "c"):
            assert (ref in groups.tags.get(tag, [])) == (tag in metadata.tags)
    assert groups.authors["me"] == [r for r, m in records.items() if m.author]


def test_tag_counts_match_group_sizes(scenario_records):
    index = MetadataIndex()
    index.rebuild(scenario_records)
    for tc in index.tag_counts():
        assert tc.count == len(index.groups.tags[tc.tag])


def test_tag_counts_order_count_desc_then_name():
    records = {
        ImageReference("f", "1"): ImageMetadata(tags=("zeta", "beta")),
        ImageReference("f", "2"): ImageMetadata(tags=("alpha",)),
        ImageReference("f", "3"): ImageMetadata(tags=("zeta",)),
    }
    assert [tc.tag for tc in count_tags(records)] == ["zeta", "alpha", "beta"]


def test_rebuild_is_idempotent(scenario_records):
    index = MetadataIndex()
    first = index.rebuild(scenario_records)
    second = index.rebuild(scenario_records)
    assert first == second


def test_patch_moves_reference_between_groups(scenario_records):
    index = MetadataIndex()
    index.rebuild(scenario_records)
    index.patch(IMG1, ImageMetadata(source="Y", author="someone", tags=("dog",)))

    assert "X" not in index.groups.sources
    assert index.groups.sources["Y"] == [IMG1]
    assert index.groups.authors["someone"] == [IMG1]
    assert index.groups.tags["cat"] == [IMG2]
    # Snapshot order is kept: img1 precedes img2
    assert index.groups.tags["dog"] == [IMG1, IMG2]
    assert index.record(IMG1).source == "Y"


def test_patch_matches_full_rebuild(scenario_records):
    index = MetadataIndex()
    index.rebuild(scenario_records)
    new_ref = ImageReference("B", "img3")
    updates = [
        (IMG2, ImageMetadata(tags=("dog", "bird"))),
        (new_ref, ImageMetadata(source="X", tags=("cat",))),
    ]
    index.patch_many(updates)

    expected = dict(scenario_records)
    expected.update(updates)
    assert index.groups == build_groups(expected)
    assert index.tag_counts() == count_tags(expected)


def test_bulk_overwrite_scenario(scenario_records):
    """Bulk save of {source: Y} over both images overwrites every field."""
    index = MetadataIndex()
    index.rebuild(scenario_records)
    bulk = ImageMetadata(source="Y")
    index.patch_many([(IMG1, bulk), (IMG2, bulk)])

    assert "X" not in index.groups.sources
    assert index.groups.sources["Y"] == [IMG1, IMG2]
    assert index.groups.tags == {}
    assert index.tag_counts() == []


def test_refs_for_unknown_value_is_empty(scenario_records):
    index = MetadataIndex()
    index.rebuild(scenario_records)
    assert index.refs_for(MetadataField.TAGS, "missing") == []
    assert index.refs_for(MetadataField.TAGS, "cat") == [IMG1, IMG2]


def test_values_and_all_tags(scenario_records):
    index = MetadataIndex()
    index.rebuild(scenario_records)
    assert index.values(MetadataField.TAGS) == [("cat", 2), ("dog", 1)]
    assert index.values(MetadataField.SOURCES) == [("X", 1)]
    assert index.all_tags() == ["cat", "dog"]
    assert len(index) == 2


def test_record_of_unknown_reference_is_empty():
    index = MetadataIndex()
    assert index.record(ImageReference("nope", "x.png")).is_empty()
