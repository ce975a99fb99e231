"""Tests for the pure product section transforms in vappprops.core.sections."""
import copy

import pytest

from vappprops.core.models import Multi, Property, Scalar, Section
from vappprops.core.sections import (
    delete_property,
    delete_section,
    duplicate_section_ids,
    find_section,
    list_properties,
    upsert_property,
)


def _sample_sections() -> list[Section]:
    return [
        Section(
            id="",
            info="Default",
            properties=[
                Property(key="a", label="A", value=Scalar("1")),
                Property(key="m", label="M", value=Multi(("x", "y")), description="multi"),
            ],
        ),
        Section(id="app", info="Application", properties=[Property(key="b", label="B", value=Scalar("2"))]),
    ]


def test_stamp_scenario_from_empty_list() -> None:
    result = upsert_property([], "", "Stamp", "stampKey", "2024-01-01T00:00:00")
    assert len(result) == 1
    assert result[0].id == ""
    assert [p.key for p in result[0].properties] == ["stampKey"]
    assert result[0].properties[0].value == Scalar("2024-01-01T00:00:00")

    result = upsert_property(result, "", "Stamp", "stampKey", "2024-01-02T00:00:00")
    assert len(result) == 1
    assert len(result[0].properties) == 1
    assert result[0].properties[0].value == Scalar("2024-01-02T00:00:00")

    result, found = delete_property(result, "", "stampKey")
    assert found is True
    assert len(result) == 1
    assert result[0].properties == []

    result, found = delete_section(result, "")
    assert found is True
    assert result == []


def test_new_property_defaults() -> None:
    result = upsert_property([], "", "Stamp", "stampKey", "v")
    prop = result[0].properties[0]
    assert prop.label == "Stamp"
    assert prop.type == "string"
    assert prop.user_configurable is True
    assert result[0].info == ""


def test_upsert_returns_same_list_object() -> None:
    sections: list[Section] = []
    assert upsert_property(sections, "", "L", "k", "v") is sections


def test_upsert_is_idempotent() -> None:
    once = upsert_property(_sample_sections(), "app", "C", "c", "3")
    twice = upsert_property(upsert_property(_sample_sections(), "app", "C", "c", "3"), "app", "C", "c", "3")
    assert once == twice


def test_upsert_default_section_twice_never_duplicates() -> None:
    sections = upsert_property([], "", "L1", "k1", "v1")
    sections = upsert_property(sections, "", "L2", "k2", "v2")
    sections = upsert_property(sections, None, "L3", "k3", "v3")
    assert [s.id for s in sections] == [""]
    assert [p.key for p in sections[0].properties] == ["k1", "k2", "k3"]


def test_upsert_existing_key_keeps_label_description_and_type() -> None:
    sections = _sample_sections()
    sections[0].properties[0].description = "keep me"
    upsert_property(sections, "", "Ignored", "a", "new")
    prop = sections[0].properties[0]
    assert prop.label == "A"
    assert prop.description == "keep me"
    assert prop.type == "string"
    assert prop.value == Scalar("new")


def test_upsert_overwrites_multi_value_with_scalar() -> None:
    sections = _sample_sections()
    upsert_property(sections, "", "M", "m", "single")
    assert sections[0].properties[1].value == Scalar("single")


def test_upsert_leaves_other_sections_untouched() -> None:
    before = _sample_sections()
    after = upsert_property(copy.deepcopy(before), "", "New", "n", "v")
    listing = list_properties(after)
    assert listing[1].id == "app"
    assert listing[1].properties == before[1].properties
    assert [p.key for p in listing[0].properties] == ["a", "m", "n"]
    assert listing[0].properties[-1].value == Scalar("v")


def test_upsert_appends_new_section_at_end() -> None:
    sections = upsert_property(_sample_sections(), "extra", "E", "e", "5")
    assert [s.id for s in sections] == ["", "app", "extra"]
    assert sections[-1].info == ""


def test_upsert_requires_key() -> None:
    with pytest.raises(ValueError):
        upsert_property([], "", "L", "", "v")


def test_list_properties_empty() -> None:
    assert list_properties([]) == []


def test_list_properties_returns_copies() -> None:
    sections = _sample_sections()
    listing = list_properties(sections)
    listing[0].properties[0].value = Scalar("changed")
    listing[0].properties.clear()
    assert sections[0].properties[0].value == Scalar("1")
    assert len(sections[0].properties) == 2


def test_delete_property_twice() -> None:
    sections = _sample_sections()
    sections, found = delete_property(sections, "", "a")
    assert found is True
    snapshot = copy.deepcopy(sections)
    sections, found = delete_property(sections, "", "a")
    assert found is False
    assert sections == snapshot


def test_delete_property_preserves_order() -> None:
    sections = _sample_sections()
    upsert_property(sections, "", "Z", "z", "9")
    delete_property(sections, "", "m")
    assert [p.key for p in sections[0].properties] == ["a", "z"]


def test_delete_property_missing_section() -> None:
    sections = _sample_sections()
    snapshot = copy.deepcopy(sections)
    sections, found = delete_property(sections, "nope", "a")
    assert found is False
    assert sections == snapshot


def test_delete_section_removes_properties() -> None:
    sections, found = delete_section(_sample_sections(), "app")
    assert found is True
    assert "app" not in [listing.id for listing in list_properties(sections)]
    assert all(p.key != "b" for s in sections for p in s.properties)


def test_delete_section_missing() -> None:
    sections = _sample_sections()
    sections, found = delete_section(sections, "nope")
    assert found is False
    assert len(sections) == 2


def test_first_matching_section_wins() -> None:
    sections = [Section(id="dup", info="first"), Section(id="dup", info="second")]
    assert duplicate_section_ids(sections) == ["dup"]
    assert find_section(sections, "dup").info == "first"
    upsert_property(sections, "dup", "K", "k", "v")
    assert sections[0].properties and not sections[1].properties
    sections, found = delete_section(sections, "dup")
    assert found is True
    assert [s.info for s in sections] == ["second"]


def test_key_whitespace_is_ignored() -> None:
    sections = upsert_property([], "", "K", " k ", "1")
    upsert_property(sections, "", "K", "k", "2")
    assert [(p.key, p.value) for p in sections[0].properties] == [("k", Scalar("2"))]
    with pytest.raises(ValueError):
        upsert_property(sections, "", "K", "   ", "3")
    sections, found = delete_property(sections, "", " k")
    assert found is True
    assert sections[0].properties == []


def test_section_class_is_part_of_identity() -> None:
    sections = [Section(id="", product_class="com.acme", info="Acme")]
    assert find_section(sections, "") is None
    upsert_property(sections, "", "K", "k", "v")
    assert [(s.product_class, s.id) for s in sections] == [("com.acme", ""), ("", "")]
    assert sections[0].properties == []

    upsert_property(sections, "", "A", "a", "1", product_class="com.acme")
    assert [p.key for p in sections[0].properties] == ["a"]
    assert duplicate_section_ids(sections) == []

    sections, found = delete_section(sections, "", product_class="com.acme")
    assert found is True
    assert [(s.product_class, s.id) for s in sections] == [("", "")]


def test_listing_carries_section_class() -> None:
    listing = list_properties([Section(id="app", product_class="com.acme")])
    assert listing[0].product_class == "com.acme"
