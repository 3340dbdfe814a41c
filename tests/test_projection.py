"""Tests for record model and projection (select, sort, limit)."""

import pytest

from otco.models.records import ProjectionSpec, RecordSet
from otco.models.request import RequestDescriptor
from otco.output.projection import project, sort_records


def record_set(*records):
    return RecordSet(records=tuple(records))


class TestRecordSet:
    """Tests for RecordSet field discovery."""

    def test_fields_union_in_first_appearance_order(self):
        rs = record_set({"a": 1, "b": 2}, {"c": 3, "a": 4}, {"d": None})
        assert rs.fields() == ["a", "b", "c", "d"]

    def test_pinned_fields_win(self):
        rs = RecordSet(records=({"a": 1},), pinned_fields=("z", "a"))
        assert rs.fields() == ["z", "a"]

    def test_from_items_wraps_scalars(self):
        rs = RecordSet.from_items([{"a": 1}, 5])
        assert rs.to_list() == [{"a": 1}, {"value": 5}]


class TestProjectionSpec:
    """Tests for parsing CLI-style projection options."""

    def test_parse(self):
        spec = ProjectionSpec.parse(fields="name, stars ,", sort="-stars", limit=5)
        assert spec.fields == ("name", "stars")
        assert spec.sort_key == "stars"
        assert spec.descending is True
        assert spec.limit == 5

    def test_parse_defaults(self):
        spec = ProjectionSpec.parse()
        assert spec == ProjectionSpec()
        assert spec.limit == 0

    def test_ascending_sort(self):
        spec = ProjectionSpec.parse(sort="name")
        assert spec.sort_key == "name"
        assert spec.descending is False

    def test_bare_descending_prefix_rejected(self):
        """A sort of just "-" names no field and is an error, not an unsorted listing."""
        with pytest.raises(ValueError):
            ProjectionSpec.parse(sort="-")
        with pytest.raises(ValueError):
            ProjectionSpec.parse(sort=" - ")

    def test_only_first_prefix_is_stripped(self):
        spec = ProjectionSpec.parse(sort="--x")
        assert spec.sort_key == "-x"
        assert spec.descending is True

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            ProjectionSpec(limit=-1)


class TestRequestDescriptor:
    """Tests for descriptor validation and filter building."""

    def test_build_drops_none_and_stringifies(self):
        d = RequestDescriptor.build("/x", {"a": None, "draft": True, "n": 3, "labels": ["x", "y"]})
        assert d.query == (("draft", "true"), ("n", "3"), ("labels", "x"), ("labels", "y"))

    @pytest.mark.parametrize("page_size", [0, 101])
    def test_page_size_range(self, page_size):
        with pytest.raises(ValueError):
            RequestDescriptor(path="/x", page_size=page_size)

    def test_path_must_be_absolute(self):
        with pytest.raises(ValueError):
            RequestDescriptor(path="x")

    def test_page_cap_must_be_positive(self):
        with pytest.raises(ValueError):
            RequestDescriptor(path="/x", page_cap=0)

    def test_defaults(self):
        d = RequestDescriptor(path="/x")
        assert d.page_size == 30
        assert d.page_cap == 10
        assert d.fetch_all is False


class TestFieldSelection:
    """Tests for projecting onto a field list."""

    def test_keys_are_exactly_the_fields(self):
        rs = record_set({"a": 1, "b": 2, "c": 3}, {"b": 5})
        out = project(rs, ProjectionSpec(fields=("b", "a")))
        assert [list(r) for r in out] == [["b", "a"], ["b", "a"]]
        assert out.to_list() == [{"b": 2, "a": 1}, {"b": 5, "a": None}]
        assert out.fields() == ["b", "a"]

    def test_pinned_fields_survive_empty_result(self):
        out = project(record_set(), ProjectionSpec(fields=("a",)))
        assert out.fields() == ["a"]
        assert len(out) == 0

    def test_no_fields_keeps_everything(self):
        rs = record_set({"a": 1}, {"b": 2})
        out = project(rs, ProjectionSpec())
        assert out.to_list() == rs.to_list()

    def test_input_not_mutated(self):
        original = {"a": 1, "b": 2}
        rs = record_set(original)
        project(rs, ProjectionSpec(fields=("a",), sort_key="a"))
        assert original == {"a": 1, "b": 2}
        assert rs.records[0] is original


class TestSorting:
    """Tests for stable, null-last sorting."""

    def test_stable_for_duplicates(self):
        rs = record_set(
            {"k": 2, "tag": "first"},
            {"k": 1, "tag": "x"},
            {"k": 2, "tag": "second"},
            {"k": 2, "tag": "third"},
        )
        out = project(rs, ProjectionSpec(sort_key="k"))
        assert [r["tag"] for r in out] == ["x", "first", "second", "third"]

    def test_descending_is_stable(self):
        rs = record_set({"k": 1, "t": "a"}, {"k": 2, "t": "b"}, {"k": 1, "t": "c"})
        out = project(rs, ProjectionSpec(sort_key="k", descending=True))
        assert [r["t"] for r in out] == ["b", "a", "c"]

    @pytest.mark.parametrize("descending", [False, True])
    def test_nulls_last_both_directions(self, descending):
        rs = record_set({"k": None, "t": "null"}, {"t": "missing"}, {"k": 3, "t": "3"}, {"k": 1, "t": "1"})
        out = project(rs, ProjectionSpec(sort_key="k", descending=descending))
        tags = [r["t"] for r in out]
        assert tags[-2:] == ["null", "missing"]
        assert tags[:2] == (["3", "1"] if descending else ["1", "3"])

    def test_numbers_sort_numerically(self):
        rs = record_set({"k": 10}, {"k": 9}, {"k": 100}, {"k": 2.5})
        assert [r["k"] for r in sort_records(list(rs), "k")] == [2.5, 9, 10, 100]

    def test_strings_are_case_sensitive(self):
        rs = record_set({"k": "b"}, {"k": "B"}, {"k": "a"})
        assert [r["k"] for r in sort_records(list(rs), "k")] == ["B", "a", "b"]

    def test_mixed_types_do_not_raise(self):
        rs = record_set({"k": "x"}, {"k": {"n": 1}}, {"k": 3}, {"k": True})
        assert [r["k"] for r in sort_records(list(rs), "k")] == [True, 3, "x", {"n": 1}]

    def test_sort_key_outside_selected_fields(self):
        rs = record_set({"name": "b", "stars": 5}, {"name": "a", "stars": 9})
        out = project(rs, ProjectionSpec(fields=("name",), sort_key="stars", descending=True))
        assert out.to_list() == [{"name": "a"}, {"name": "b"}]


class TestLimit:
    """Tests for limit ordering."""

    def test_limit_applies_after_sort(self):
        rs = record_set({"v": 3}, {"v": 1}, {"v": 2})
        out = project(rs, ProjectionSpec(sort_key="v", limit=2))
        assert [r["v"] for r in out] == [1, 2]

    def test_zero_limit_is_unlimited(self):
        rs = record_set({"v": 1}, {"v": 2})
        assert len(project(rs, ProjectionSpec(limit=0))) == 2

    def test_limit_larger_than_set(self):
        rs = record_set({"v": 1})
        assert len(project(rs, ProjectionSpec(limit=10))) == 1
