"""Tests for OData query compilation and option merging."""

import pytest

from fleet_models.errors import InvalidParameterError
from fleet_models.transport.odata import (
    compile_expand,
    compile_filter,
    compile_literal,
    compile_options,
    compile_resource_id,
    merge_options,
    normalize_expand,
)


class TestCompileLiteral:
    """Tests for compile_literal function."""

    def test_string_is_quoted_and_escaped(self):
        """Strings should be single-quoted with quotes doubled."""
        assert compile_literal("O'Brien") == "'O''Brien'"

    def test_scalars(self):
        """Booleans, numbers and None should use OData keywords."""
        assert compile_literal(True) == "true"
        assert compile_literal(False) == "false"
        assert compile_literal(42) == "42"
        assert compile_literal(None) == "null"


class TestCompileFilter:
    """Tests for compile_filter function."""

    def test_equality(self):
        """A plain field should compile to an eq comparison."""
        assert compile_filter({"app_name": "MyApp"}) == "app_name eq 'MyApp'"

    def test_multiple_fields_are_anded(self):
        """Several fields should be joined with and."""
        result = compile_filter({"is_final": True, "status": "success"})
        assert result == "(is_final eq true) and (status eq 'success')"

    def test_or(self):
        """$or should join its members with or."""
        result = compile_filter({"$or": {"app_name": "a", "slug": "b"}})
        assert result == "(app_name eq 'a') or (slug eq 'b')"

    def test_and_list(self):
        """$and should accept a list of filters."""
        result = compile_filter({"$and": [{"a": 1}, {"b": 2}]})
        assert result == "(a eq 1) and (b eq 2)"

    def test_comparison_operator(self):
        """$ne should compile to ne."""
        assert compile_filter({"status": {"$ne": "deleted"}}) == "status ne 'deleted'"

    def test_function_operator(self):
        """$startswith should compile to a function call."""
        result = compile_filter({"commit": {"$startswith": "abc"}})
        assert result == "startswith(commit,'abc')"

    def test_in(self):
        """$in should compile to an or of equalities."""
        result = compile_filter({"id": {"$in": [1, 2]}})
        assert result == "(id eq 1) or (id eq 2)"

    def test_navigation(self):
        """A nested dict without operators should navigate into a relation."""
        result = compile_filter({"organization": {"handle": "gh_me"}})
        assert result == "organization/handle eq 'gh_me'"

    def test_any_lambda(self):
        """$any should compile to a lambda expression."""
        result = compile_filter(
            {"is_directly_accessible_by__user": {"$any": {"$alias": "dau", "$expr": {1: 1}}}}
        )
        assert result == "is_directly_accessible_by__user/any(dau:1 eq 1)"

    def test_not(self):
        """$not should negate the inner filter."""
        assert compile_filter({"$not": {"a": 1}}) == "not(a eq 1)"

    def test_unknown_operator(self):
        """Unknown operators should be rejected."""
        with pytest.raises(InvalidParameterError):
            compile_filter({"status": {"$like": "x"}})

    def test_empty_filter(self):
        """An empty filter should be rejected."""
        with pytest.raises(InvalidParameterError):
            compile_filter({})


class TestCompileExpand:
    """Tests for compile_expand function."""

    def test_plain_relation(self):
        """A relation without options should compile to its name."""
        assert compile_expand({"owns__device": {}}) == "owns__device"

    def test_nested_options(self):
        """Relation options should be compiled inside parentheses."""
        result = compile_expand(
            {"owns__release": {"$select": "id", "$top": 1, "$orderby": "created_at desc"}}
        )
        assert result == "owns__release($select=id;$top=1;$orderby=created_at desc)"


class TestCompileOptions:
    """Tests for compile_options function."""

    def test_all_options(self):
        """Every known option should be compiled to a query parameter."""
        params = compile_options(
            {
                "$filter": {"id": 1},
                "$select": ["id", "app_name"],
                "$orderby": "app_name asc",
                "$top": 10,
                "$skip": 5,
            }
        )
        assert params == {
            "$filter": "id eq 1",
            "$select": "id,app_name",
            "$orderby": "app_name asc",
            "$top": "10",
            "$skip": "5",
        }

    def test_unknown_option(self):
        """Unknown options should be rejected."""
        with pytest.raises(InvalidParameterError):
            compile_options({"$count": True})


class TestCompileResourceId:
    """Tests for compile_resource_id function."""

    def test_numeric_id(self):
        """Numeric ids should be inlined."""
        assert compile_resource_id(5) == ("(5)", {})

    def test_alternate_key(self):
        """Alternate keys should use parameter aliases."""
        segment, params = compile_resource_id({"slug": "myorg/myapp"})
        assert segment == "(slug=@slug)"
        assert params == {"@slug": "'myorg/myapp'"}


class TestMergeOptions:
    """Tests for merge_options function."""

    def test_filters_are_composed(self):
        """Both filters should apply, joined with $and."""
        result = merge_options({"$filter": {"a": 1}}, {"$filter": {"b": 2}})
        assert result["$filter"] == {"$and": [{"a": 1}, {"b": 2}]}

    def test_caller_filter_without_default(self):
        """A caller filter should be used as-is when there is no default."""
        result = merge_options({}, {"$filter": {"b": 2}})
        assert result["$filter"] == {"b": 2}

    def test_select_union(self):
        """Selects should be unioned, defaults first, without duplicates."""
        result = merge_options({"$select": ["id", "app_name"]}, {"$select": "app_name,slug"})
        assert result["$select"] == ["id", "app_name", "slug"]

    def test_select_star_wins(self):
        """Selecting '*' on either side should select everything."""
        assert merge_options({"$select": "id"}, {"$select": "*"})["$select"] == "*"
        assert merge_options({"$select": "*"}, {"$select": "id"})["$select"] == "*"

    def test_scalar_options_caller_wins(self):
        """$orderby, $top and $skip should take the caller's value."""
        result = merge_options(
            {"$orderby": "app_name asc", "$top": 1},
            {"$orderby": "id desc", "$top": 5, "$skip": 2},
        )
        assert result["$orderby"] == "id desc"
        assert result["$top"] == 5
        assert result["$skip"] == 2

    def test_expand_merged_recursively(self):
        """Expansions on the same relation should be merged."""
        result = merge_options(
            {"$expand": {"owns__device": {"$select": "id"}}},
            {"$expand": ["owns__device", "organization"]},
        )
        assert result["$expand"] == {
            "owns__device": {"$select": "id"},
            "organization": {},
        }

        result = merge_options(
            {"$expand": {"owns__device": {"$select": "id"}}},
            {"$expand": {"owns__device": {"$select": "uuid", "$filter": {"is_online": True}}}},
        )
        assert result["$expand"]["owns__device"] == {
            "$select": ["id", "uuid"],
            "$filter": {"is_online": True},
        }

    def test_defaults_not_modified(self):
        """Merging should not mutate the default options."""
        defaults = {"$filter": {"a": 1}, "$select": ["id"]}
        merge_options(defaults, {"$filter": {"b": 2}, "$select": ["slug"]})
        assert defaults == {"$filter": {"a": 1}, "$select": ["id"]}

    def test_unknown_option(self):
        """Unknown caller options should be rejected."""
        with pytest.raises(InvalidParameterError):
            merge_options({}, {"$bogus": 1})

    def test_normalize_expand_forms(self):
        """All $expand forms should normalize to a relation dict."""
        assert normalize_expand("a, b") == {"a": {}, "b": {}}
        assert normalize_expand(["a", {"b": {"$select": "id"}}]) == {
            "a": {},
            "b": {"$select": "id"},
        }
        assert normalize_expand(None) == {}
