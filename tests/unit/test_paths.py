"""Tests for field reference paths."""

from __future__ import annotations

import pytest

from ddbflow.core.exceptions import InvalidPathError, ReferenceResolutionError
from ddbflow.models.paths import FieldReference, ref, resolve_path, validate_path


class TestValidatePath:
    @pytest.mark.parametrize("path", ["$.bar", "$.Item.TotalCount.N", "$.items[0].id", "$.a[1][2]"])
    def test_accepts_valid_paths(self, path):
        assert validate_path(path) == path

    @pytest.mark.parametrize("path", ["bar", "$", "$bar", ".bar", "$.", "$..bar", "$.a b", "", 42, None])
    def test_rejects_invalid_paths(self, path):
        with pytest.raises(InvalidPathError):
            validate_path(path)

    def test_error_carries_step_id(self):
        with pytest.raises(InvalidPathError) as info:
            validate_path("bar", step_id="PutItem")
        assert info.value.step_id == "PutItem"
        assert info.value.path == "bar"


class TestFieldReference:
    def test_ref_builds_reference(self):
        assert ref("$.bar") == FieldReference(path="$.bar")
        assert str(ref("$.bar")) == "$.bar"

    def test_ref_rejects_bad_path(self):
        with pytest.raises(InvalidPathError):
            ref("bar")

    def test_model_rejects_bad_path(self):
        with pytest.raises(InvalidPathError):
            FieldReference(path="Item.TotalCount")


class TestResolvePath:
    STATE = {"Item": {"TotalCount": {"N": "18"}}, "rows": [{"id": "a"}, {"id": "b"}]}

    def test_resolves_nested_field(self):
        assert resolve_path("$.Item.TotalCount.N", self.STATE) == "18"

    def test_resolves_list_index(self):
        assert resolve_path("$.rows[1].id", self.STATE) == "b"

    def test_missing_field_is_execution_error(self):
        with pytest.raises(ReferenceResolutionError, match="no field 'Missing'"):
            resolve_path("$.Item.Missing", self.STATE)

    def test_index_out_of_range(self):
        with pytest.raises(ReferenceResolutionError):
            resolve_path("$.rows[5]", self.STATE)

    def test_index_into_non_list(self):
        with pytest.raises(ReferenceResolutionError, match="not a list"):
            resolve_path("$.Item[0]", self.STATE)

    def test_field_of_scalar(self):
        with pytest.raises(ReferenceResolutionError, match="not an object"):
            resolve_path("$.Item.TotalCount.N.deeper", self.STATE)

    def test_reference_resolve(self):
        assert ref("$.rows[0].id").resolve(self.STATE) == "a"
