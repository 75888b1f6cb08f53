"""Tests for list payload normalization."""

import pytest

from apilink import normalize_api_array


class TestNormalizeApiArray:
    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            (None, []),
            ([], []),
            ([1, 2], [1, 2]),
            ({"data": [1]}, [1]),
            ({"items": [2]}, [2]),
            ({"customers": [3]}, [3]),
            ({"results": [4]}, [4]),
            ({"payload": [5]}, [5]),
            ("text", []),
            (42, []),
        ],
    )
    def test_shapes(self, payload, expected) -> None:
        """Test normalizing each payload shape."""
        assert normalize_api_array(payload) == expected

    def test_single_object_is_wrapped(self) -> None:
        """Test wrapping a single object."""
        assert normalize_api_array({"id": 1}) == [{"id": 1}]

    def test_first_list_field_wins(self) -> None:
        """Test that the first list field is used."""
        assert normalize_api_array({"data": [1], "items": [2]}) == [1]
