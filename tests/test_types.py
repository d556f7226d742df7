"""Tests for shared types."""

import pytest

from wp_image_renamer.types import AuthMethod, BatchResult, ImageStatus, SiteStatus


class TestEnums:
    """Tests for string enums."""

    def test_values_compare_as_strings(self):
        assert AuthMethod.JWT == "jwt"
        assert SiteStatus("error") is SiteStatus.ERROR
        assert ImageStatus.UPLOADED.value == "uploaded"

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            ImageStatus("done")


class TestBatchResult:
    """Tests for BatchResult."""

    def test_defaults(self):
        result = BatchResult()
        assert (result.total, result.succeeded, result.failed) == (0, 0, 0)

    def test_record_error(self):
        result = BatchResult(total=3, succeeded=2)
        result.record_error("photo.jpg", "Timeout")

        assert result.failed == 1
        assert result.to_dict() == {
            "total": 3,
            "succeeded": 2,
            "failed": 1,
            "errors": ["photo.jpg: Timeout"],
        }
