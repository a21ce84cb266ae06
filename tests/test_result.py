"""
Tests for Result
"""
import pytest

from wasteroute.core.result import Result


class TestResult:

    @pytest.mark.unit
    def test_success(self):
        result = Result.success([1, 2])

        assert result.is_success
        assert not result.is_failure
        assert result.get_or_none() == [1, 2]
        assert result.get_or_raise() == [1, 2]

    @pytest.mark.unit
    def test_success_may_hold_none(self):
        result = Result.success(None)

        assert result.is_success
        assert result.get_or_default("fallback") is None

    @pytest.mark.unit
    def test_failure(self):
        error = RuntimeError("boom")
        result = Result.failure(error)

        assert result.is_failure
        assert result.error is error
        assert result.get_or_none() is None
        assert result.get_or_default([]) == []

    @pytest.mark.unit
    def test_failure_get_or_raise(self):
        with pytest.raises(RuntimeError, match="boom"):
            Result.failure(RuntimeError("boom")).get_or_raise()
