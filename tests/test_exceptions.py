"""Tests for the Climaview exception hierarchy.

Covers:
- Base exception context and serialization
- Explorer and data exception subclasses
- Exception chain formatting
"""

import json
from datetime import datetime

import pytest

from climaview.exceptions import (
    ClimaviewException,
    ConfigurationError,
    DataException,
    DatasetNotLoadedError,
    ExplorerException,
    LoadFailure,
    ValidationError,
    format_exception_chain,
)


class TestClimaviewException:
    """Tests for base ClimaviewException."""

    def test_create_basic_exception(self):
        exc = ClimaviewException("Something went wrong")

        assert exc.message == "Something went wrong"
        assert exc.error_code == "CV_CLIMAVIEW_EXCEPTION"
        assert exc.component is None
        assert exc.context == {}
        assert isinstance(exc.timestamp, datetime)

    def test_str_includes_code_and_component(self):
        exc = ClimaviewException("boom", error_code="CV_TEST_001", component="Loader")
        assert str(exc) == "[CV_TEST_001] - Component: Loader - boom"

    def test_to_json(self):
        exc = ClimaviewException("boom", context={"rows": 3})
        payload = json.loads(exc.to_json())
        assert payload["error_type"] == "ClimaviewException"
        assert payload["context"] == {"rows": 3}


class TestSubclasses:
    """Explorer and data exception families."""

    def test_validation_error(self):
        exc = ValidationError(
            "Unknown slot", component="ViewStateController", invalid_fields={"slot": "bad"}
        )
        assert isinstance(exc, ExplorerException)
        assert exc.error_code == "CV_EXPLORER_VALIDATION_ERROR"
        assert exc.context["invalid_fields"] == {"slot": "bad"}

    def test_configuration_error(self):
        exc = ConfigurationError("bad mode", config_key="lon_mode")
        assert exc.context == {"config_key": "lon_mode"}
        assert exc.error_code == "CV_EXPLORER_CONFIGURATION_ERROR"

    def test_load_failure(self):
        exc = LoadFailure("fetch failed", source="rows")
        assert isinstance(exc, DataException)
        assert exc.context["source"] == "rows"
        assert exc.error_code == "CV_DATA_LOAD_FAILURE"

    def test_dataset_not_loaded(self):
        exc = DatasetNotLoadedError("not yet")
        assert exc.error_code == "CV_DATA_DATASET_NOT_LOADED_ERROR"
        with pytest.raises(ClimaviewException):
            raise exc


class TestFormatExceptionChain:
    """format_exception_chain utility."""

    def test_chain(self):
        try:
            try:
                raise OSError("disk gone")
            except OSError as inner:
                raise LoadFailure("fetch failed", source="rows") from inner
        except LoadFailure as outer:
            text = format_exception_chain(outer)
        assert text.startswith("LoadFailure: [CV_DATA_LOAD_FAILURE]")
        assert "caused by: OSError: disk gone" in text

    def test_single(self):
        assert format_exception_chain(ValueError("x")) == "ValueError: x"
