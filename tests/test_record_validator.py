# -*- coding: utf-8 -*-
"""Tests for the record validator/normalizer."""

import math

import pytest

from climaview.exceptions import ConfigurationError
from climaview.explorer.models import ColumnMap, Record
from climaview.explorer.record_validator import (
    REASON_EMPTY_SCENARIO,
    REASON_MISSING_FIELD,
    REASON_NON_INTEGER_YEAR,
    REASON_NOT_FINITE,
    REASON_NOT_NUMERIC,
    REASON_OK,
    REASON_OUT_OF_RANGE,
    classify_row,
    normalize_longitude,
    parse_row,
    validate_rows,
)


def _row(**overrides):
    row = {
        "year": "2015",
        "lat": "10.5",
        "lon": "20.25",
        "pr_mm_day": "1.5",
        "scenario": "ssp126",
    }
    row.update(overrides)
    return row


class TestParseRow:
    """Single-row parsing."""

    def test_parses_string_fields(self):
        rec = parse_row(_row())
        assert rec == Record(
            year=2015, lat=10.5, lon=20.25, value=1.5, scenario="ssp126"
        )
        assert isinstance(rec.year, int)

    def test_accepts_native_numbers_and_padding(self):
        rec = parse_row(_row(year=2015, lat=" 1.5 ", lon=3, pr_mm_day=0.25))
        assert rec.year == 2015
        assert rec.lat == 1.5
        assert rec.lon == 3.0
        assert rec.value == 0.25

    def test_year_given_as_float_string(self):
        assert parse_row(_row(year="2015.0")).year == 2015

    def test_scenario_is_stripped(self):
        assert parse_row(_row(scenario="  ssp585 ")).scenario == "ssp585"

    def test_non_numeric_year_dropped(self):
        assert parse_row(_row(year="abc")) is None

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"year": "abc"}, REASON_NOT_NUMERIC),
            ({"lat": ""}, REASON_MISSING_FIELD),
            ({"lon": None}, REASON_MISSING_FIELD),
            ({"pr_mm_day": "nan"}, REASON_NOT_FINITE),
            ({"pr_mm_day": float("inf")}, REASON_NOT_FINITE),
            ({"lat": True}, REASON_NOT_NUMERIC),
            ({"lat": [1.0]}, REASON_NOT_NUMERIC),
            ({"scenario": "  "}, REASON_EMPTY_SCENARIO),
            ({"scenario": None}, REASON_MISSING_FIELD),
            ({"year": "2015.5"}, REASON_NON_INTEGER_YEAR),
            ({"lat": "90.5"}, REASON_OUT_OF_RANGE),
            ({"lon": "360"}, REASON_OUT_OF_RANGE),
            ({"lon": "-181"}, REASON_OUT_OF_RANGE),
            ({"pr_mm_day": "-0.1"}, REASON_OUT_OF_RANGE),
        ],
    )
    def test_drop_reasons(self, overrides, reason):
        record, outcome = classify_row(_row(**overrides))
        assert record is None
        assert outcome == reason

    def test_missing_column_is_missing_field(self):
        row = _row()
        del row["pr_mm_day"]
        assert classify_row(row) == (None, REASON_MISSING_FIELD)

    def test_valid_row_outcome(self):
        record, outcome = classify_row(_row())
        assert record is not None
        assert outcome == REASON_OK

    def test_boundary_latitudes_kept(self):
        assert parse_row(_row(lat="-90")).lat == -90.0
        assert parse_row(_row(lat="90")).lat == 90.0

    def test_zero_value_kept(self):
        assert parse_row(_row(pr_mm_day="0")).value == 0.0

    def test_custom_column_map(self):
        cols = ColumnMap(value="tas", scenario="ssp")
        row = {"year": "2020", "lat": "1", "lon": "2", "tas": "14.2", "ssp": "ssp245"}
        rec = parse_row(row, cols)
        assert rec.value == 14.2
        assert rec.scenario == "ssp245"

    def test_column_map_as_plain_mapping(self):
        row = {"y": "2020", "lat": "1", "lon": "2", "pr_mm_day": "1", "scenario": "s"}
        assert parse_row(row, {"year": "y"}).year == 2020


class TestLongitudeNormalisation:
    """Explicit longitude conventions."""

    @pytest.mark.parametrize(
        "lon, mode, expected",
        [
            (200.0, "wrap180", -160.0),
            (180.0, "wrap180", -180.0),
            (179.5, "wrap180", 179.5),
            (-20.0, "wrap180", -20.0),
            (-20.0, "wrap360", 340.0),
            (200.0, "wrap360", 200.0),
            (200.0, "raw", 200.0),
            (-20.0, "raw", -20.0),
        ],
    )
    def test_normalize_longitude(self, lon, mode, expected):
        assert normalize_longitude(lon, mode) == expected

    def test_default_mode_is_wrap180(self):
        assert parse_row(_row(lon="350")).lon == -10.0

    def test_mode_is_case_insensitive(self):
        assert parse_row(_row(lon="-90"), lon_mode="WRAP360").lon == 270.0

    def test_unknown_mode_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_rows([_row()], lon_mode="mercator")
        assert exc_info.value.context["config_key"] == "lon_mode"


class TestValidateRows:
    """Batch validation into a Dataset."""

    def test_sample_dataset(self, dataset):
        assert len(dataset) == 7
        assert dataset.source_row_count == 11
        assert dataset.dropped_count == 4
        assert dataset.drop_reasons == {
            REASON_NOT_NUMERIC: 1,
            REASON_MISSING_FIELD: 1,
            REASON_OUT_OF_RANGE: 1,
            REASON_EMPTY_SCENARIO: 1,
        }
        assert dataset.years == (2015, 2016)
        assert dataset.scenarios == ("ssp126", "ssp245", "ssp585")
        assert dataset.extent.as_tuple() == (0.0, 6.0)

    def test_preserves_source_order(self, dataset):
        assert [r.value for r in dataset.records] == [1.0, 3.0, 2.0, 4.0, 6.0, 0.0, 5.0]

    def test_all_records_satisfy_invariants(self, dataset):
        for rec in dataset.records:
            assert -90.0 <= rec.lat <= 90.0
            assert -180.0 <= rec.lon < 180.0
            assert rec.value >= 0.0
            assert rec.scenario
            assert all(math.isfinite(v) for v in (rec.lat, rec.lon, rec.value))

    def test_empty_input_gives_empty_dataset(self):
        ds = validate_rows([])
        assert ds.is_empty
        assert ds.extent is None
        assert ds.years == ()
        assert ds.scenarios == ()
        assert ds.source_row_count == 0
        assert ds.dropped_count == 0

    def test_all_malformed_gives_empty_dataset(self):
        ds = validate_rows([_row(year="x"), _row(lat="")])
        assert ds.is_empty
        assert ds.extent is None
        assert ds.dropped_count == 2

    def test_accepts_generator(self):
        ds = validate_rows(_row(year=str(y)) for y in range(2015, 2020))
        assert ds.years == (2015, 2016, 2017, 2018, 2019)

    def test_year_index_lookup(self, dataset):
        assert dataset.year_index(2016) == 1
        assert dataset.year_index(1999) is None

    def test_concrete_abc_year_dropped(self):
        ds = validate_rows([_row(year="abc"), _row()])
        assert len(ds) == 1
        assert ds.drop_reasons == {REASON_NOT_NUMERIC: 1}
