"""Tests for record normalization and field decoders."""

from __future__ import annotations

import pytest

from transit_graph.services.gtfs_static.normalizer import (
    DateParseError,
    NormalizationError,
    decode_bool,
    decode_tristate,
    normalize_color,
    normalize_record,
    parse_float,
    parse_gtfs_date,
    parse_int,
    require,
)


class TestNormalizeRecord:
    """Tests for empty-field removal."""

    def test_drops_empty_strings(self) -> None:
        record = {"stop_id": "S1", "stop_code": "", "stop_name": "Gare"}
        assert normalize_record(record) == {"stop_id": "S1", "stop_name": "Gare"}

    def test_keeps_zero_and_whitespace_free_values(self) -> None:
        record = {"location_type": "0", "parent_station": ""}
        assert normalize_record(record) == {"location_type": "0"}

    def test_does_not_mutate_input(self) -> None:
        record = {"a": "", "b": "1"}
        normalize_record(record)
        assert record == {"a": "", "b": "1"}

    def test_result_never_contains_empty_values(self) -> None:
        record = {f"field_{i}": "" if i % 2 else str(i) for i in range(10)}
        assert "" not in normalize_record(record).values()


class TestDecoders:
    """Tests for GTFS boolean and tri-state flags."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("2", False), ("0", None), ("", None), (None, None), ("3", None)],
    )
    def test_decode_tristate(self, raw: str | None, expected: bool | None) -> None:
        assert decode_tristate(raw) is expected

    def test_decode_bool(self) -> None:
        assert decode_bool("1") is True
        assert decode_bool("0") is False
        assert decode_bool(None) is False
        assert decode_bool("2") is False


class TestParseGtfsDate:
    """Tests for YYYYMMDD date parsing."""

    def test_valid_date(self) -> None:
        assert parse_gtfs_date("20240115") == "2024-01-15"

    def test_whitespace_stripped(self) -> None:
        assert parse_gtfs_date(" 20241231 ") == "2024-12-31"

    def test_wrong_length(self) -> None:
        with pytest.raises(DateParseError, match="Invalid GTFS date format"):
            parse_gtfs_date("2024011")

    def test_not_digits(self) -> None:
        with pytest.raises(DateParseError, match="Invalid GTFS date format"):
            parse_gtfs_date("2024-01-15")

    def test_impossible_date(self) -> None:
        with pytest.raises(DateParseError, match="Invalid calendar date"):
            parse_gtfs_date("20240230")


class TestNumbers:
    """Tests for numeric fields."""

    def test_parse_int(self) -> None:
        assert parse_int("42", "stop_sequence") == 42

    def test_parse_int_absent(self) -> None:
        assert parse_int(None, "stop_sequence") is None

    def test_parse_int_invalid(self) -> None:
        with pytest.raises(NormalizationError, match="stop_sequence"):
            parse_int("abc", "stop_sequence")

    def test_parse_float(self) -> None:
        assert parse_float("48.8443", "stop_lat") == pytest.approx(48.8443)

    def test_parse_float_invalid(self) -> None:
        with pytest.raises(NormalizationError, match="stop_lon"):
            parse_float("east", "stop_lon")

    def test_parse_float_nan_rejected(self) -> None:
        with pytest.raises(NormalizationError):
            parse_float("nan", "stop_lat")

    @pytest.mark.parametrize("value", ["inf", "-inf", "Infinity"])
    def test_parse_float_infinite_rejected(self, value: str) -> None:
        with pytest.raises(NormalizationError, match="stop_lon"):
            parse_float(value, "stop_lon")


class TestColorAndRequire:
    def test_color_gets_hash(self) -> None:
        assert normalize_color("FF0000") == "#FF0000"

    def test_color_already_prefixed(self) -> None:
        assert normalize_color("#00FF00") == "#00FF00"

    def test_color_absent(self) -> None:
        assert normalize_color(None) is None

    def test_require_present(self) -> None:
        assert require({"trip_id": "T1"}, "trip_id", "trips") == "T1"

    def test_require_missing(self) -> None:
        with pytest.raises(NormalizationError, match="Missing trip_id in stop_times"):
            require({}, "trip_id", "stop_times")
