"""Tests for mijiatemp.gatttool.parser."""

from datetime import datetime, timezone

import pytest

from mijiatemp.exceptions import ParseError
from mijiatemp.gatttool import build_argv, parse_notification


class TestParseNotification:
    """Decoding of gatttool notification lines."""

    def test_example_line(self):
        reading = parse_notification("Notification handle = 0x0036 value: 8e 01 3c 4d 0b ")
        assert reading.temperature == 3.98
        assert reading.humidity == 60

    @pytest.mark.parametrize(
        "payload, temperature",
        [
            ("00 00 00", 0.0),
            ("2c 09 2a", 23.48),
            ("ff ff 00", 655.35),
            ("01 00 00", 0.01),
            ("00 01 00", 2.56),
        ],
    )
    def test_temperature_is_little_endian_hundredths(self, payload, temperature):
        reading = parse_notification(f"value: {payload}")
        assert reading.temperature == temperature

    @pytest.mark.parametrize("token, humidity", [("00", 0), ("3c", 60), ("64", 100), ("FF", 255)])
    def test_humidity_is_unsigned_byte(self, token, humidity):
        reading = parse_notification(f"value: 00 00 {token}")
        assert reading.humidity == humidity

    def test_extra_whitespace(self):
        reading = parse_notification("Notification handle = 0x0036 value:   8e  01\t3c\n")
        assert reading.temperature == 3.98
        assert reading.humidity == 60

    def test_timestamp_defaults_to_now_utc(self):
        before = datetime.now(timezone.utc)
        reading = parse_notification("value: 8e 01 3c")
        assert before <= reading.timestamp <= datetime.now(timezone.utc)

    def test_explicit_timestamp(self):
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        reading = parse_notification("value: 8e 01 3c", timestamp=ts)
        assert reading.to_record() == {
            "temperature": 3.98,
            "humidity": 60,
            "time": "2024-01-02T03:04:05+00:00",
        }

    def test_missing_marker(self):
        with pytest.raises(ParseError):
            parse_notification("Characteristic value was written successfully")

    def test_too_few_bytes(self):
        with pytest.raises(ParseError):
            parse_notification("Notification handle = 0x0036 value: 8e 01")

    def test_invalid_hex(self):
        with pytest.raises(ParseError):
            parse_notification("value: 8e zz 3c")

    def test_value_out_of_byte_range(self):
        with pytest.raises(ParseError):
            parse_notification("value: 18e 01 3c")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_notification("")


class TestBuildArgv:
    """gatttool command line."""

    def test_argv(self):
        assert build_argv("A4:C1:38:00:00:01") == [
            "--char-write-req",
            "-b", "A4:C1:38:00:00:01",
            "-a", "0x0038",
            "-n", "0100",
            "--listen",
        ]
