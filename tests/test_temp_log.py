"""
Tests for the temperature logger

Validates:
- Millidegree parsing and Fahrenheit conversion
- CSV header written once, rows appended
- Unreadable thermal zone
"""

from datetime import datetime

from announcements_frame.services.announcements_temp_log import (
    CSV_HEADER,
    append_reading,
    read_temperature,
)


class TestTemperatureLog:
    """Test reading and logging the SoC temperature."""

    def test_read_temperature(self, tmp_path):
        """Test 48.3C from the thermal zone."""
        zone = tmp_path / 'temp'
        zone.write_text('48312\n')

        celsius, fahrenheit = read_temperature(zone)

        assert round(celsius, 1) == 48.3
        assert round(fahrenheit, 1) == 119.0

    def test_unreadable_zone(self, tmp_path):
        """Test a missing or garbled thermal zone."""
        garbled = tmp_path / 'garbled'
        garbled.write_text('hot')

        assert read_temperature(tmp_path / 'missing') is None
        assert read_temperature(garbled) is None

    def test_header_written_once(self, tmp_path):
        """Test that repeated runs append rows under one header."""
        log_file = tmp_path / 'pi-temp' / 'temps.csv'

        append_reading(log_file, datetime(2024, 6, 3, 10, 0, 0), 48.3, 118.94)
        append_reading(log_file, datetime(2024, 6, 3, 10, 5, 0), 50.0, 122.0)

        assert log_file.read_text().splitlines() == [
            CSV_HEADER,
            '2024-06-03T10:00:00,48.3,118.9',
            '2024-06-03T10:05:00,50.0,122.0',
        ]
