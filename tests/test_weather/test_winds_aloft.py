"""Tests for the FB winds-aloft decoder."""

import pytest

from aerotrip.weather.winds_aloft import (
    REFERENCE_STATIONS,
    WindSample,
    WindsAloftParser,
    wind_at_altitude,
)

BULLETIN = "\n".join([
    "DATA BASED ON 211200Z",
    "VALID 211800Z   FOR USE 1400-2100Z. TEMPS NEG ABV 24000",
    "",
    "FT  3000    6000    9000   12000   18000   24000  30000  34000  39000",
    "ABI      2011+15 2119+09 2227+04 2234-10 2244-22 235237 235446 235055",
    "JFK 9900 2520+10 7525-02",
])


class TestDecode:

    def test_plain_group(self):
        sample = WindsAloftParser.decode("2011+15", 6000)
        assert sample.direction == 200
        assert sample.speed == 11
        assert sample.temperature_c == 15

    def test_light_and_variable(self):
        sample = WindsAloftParser.decode("9900", 3000)
        assert sample.variable
        assert sample.speed == 0

    def test_high_speed_encoding(self):
        sample = WindsAloftParser.decode("7525-02", 9000)
        assert sample.direction == 250
        assert sample.speed == 125

    def test_unsigned_temperature_above_24000_is_negative(self):
        sample = WindsAloftParser.decode("235237", 30000)
        assert sample.direction == 230
        assert sample.speed == 52
        assert sample.temperature_c == -37

    def test_malformed(self):
        assert WindsAloftParser.decode("XX12", 6000) is None
        assert WindsAloftParser.decode("4012", 6000) is None


class TestParse:

    def test_columns_follow_header(self):
        stations = WindsAloftParser.parse(BULLETIN)

        assert set(stations) == {"ABI", "JFK"}
        abi = stations["ABI"]
        assert 3000 not in abi
        assert abi[6000].direction == 200
        assert abi[39000].speed == 50
        assert abi[39000].temperature_c == -55
        assert abi[6000].source == "station:ABI"

    def test_short_line(self):
        jfk = WindsAloftParser.parse(BULLETIN)["JFK"]
        assert sorted(jfk) == [3000, 6000, 9000]
        assert jfk[3000].variable
        assert jfk[9000].speed == 125

    def test_empty(self):
        assert WindsAloftParser.parse("") == {}
        assert WindsAloftParser.parse(None) == {}

    def test_reference_stations_cover_northeast(self):
        assert "JFK" in REFERENCE_STATIONS
        assert "PWM" in REFERENCE_STATIONS


class TestWindAtAltitude:

    LEVELS = {
        6000: WindSample(6000, 260.0, 20.0),
        9000: WindSample(9000, 280.0, 40.0),
    }

    def test_interpolates(self):
        sample = wind_at_altitude(self.LEVELS, 7500)
        assert sample.direction == pytest.approx(270.0)
        assert sample.speed == pytest.approx(30.0)
        assert sample.source == "interpolated"

    def test_clamps_outside_levels(self):
        assert wind_at_altitude(self.LEVELS, 2000).speed == 20.0
        assert wind_at_altitude(self.LEVELS, 20000).speed == 40.0

    def test_variable_bracket(self):
        levels = {3000: WindSample(3000, None, 0.0), 6000: WindSample(6000, 250.0, 20.0)}
        sample = wind_at_altitude(levels, 4500)
        assert sample.variable
        assert sample.speed == 0.0

    def test_no_levels(self):
        assert wind_at_altitude({}, 9000) is None
