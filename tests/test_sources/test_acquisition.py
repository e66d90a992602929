"""Tests for WeatherAcquisition and the per-request weather cache."""

import asyncio
import time

from aerotrip.sources.acquisition import RequestWeatherCache, WeatherAcquisition

METAR = "KFRG 211253Z 27012KT 10SM BKN025 18/09 A3001"
TAF = "TAF KFRG 211130Z 2112/2212 24010KT P6SM SCT050"


class FailingSource:

    def fetch_metar(self, icao):
        raise RuntimeError("boom")

    def fetch_taf(self, icao):
        raise RuntimeError("boom")


class SlowSource:

    def fetch_metar(self, icao):
        time.sleep(0.5)
        return None

    def fetch_taf(self, icao):
        time.sleep(0.5)
        return None


class TestWeatherAcquisition:

    def test_primary_first(self, fake_weather_source):
        primary = fake_weather_source(metars={'KFRG': METAR})
        secondary = fake_weather_source(metars={'KFRG': METAR})
        weather = WeatherAcquisition(primary, secondary)

        report = asyncio.run(weather.fetch("kfrg"))

        assert report.icao == "KFRG"
        assert primary.metar_calls == ["KFRG"]
        assert secondary.metar_calls == []

    def test_secondary_fallback(self, fake_weather_source):
        primary = fake_weather_source()
        secondary = fake_weather_source(metars={'KFRG': METAR})
        weather = WeatherAcquisition(primary, secondary)

        assert asyncio.run(weather.fetch("KFRG")) is not None
        assert secondary.metar_calls == ["KFRG"]

    def test_failure_falls_back(self, fake_weather_source):
        weather = WeatherAcquisition(FailingSource(), fake_weather_source(metars={'KFRG': METAR}))
        assert asyncio.run(weather.fetch("KFRG")).icao == "KFRG"

    def test_timeout_gives_none(self):
        weather = WeatherAcquisition(SlowSource(), timeout=0.05)
        assert asyncio.run(weather.fetch("KFRG")) is None

    def test_nothing_available(self, fake_weather_source):
        weather = WeatherAcquisition(fake_weather_source(), fake_weather_source())
        assert asyncio.run(weather.fetch("KFRG")) is None
        assert asyncio.run(weather.fetch_forecast("KFRG")) is None

    def test_forecast(self, fake_weather_source):
        weather = WeatherAcquisition(fake_weather_source(tafs={'KFRG': TAF}))

        report = asyncio.run(weather.fetch_forecast("KFRG"))

        assert report.is_forecast
        assert report.source == "fake"

    def test_degraded_forecast(self, fake_weather_source):
        weather = WeatherAcquisition(fake_weather_source(metars={'KFRG': METAR}), fake_weather_source())

        report = asyncio.run(weather.fetch_forecast("KFRG"))

        assert not report.is_forecast
        assert report.source == "fake:degraded-forecast"

    def test_airport_weather(self, fake_weather_source):
        weather = WeatherAcquisition(fake_weather_source(metars={'KFRG': METAR}, tafs={'KFRG': TAF}))

        result = asyncio.run(weather.fetch_airport_weather("KFRG"))

        assert result.icao == "KFRG"
        assert result.has_current
        assert result.taf.is_forecast

    def test_airport_weather_degraded(self, fake_weather_source):
        weather = WeatherAcquisition(fake_weather_source(metars={'KFRG': METAR}))
        result = asyncio.run(weather.fetch_airport_weather("KFRG"))
        assert result.taf.source.endswith("degraded-forecast")


class TestRequestWeatherCache:

    def test_fetches_once(self, fake_weather_source):
        primary = fake_weather_source(metars={'KFRG': METAR}, tafs={'KFRG': TAF})
        cache = RequestWeatherCache(WeatherAcquisition(primary))

        async def run():
            await asyncio.gather(cache.fetch("KFRG"), cache.fetch("kfrg"), cache.fetch_airport_weather("KFRG"))
            await cache.fetch_forecast("KFRG")

        asyncio.run(run())

        assert primary.metar_calls == ["KFRG"]
        assert primary.taf_calls == ["KFRG"]

    def test_missing_is_cached_too(self, fake_weather_source):
        primary = fake_weather_source()
        cache = RequestWeatherCache(WeatherAcquisition(primary))

        async def run():
            return await cache.fetch("KXXX"), await cache.fetch("KXXX")

        assert asyncio.run(run()) == (None, None)
        assert primary.metar_calls == ["KXXX"]
