"""Tests for AvWxSource: aviationweather.gov API fetcher."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from aerotrip.sources.avwx import AvWxSource
from aerotrip.weather.models import WeatherType

REFERENCE = datetime(2026, 10, 21, 13, 0, tzinfo=timezone.utc)


class MockResponse:
    """Minimal mock for requests.Response."""

    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            from requests.exceptions import HTTPError
            raise HTTPError(f"HTTP {self.status_code}")


def make_session(response_text="", status_code=200):
    """Create a mock session returning a fixed response."""
    session = MagicMock()
    session.headers = {}
    session.get.return_value = MockResponse(response_text, status_code)
    return session


class TestFetchMetars:
    """Test METAR fetching and parsing."""

    def test_multiple_metars(self):
        raw = (
            "METAR KFRG 211253Z 27012KT 10SM BKN025 18/09 A3001\n"
            "METAR KISP 211256Z 24008KT 3SM BR OVC008 14/13 A2998\n"
        )
        source = AvWxSource(session=make_session(raw), reference_time=REFERENCE)

        reports = source.fetch_metars(["KFRG", "KISP"])

        assert {r.icao for r in reports} == {"KFRG", "KISP"}
        assert all(r.source == "avwx" for r in reports)

    def test_unparseable_lines_skipped(self):
        raw = (
            "METAR KFRG 211253Z 27012KT 10SM BKN025 18/09 A3001\n"
            "GARBAGE NOT A METAR\n"
            "\n"
        )
        source = AvWxSource(session=make_session(raw), reference_time=REFERENCE)
        assert len(source.fetch_metars(["KFRG"])) == 1

    def test_request_parameters(self):
        session = make_session("")
        source = AvWxSource(session=session)

        source.fetch_metars([" kfrg ", "KISP", ""], hours=2)

        args, kwargs = session.get.call_args
        assert args[0].endswith("/metar")
        assert kwargs["params"]["ids"] == "KFRG,KISP"
        assert kwargs["params"]["hours"] == "2"
        assert kwargs["params"]["format"] == "raw"

    def test_user_agent_set(self):
        session = make_session("")
        AvWxSource(session=session)
        assert "aerotrip" in session.headers["User-Agent"]

    def test_204_no_content(self):
        source = AvWxSource(session=make_session("", status_code=204))
        assert source.fetch_metars(["XXXX"]) == []

    def test_http_error_returns_empty(self):
        source = AvWxSource(session=make_session("", status_code=500))
        assert source.fetch_metars(["KFRG"]) == []

    def test_network_error_returns_empty(self):
        session = make_session()
        session.get.side_effect = ConnectionError("unreachable")
        source = AvWxSource(session=session)
        assert source.fetch_metars(["KFRG"]) == []


class TestFetchMetar:

    def test_latest_observation(self):
        raw = (
            "METAR KFRG 211153Z 27010KT 10SM BKN030 17/09 A3002\n"
            "METAR KFRG 211253Z 27012G22KT 10SM BKN025 18/09 A3001\n"
        )
        source = AvWxSource(session=make_session(raw), reference_time=REFERENCE)

        report = source.fetch_metar("KFRG")

        assert report.observation_time == datetime(2026, 10, 21, 12, 53, tzinfo=timezone.utc)
        assert report.wind_gust == 22

    def test_none_when_missing(self):
        source = AvWxSource(session=make_session("", status_code=204))
        assert source.fetch_metar("KFRG") is None


class TestFetchTafs:

    def test_multi_line_blocks(self):
        raw = (
            "TAF KFRG 211130Z 2112/2212 24010KT P6SM SCT050\n"
            "  FM211800 30015KT P6SM BKN040\n"
            "TAF KISP 211130Z 2112/2212 22008KT P6SM FEW250\n"
        )
        source = AvWxSource(session=make_session(raw), reference_time=REFERENCE)

        reports = source.fetch_tafs(["KFRG", "KISP"])

        assert [r.icao for r in reports] == ["KFRG", "KISP"]
        assert reports[0].report_type == WeatherType.TAF
        assert len(reports[0].periods) == 2

    def test_fetch_taf(self):
        raw = "TAF KFRG 211130Z 2112/2212 24010KT P6SM SCT050"
        source = AvWxSource(session=make_session(raw), reference_time=REFERENCE)
        assert source.fetch_taf("KFRG").icao == "KFRG"

    def test_fetch_taf_missing(self):
        source = AvWxSource(session=make_session(""))
        assert source.fetch_taf("KFRG") is None

    def test_split_blank_line_separated(self):
        blocks = AvWxSource._split_taf_blocks("TAF A 1\n\nTAF B 2\n  FM 3\n")
        assert blocks == ["TAF A 1", "TAF B 2\nFM 3"]


class TestFetchWindsAloft:

    BULLETIN = "\n".join([
        "FT  3000    6000    9000   12000   18000   24000  30000  34000  39000",
        "JFK 9900 2520+10 2630+02 2745-08 2860-20 2875-31 289043 760146 279554",
    ])

    def test_decodes_bulletin(self):
        session = make_session(self.BULLETIN)
        source = AvWxSource(session=session)

        stations = source.fetch_winds_aloft(forecast_hours=12)

        assert stations["JFK"][6000].speed == 20
        args, kwargs = session.get.call_args
        assert args[0].endswith("/windtemp")
        assert kwargs["params"]["fcst"] == "12"
        assert kwargs["params"]["level"] == "low"

    def test_failure_is_empty(self):
        source = AvWxSource(session=make_session("", status_code=503))
        assert source.fetch_winds_aloft() == {}
