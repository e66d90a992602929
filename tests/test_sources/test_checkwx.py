"""Tests for CheckWxSource: secondary weather provider."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from aerotrip.sources.checkwx import CheckWxSource

REFERENCE = datetime(2026, 10, 21, 13, 0, tzinfo=timezone.utc)


class MockResponse:
    """Minimal mock for requests.Response with a JSON payload."""

    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            from requests.exceptions import HTTPError
            raise HTTPError(f"HTTP {self.status_code}")


def make_session(*responses):
    """Create a mock session returning each response in turn."""
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


def _metar_item(icao, raw, distance=None):
    item = {'icao': icao, 'raw_text': raw}
    if distance is not None:
        item['distance'] = {'nautical': distance, 'meters': distance * 1852}
    return item


EMPTY = {'results': 0, 'data': []}


class TestCheckWx:

    def test_disabled_without_key(self, monkeypatch):
        monkeypatch.delenv("CHECKWX_API_KEY", raising=False)
        session = make_session()
        source = CheckWxSource(session=session)

        assert not source.enabled
        assert source.fetch_metar("KFRG") is None
        session.get.assert_not_called()

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("CHECKWX_API_KEY", "secret")
        assert CheckWxSource(session=make_session()).enabled

    def test_direct_station(self):
        payload = {'results': 1, 'data': [_metar_item('KFRG', "KFRG 211253Z 27012KT 10SM BKN025 18/09 A3001")]}
        session = make_session(MockResponse(payload))
        source = CheckWxSource(api_key="key", session=session, reference_time=REFERENCE)

        report = source.fetch_metar("kfrg")

        assert report.icao == "KFRG"
        assert report.source == "checkwx"
        args, kwargs = session.get.call_args
        assert args[0].endswith("/metar/KFRG/decoded")
        assert kwargs["headers"]["X-API-Key"] == "key"

    def test_nearest_station_within_radius(self):
        radius = {'results': 2, 'data': [
            _metar_item('KJFK', "KJFK 211251Z 22010KT 10SM FEW250 18/08 A3000", 35.2),
            _metar_item('KISP', "KISP 211256Z 24008KT 10SM FEW250 14/09 A2998", 12.4),
        ]}
        session = make_session(MockResponse(EMPTY), MockResponse(radius))
        source = CheckWxSource(api_key="key", session=session, reference_time=REFERENCE)

        report = source.fetch_metar("KHWV")

        assert report.icao == "KISP"
        assert report.source == "checkwx:KISP@12nm"
        assert session.get.call_args_list[1][0][0].endswith("/metar/KHWV/radius/100/decoded")

    def test_nothing_close_enough(self):
        radius = {'results': 1, 'data': [
            _metar_item('KBOS', "KBOS 211254Z 27012KT 10SM FEW250 14/02 A3010", 250.0),
        ]}
        session = make_session(MockResponse(EMPTY), MockResponse(radius))
        source = CheckWxSource(api_key="key", session=session, reference_time=REFERENCE)
        assert source.fetch_metar("KHWV") is None

    def test_forecast_lookup(self):
        payload = {'results': 1, 'data': [_metar_item('KFRG', "TAF KFRG 211130Z 2112/2212 24010KT P6SM SCT050")]}
        session = make_session(MockResponse(payload))
        source = CheckWxSource(api_key="key", session=session, reference_time=REFERENCE)

        report = source.fetch_taf("KFRG")

        assert report.is_forecast
        assert session.get.call_args[0][0].endswith("/taf/KFRG/decoded")

    @pytest.mark.parametrize("status", [401, 500])
    def test_http_errors(self, status):
        session = make_session(MockResponse(None, status), MockResponse(None, status))
        source = CheckWxSource(api_key="key", session=session)
        assert source.fetch_metar("KFRG") is None
