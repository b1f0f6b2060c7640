"""Tests for the OpenRouteService adapter against a stubbed HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests
from delivery.errors import ExternalServiceError
from delivery.routing.openroute_adapter import OpenRouteServiceRouter


def _session(payload=None, exc=None):
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    if exc is not None:
        session.request.side_effect = exc
    else:
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        session.request.return_value = response
    return session


def _feature(label, lat, lng, **props):
    return {
        "geometry": {"coordinates": [lng, lat]},
        "properties": {"label": label, "confidence": 0.9, **props},
    }


class TestDirections:
    def test_converts_units(self):
        session = _session({"routes": [{"summary": {"distance": 12340.0, "duration": 1500.0}}]})
        router = OpenRouteServiceRouter(api_key="key", session=session)

        route = router.get_directions(12.9716, 77.5946, 13.0795, 77.5946)

        assert route.distance_km == 12.34
        assert route.duration_min == 25
        assert route.fallback is False
        assert route.provider == "openrouteservice"

    def test_sends_lng_lat_pairs_with_timeout(self):
        session = _session({"routes": [{"summary": {"distance": 1000, "duration": 60}}]})
        router = OpenRouteServiceRouter(api_key="key", timeout=3.0, session=session)

        router.get_directions(12.9, 77.5, 13.0, 77.6)

        method, url = session.request.call_args.args
        assert method == "POST"
        assert url == "https://api.openrouteservice.org/v2/directions/driving-car"
        assert session.request.call_args.kwargs["json"]["coordinates"] == [[77.5, 12.9], [77.6, 13.0]]
        assert session.request.call_args.kwargs["timeout"] == 3.0

    def test_sets_authorization_header(self):
        session = _session({})
        OpenRouteServiceRouter(api_key="secret-key", session=session)
        assert session.headers["Authorization"] == "secret-key"

    def test_no_route(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session({"routes": []}))
        with pytest.raises(ExternalServiceError):
            router.get_directions(12.9, 77.5, 13.0, 77.6)

    def test_timeout_becomes_external_service_error(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session(exc=requests.Timeout("read timed out")))
        with pytest.raises(ExternalServiceError) as exc:
            router.get_directions(12.9, 77.5, 13.0, 77.6)
        assert exc.value.provider == "openrouteservice"

    def test_unconfigured_never_calls_out(self):
        session = _session({})
        router = OpenRouteServiceRouter(api_key="", session=session)
        with pytest.raises(ExternalServiceError):
            router.get_directions(12.9, 77.5, 13.0, 77.6)
        session.request.assert_not_called()

    def test_invalid_json(self):
        session = _session({})
        session.request.return_value.json.side_effect = ValueError("not json")
        router = OpenRouteServiceRouter(api_key="key", session=session)
        with pytest.raises(ExternalServiceError):
            router.get_directions(12.9, 77.5, 13.0, 77.6)

    def test_summary_without_distance(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session({"routes": [{"summary": {}}]}))
        with pytest.raises(ExternalServiceError):
            router.get_directions(12.9, 77.5, 13.0, 77.6)

    def test_non_object_body(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session(["unexpected"]))
        with pytest.raises(ExternalServiceError) as exc:
            router.get_directions(12.9, 77.5, 13.0, 77.6)
        assert "list" in exc.value.message


class TestGeocoding:
    def test_geocode(self):
        session = _session(
            {"features": [_feature("Lal Chowk, Srinagar", 34.0722, 74.8097, locality="Srinagar", postalcode="190001")]}
        )
        router = OpenRouteServiceRouter(api_key="key", session=session)

        results = router.geocode("Lal Chowk", size=1)

        assert len(results) == 1
        assert results[0].label == "Lal Chowk, Srinagar"
        assert results[0].latitude == 34.0722
        assert results[0].longitude == 74.8097
        assert results[0].address == {"locality": "Srinagar", "postalcode": "190001"}
        assert session.request.call_args.kwargs["params"]["size"] == 1

    def test_reverse_geocode(self):
        session = _session({"features": [_feature("Dal Gate", 34.0866, 74.8328)]})
        router = OpenRouteServiceRouter(api_key="key", session=session)

        result = router.reverse_geocode(34.0866, 74.8328)

        assert result.label == "Dal Gate"
        assert session.request.call_args.kwargs["params"]["point.lat"] == 34.0866

    def test_reverse_geocode_no_match(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session({"features": []}))
        assert router.reverse_geocode(0.0, 0.0) is None

    def test_geocode_non_object_body(self):
        router = OpenRouteServiceRouter(api_key="key", session=_session(["unexpected"]))
        with pytest.raises(ExternalServiceError):
            router.geocode("Lal Chowk")
