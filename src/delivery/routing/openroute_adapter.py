"""OpenRouteService routing adapter (production).

Wraps the OpenRouteService directions and Pelias geocoding endpoints. Every
call carries a bounded timeout; transport errors, non-2xx responses and
empty results are all raised as ``ExternalServiceError`` so the caller can
fall back to straight-line estimates.
"""

import requests
import structlog

from delivery.errors import ExternalServiceError
from delivery.routing.port import GeocodeResult, RouteResult, RoutingProvider

logger = structlog.get_logger(__name__)

BASE_URL = "https://api.openrouteservice.org"


class OpenRouteServiceRouter(RoutingProvider):
    name = "openrouteservice"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        profile: str = "driving-car",
        base_url: str = BASE_URL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.profile = profile
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": api_key,
                "Content-Type": "application/json",
            }
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.is_configured():
            raise ExternalServiceError(self.name, "API key not configured")
        try:
            response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            logger.warning("Routing provider call failed", provider=self.name, path=path, error=str(exc))
            raise ExternalServiceError(self.name, str(exc)) from exc
        except ValueError as exc:
            raise ExternalServiceError(self.name, f"Invalid JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise ExternalServiceError(self.name, f"Unexpected response body: {type(data).__name__}")
        return data

    def get_directions(self, start_lat, start_lng, end_lat, end_lng) -> RouteResult:
        data = self._request(
            "POST",
            f"/v2/directions/{self.profile}",
            json={
                "coordinates": [[start_lng, start_lat], [end_lng, end_lat]],
                "instructions": False,
                "geometry": False,
                "elevation": False,
            },
        )
        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            raise ExternalServiceError(self.name, "No route found")

        summary = routes[0].get("summary")
        if not isinstance(summary, dict):
            raise ExternalServiceError(self.name, "Route has no summary")
        distance = summary.get("distance")
        duration = summary.get("duration")
        if not isinstance(distance, (int, float)) or not isinstance(duration, (int, float)):
            raise ExternalServiceError(self.name, "Route summary missing distance or duration")
        return RouteResult(
            distance_km=round(distance / 1000, 2),
            duration_min=round(duration / 60),
            provider=self.name,
        )

    def geocode(self, text: str, size: int = 5) -> list[GeocodeResult]:
        data = self._request(
            "GET",
            "/geocoding/v1/search",
            params={"text": text, "size": size, "layers": "address,street,venue"},
        )
        return [_to_geocode_result(feature) for feature in data.get("features", [])]

    def reverse_geocode(self, lat: float, lng: float) -> GeocodeResult | None:
        data = self._request(
            "GET",
            "/geocoding/v1/reverse",
            params={"point.lat": lat, "point.lon": lng, "size": 1, "layers": "address,street,venue"},
        )
        features = data.get("features", [])
        if not features:
            return None
        return _to_geocode_result(features[0])


def _to_geocode_result(feature: dict) -> GeocodeResult:
    props = feature.get("properties", {})
    lng, lat = feature["geometry"]["coordinates"][:2]
    return GeocodeResult(
        label=props.get("label", ""),
        latitude=lat,
        longitude=lng,
        confidence=props.get("confidence"),
        address={
            key: props.get(key)
            for key in ("name", "street", "housenumber", "neighbourhood", "locality", "region", "country", "postalcode")
            if props.get(key) is not None
        },
    )
