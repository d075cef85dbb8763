from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

import httpx
from loguru import logger

from exifstamp.services.errors import GeocodingError


@dataclass(frozen=True)
class GeocodeResult:
	formatted_address: str
	lat: float
	lng: float


class Geocoder(Protocol):
	async def geocode(self, address: str) -> GeocodeResult:
		...


class ReverseGeocoder(Protocol):
	async def reverse(self, lat: float, lng: float) -> str:
		...


class OpenCageGeocoder:
	"""Forward geocoding against the OpenCage JSON API; first result wins."""

	def __init__(self, client: httpx.AsyncClient, api_key: str, url: str, language: str = "id") -> None:
		self._client = client
		self._api_key = api_key
		self._url = url
		self._language = language

	async def geocode(self, address: str) -> GeocodeResult:
		params = {"q": address, "key": self._api_key, "language": self._language, "pretty": 1}
		try:
			response = await self._client.get(self._url, params=params)
			response.raise_for_status()
			data = response.json()
		except (httpx.HTTPError, ValueError) as e:
			raise GeocodingError(f"geocoding request failed for {address!r}: {e}") from e

		results = data.get("results") if isinstance(data, dict) else None
		if not results:
			raise GeocodingError(f"no geocoding result for {address!r}")
		first = results[0]
		try:
			geometry = first["geometry"]
			result = GeocodeResult(
				formatted_address=str(first["formatted"]),
				lat=float(geometry["lat"]),
				lng=float(geometry["lng"]),
			)
		except (KeyError, TypeError, ValueError) as e:
			raise GeocodingError(f"malformed geocoding result for {address!r}") from e
		logger.debug("Geocoded {!r} -> {} ({}, {})", address, result.formatted_address, result.lat, result.lng)
		return result


def _address_lines(components: Dict[str, Any]) -> List[str]:
	lines: List[str] = []
	for key in ("road", "suburb"):
		if components.get(key):
			lines.append(str(components[key]))
	locality = components.get("city") or components.get("town") or components.get("village")
	if locality:
		lines.append(str(locality))
	for key in ("county", "state", "country"):
		if components.get(key):
			lines.append(str(components[key]))
	return lines


class NominatimReverseGeocoder:
	"""Reverse geocoding via Nominatim; returns newline-separated address lines."""

	def __init__(self, client: httpx.AsyncClient, url: str, user_agent: str) -> None:
		self._client = client
		self._url = url
		self._user_agent = user_agent

	async def reverse(self, lat: float, lng: float) -> str:
		params = {"lat": lat, "lon": lng, "zoom": 18, "format": "jsonv2"}
		headers = {"User-Agent": self._user_agent}
		fallback = f"{lat:.6f}, {lng:.6f}"
		try:
			response = await self._client.get(self._url, params=params, headers=headers)
			response.raise_for_status()
			data = response.json()
		except (httpx.HTTPError, ValueError) as e:
			logger.warning("Reverse geocoding failed for {}: {}", fallback, e)
			return fallback

		if not isinstance(data, dict) or not isinstance(data.get("address"), dict):
			return fallback
		lines = _address_lines(data["address"])
		if lines:
			return "\n".join(lines)
		return str(data.get("display_name") or fallback)
