from __future__ import annotations

from io import BytesIO
from typing import Protocol

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from exifstamp.services.errors import MapFetchError


class MapTileProvider(Protocol):
	async def fetch(self, lng: float, lat: float, zoom: int, width: int, height: int) -> Image.Image:
		...


class MapboxStaticMaps:
	"""Static map rasters from the Mapbox Static Images API."""

	base_url = "https://api.mapbox.com/styles/v1"

	def __init__(self, client: httpx.AsyncClient, access_token: str, style: str = "mapbox/streets-v11") -> None:
		self._client = client
		self._token = access_token
		self._style = style

	def url_for(self, lng: float, lat: float, zoom: int, width: int, height: int) -> str:
		return f"{self.base_url}/{self._style}/static/{lng},{lat},{zoom},0,0/{width}x{height}"

	async def fetch(self, lng: float, lat: float, zoom: int, width: int, height: int) -> Image.Image:
		url = self.url_for(lng, lat, zoom, width, height)
		try:
			response = await self._client.get(url, params={"access_token": self._token})
			response.raise_for_status()
		except httpx.HTTPError as e:
			raise MapFetchError(f"map request failed for ({lat}, {lng}): {e}") from e
		try:
			img = Image.open(BytesIO(response.content))
			img.load()
		except (UnidentifiedImageError, OSError) as e:
			raise MapFetchError(f"map response for ({lat}, {lng}) is not an image") from e
		logger.debug("Fetched map {}x{} for ({}, {})", img.width, img.height, lat, lng)
		return img

