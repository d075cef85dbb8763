from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from loguru import logger

from exifstamp.services.errors import GeocodingError
from exifstamp.services.geocoding import Geocoder, ReverseGeocoder
from exifstamp.services.metadata import PLACEHOLDER_ADDRESS, CanonicalExifRecord, Coordinates


class LocationResolver:
	"""
	Location override policy, first match wins:
	1. a typed address is geocoded (verbatim text and no coordinates on failure);
	2. picked coordinates fill in a record without GPS, labelled with the placeholder
	   address unless a reverse geocoder is attached;
	3. otherwise the record is returned as-is.
	"""

	def __init__(self, geocoder: Geocoder, reverse_geocoder: Optional[ReverseGeocoder] = None) -> None:
		self._geocoder = geocoder
		self._reverse_geocoder = reverse_geocoder

	async def resolve(
		self,
		record: CanonicalExifRecord,
		manual_address: Optional[str] = None,
		manual_coordinates: Optional[Tuple[float, float]] = None,
	) -> CanonicalExifRecord:
		if manual_address and manual_address.strip():
			return await self._from_address(record, manual_address)
		if manual_coordinates is not None and not record.coordinates.known:
			return await self._from_coordinates(record, manual_coordinates)
		return record

	async def _from_address(self, record: CanonicalExifRecord, manual_address: str) -> CanonicalExifRecord:
		try:
			result = await self._geocoder.geocode(manual_address)
		except GeocodingError as e:
			logger.warning("Geocoding failed, keeping typed address: {}", e)
			return replace(record, location_address=manual_address, coordinates=Coordinates())
		except Exception:
			logger.exception("Geocoder raised unexpectedly, keeping typed address")
			return replace(record, location_address=manual_address, coordinates=Coordinates())
		return replace(
			record,
			location_address=result.formatted_address,
			coordinates=Coordinates(result.lat, result.lng),
		)

	async def _from_coordinates(self, record: CanonicalExifRecord, coords: Tuple[float, float]) -> CanonicalExifRecord:
		lat, lng = coords
		address = PLACEHOLDER_ADDRESS
		if self._reverse_geocoder is not None:
			try:
				address = await self._reverse_geocoder.reverse(lat, lng)
			except Exception:
				logger.exception("Reverse geocoder raised, using placeholder address")
		return replace(record, location_address=address, coordinates=Coordinates(lat, lng))
