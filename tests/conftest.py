from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import List, Optional, Tuple

import piexif
import pytest
from PIL import Image

from exifstamp.services.errors import GeocodingError, MapFetchError
from exifstamp.services.geocoding import GeocodeResult
from exifstamp.services.layout import FontBook, WatermarkLayoutEngine
from exifstamp.services.location import LocationResolver
from exifstamp.services.metadata import MetadataExtractor
from exifstamp.services.decoder import PiexifDecoder
from exifstamp.services.pipeline import WatermarkPipeline
from exifstamp.services.renderer import CompositingRenderer


FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


class FakeGeocoder:
	def __init__(self, result: Optional[GeocodeResult] = None, error: Optional[Exception] = None) -> None:
		self.result = result
		self.error = error
		self.calls: List[str] = []

	async def geocode(self, address: str) -> GeocodeResult:
		self.calls.append(address)
		if self.error is not None:
			raise self.error
		if self.result is None:
			raise GeocodingError("no result")
		return self.result


class FakeReverseGeocoder:
	def __init__(self, address: str) -> None:
		self.address = address
		self.calls: List[Tuple[float, float]] = []

	async def reverse(self, lat: float, lng: float) -> str:
		self.calls.append((lat, lng))
		return self.address


class FakeMaps:
	def __init__(self, fail_on: Tuple[int, ...] = (), color=(120, 200, 120)) -> None:
		self.fail_on = fail_on
		self.color = color
		self.calls: List[Tuple[float, float, int, int, int]] = []

	async def fetch(self, lng: float, lat: float, zoom: int, width: int, height: int) -> Image.Image:
		self.calls.append((lng, lat, zoom, width, height))
		if len(self.calls) in self.fail_on:
			raise MapFetchError("tile server unavailable")
		return Image.new("RGB", (width, height), self.color)


def make_jpeg(width: int = 320, height: int = 240, exif: Optional[dict] = None, color=(30, 40, 50)) -> bytes:
	img = Image.new("RGB", (width, height), color)
	buf = BytesIO()
	if exif is not None:
		img.save(buf, format="JPEG", exif=piexif.dump(exif))
	else:
		img.save(buf, format="JPEG")
	return buf.getvalue()


def sample_exif() -> dict:
	return {
		"0th": {
			piexif.ImageIFD.Make: b"Canon",
			piexif.ImageIFD.Model: b"EOS R6",
			piexif.ImageIFD.DateTime: b"2024:05:01 14:05:09",
		},
		"Exif": {
			piexif.ExifIFD.ExposureTime: (1, 250),
			piexif.ExifIFD.FNumber: (18, 10),
			piexif.ExifIFD.ISOSpeedRatings: 200,
			piexif.ExifIFD.FocalLength: (50, 1),
		},
		"GPS": {
			piexif.GPSIFD.GPSLatitudeRef: b"S",
			piexif.GPSIFD.GPSLatitude: ((6, 1), (28, 1), (5412, 100)),
			piexif.GPSIFD.GPSLongitudeRef: b"E",
			piexif.GPSIFD.GPSLongitude: ((106, 1), (50, 1), (1320, 100)),
			piexif.GPSIFD.GPSAltitude: (1234, 10),
			piexif.GPSIFD.GPSImgDirection: (90, 1),
		},
	}


@pytest.fixture
def fonts() -> FontBook:
	return FontBook()


@pytest.fixture
def extractor() -> MetadataExtractor:
	return MetadataExtractor(PiexifDecoder(), clock=lambda: FIXED_NOW)


@pytest.fixture
def fake_maps() -> FakeMaps:
	return FakeMaps()


@pytest.fixture
def make_pipeline(fonts, extractor):
	def _make(geocoder=None, maps=None, map_required: bool = True) -> WatermarkPipeline:
		return WatermarkPipeline(
			extractor=extractor,
			resolver=LocationResolver(geocoder or FakeGeocoder()),
			layout_engine=WatermarkLayoutEngine(fonts),
			renderer=CompositingRenderer(fonts, maps if maps is not None else FakeMaps(), map_required=map_required),
		)
	return _make
