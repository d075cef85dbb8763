from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from exifstamp.services.decoder import PiexifDecoder
from exifstamp.services.geocoding import NominatimReverseGeocoder, OpenCageGeocoder
from exifstamp.services.layout import FontBook, WatermarkLayoutEngine
from exifstamp.services.location import LocationResolver
from exifstamp.services.map_tiles import MapboxStaticMaps
from exifstamp.services.metadata import MetadataExtractor
from exifstamp.services.pipeline import WatermarkPipeline
from exifstamp.services.renderer import CompositingRenderer
from exifstamp.services.settings import Settings


def make_http_client() -> httpx.AsyncClient:
	# external collaborators are called once with no deadline
	return httpx.AsyncClient(timeout=None, follow_redirects=True)


def build_pipeline(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> WatermarkPipeline:
	client = client or make_http_client()
	if not settings.mapbox_token:
		logger.warning("No Mapbox token configured; map thumbnails will fail to load")
	if not settings.opencage_api_key:
		logger.warning("No OpenCage key configured; typed addresses will not be geocoded")

	reverse = None
	if settings.reverse_geocoding:
		reverse = NominatimReverseGeocoder(client, settings.nominatim_url, settings.user_agent)
	resolver = LocationResolver(
		OpenCageGeocoder(client, settings.opencage_api_key, settings.opencage_url, settings.geocode_language),
		reverse_geocoder=reverse,
	)
	fonts = FontBook(settings.font_regular, settings.font_bold)
	renderer = CompositingRenderer(
		fonts,
		MapboxStaticMaps(client, settings.mapbox_token, settings.mapbox_style),
		zoom=settings.map_zoom,
		map_request_size=settings.map_request_size,
		jpeg_quality=settings.jpeg_quality,
		map_required=settings.map_required,
	)
	return WatermarkPipeline(
		extractor=MetadataExtractor(PiexifDecoder()),
		resolver=resolver,
		layout_engine=WatermarkLayoutEngine(fonts),
		renderer=renderer,
	)
