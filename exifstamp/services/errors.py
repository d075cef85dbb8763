from __future__ import annotations


class WatermarkError(Exception):
	pass


class GeocodingError(WatermarkError):
	"""Address lookup failed (network, HTTP status, empty result or bad payload)."""


class RenderError(WatermarkError):
	"""Base image could not be decoded or the composite could not be produced."""


class MapFetchError(RenderError):
	"""Static map raster could not be fetched or decoded."""
