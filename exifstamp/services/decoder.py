from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Tuple, Union

import piexif

from exifstamp.services.formatting import to_float


TagKey = Union[str, int]
RawTagSet = Dict[TagKey, Any]

# IFDs merged into one flat tag set; Interop and thumbnail data are ignored
MERGED_IFDS = ("0th", "Exif", "GPS")


class TagDecoder(Protocol):
	def decode(self, data: bytes) -> RawTagSet:
		...


def _is_rational(v: Any) -> bool:
	return isinstance(v, tuple) and len(v) == 2 and all(isinstance(p, int) for p in v)


def _normalize_value(v: Any) -> Any:
	if isinstance(v, bytes):
		text = v.decode("utf-8", errors="ignore").strip("\x00").strip()
		return text
	if _is_rational(v):
		return to_float(v)
	if isinstance(v, tuple):
		items = tuple(_normalize_value(p) for p in v)
		if len(items) == 1:
			return items[0]
		return items
	return v


def _dms_to_decimal(dms: Any, ref: Any) -> Optional[float]:
	if not isinstance(dms, tuple) or len(dms) != 3:
		return None
	parts = [to_float(p) for p in dms]
	if any(p is None for p in parts):
		return None
	deg, minutes, seconds = parts
	value = deg + minutes / 60.0 + seconds / 3600.0
	if isinstance(ref, str) and ref.upper() in ("S", "W"):
		value = -value
	return value


class PiexifDecoder:
	"""Turns JPEG/TIFF/WebP bytes into a flat tag set keyed by tag name and numeric id."""

	def decode(self, data: bytes) -> RawTagSet:
		exif = piexif.load(data)
		tags: RawTagSet = {}
		gps_raw: Dict[str, Tuple] = {}
		for ifd in MERGED_IFDS:
			for tag_id, value in (exif.get(ifd) or {}).items():
				info = piexif.TAGS.get(ifd, {}).get(tag_id)
				normalized = _normalize_value(value)
				tags.setdefault(tag_id, normalized)
				if info:
					tags.setdefault(info["name"], normalized)
					if ifd == "GPS":
						gps_raw[info["name"]] = value
		lat = _dms_to_decimal(gps_raw.get("GPSLatitude"), tags.get("GPSLatitudeRef"))
		lng = _dms_to_decimal(gps_raw.get("GPSLongitude"), tags.get("GPSLongitudeRef"))
		if lat is not None and lng is not None:
			tags["latitude"] = lat
			tags["longitude"] = lng
		return tags
