from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from exifstamp.services.decoder import RawTagSet, TagDecoder
from exifstamp.services.formatting import (
	format_altitude,
	format_capture,
	format_direction,
	format_number,
	format_shutter_speed,
	format_speed,
	to_float,
)


UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"
ZERO_SPEED = "0km/h"
LOCATION_UNAVAILABLE = "Lokasi tidak tersedia"
PLACEHOLDER_ADDRESS = "Jalan Cikempong\nPakansari\nKecamatan Cibinong\nKabupaten Bogor\nJawa Barat"
PLACEHOLDER_COORDINATES = (-6.4817, 106.837)


@dataclass(frozen=True)
class Coordinates:
	lat: Optional[float] = None
	lng: Optional[float] = None

	def __post_init__(self) -> None:
		if (self.lat is None) != (self.lng is None):
			raise ValueError("lat and lng must both be set or both be None")

	@property
	def known(self) -> bool:
		return self.lat is not None


@dataclass(frozen=True)
class CameraInfo:
	make: str = UNKNOWN
	model: str = UNKNOWN
	focal_length: str = NOT_AVAILABLE
	aperture: str = NOT_AVAILABLE
	iso: str = NOT_AVAILABLE
	shutter_speed: str = NOT_AVAILABLE


@dataclass(frozen=True)
class CanonicalExifRecord:
	capture_display: str
	camera: CameraInfo = field(default_factory=CameraInfo)
	coordinates: Coordinates = field(default_factory=Coordinates)
	location_address: str = LOCATION_UNAVAILABLE
	altitude_display: str = NOT_AVAILABLE
	speed_display: str = ZERO_SPEED
	direction_display: str = NOT_AVAILABLE
	raw_tags: RawTagSet = field(default_factory=dict, compare=False, repr=False)

	def to_dict(self) -> Dict[str, Any]:
		data = asdict(self)
		data.pop("raw_tags", None)
		return data


@dataclass(frozen=True)
class FieldChain:
	names: Tuple[str, ...]
	tag_id: Optional[int]
	default: str
	render: Callable[[Any], Optional[str]]


def _text(v: Any) -> Optional[str]:
	s = str(v).strip()
	return s or None


def _positive(render: Callable[[float], str]) -> Callable[[Any], Optional[str]]:
	def _wrapped(v: Any) -> Optional[str]:
		f = to_float(v)
		if f is None or f <= 0:
			return None
		return render(f)
	return _wrapped


def _nonzero(render: Callable[[float], str]) -> Callable[[Any], Optional[str]]:
	def _wrapped(v: Any) -> Optional[str]:
		f = to_float(v)
		if f is None or f == 0:
			return None
		return render(f)
	return _wrapped


FIELD_CHAINS: Dict[str, FieldChain] = {
	"make": FieldChain(("Make",), 271, UNKNOWN, _text),
	"model": FieldChain(("Model",), 272, UNKNOWN, _text),
	"focal_length": FieldChain(("FocalLength",), None, NOT_AVAILABLE, _positive(lambda f: f"{format_number(f)}mm")),
	"aperture": FieldChain(("FNumber",), 33437, NOT_AVAILABLE, _positive(lambda f: f"f/{format_number(f)}")),
	"iso": FieldChain(("ISO", "ISOSpeedRatings"), 34855, NOT_AVAILABLE, _positive(lambda f: f"ISO {format_number(f)}")),
	"shutter_speed": FieldChain(("ExposureTime",), 33434, NOT_AVAILABLE, _positive(format_shutter_speed)),
	"altitude": FieldChain(("GPSAltitude",), 6, NOT_AVAILABLE, _nonzero(format_altitude)),
	"speed": FieldChain(("GPSSpeed",), 13, ZERO_SPEED, _nonzero(format_speed)),
	"direction": FieldChain(("GPSImgDirection",), None, NOT_AVAILABLE, _nonzero(format_direction)),
}

CAPTURE_TIME_CHAIN: Tuple[Tuple[str, ...], int] = (("DateTime", "DateTimeOriginal", "CreateDate"), 306)


def _present(v: Any) -> bool:
	if v is None or isinstance(v, bool):
		return False
	if isinstance(v, str):
		return bool(v.strip())
	if isinstance(v, (int, float)):
		return v != 0
	return True


def lookup_tag(tags: RawTagSet, names: Tuple[str, ...], tag_id: Optional[int]) -> Any:
	"""First present value among `names`, then the numeric id (int or string key)."""
	for name in names:
		v = tags.get(name)
		if _present(v):
			return v
	if tag_id is not None:
		for key in (tag_id, str(tag_id)):
			v = tags.get(key)
			if _present(v):
				return v
	return None


def resolve_field(tags: RawTagSet, chain: FieldChain) -> str:
	v = lookup_tag(tags, chain.names, chain.tag_id)
	if v is None:
		return chain.default
	rendered = chain.render(v)
	return rendered if rendered is not None else chain.default


def parse_capture_time(value: Any) -> Optional[datetime]:
	"""Accepts a datetime or an EXIF "YYYY:MM:DD HH:MM:SS" string; None when malformed."""
	if isinstance(value, datetime):
		return value
	if not isinstance(value, str):
		return None
	date_part, _, time_part = value.strip().partition(" ")
	if not date_part or not time_part:
		return None
	try:
		year, month, day = (int(p) for p in date_part.split(":"))
		hour, minute, second = (int(p) for p in time_part.strip().split(":"))
		return datetime(year, month, day, hour, minute, second)
	except ValueError:
		return None


class MetadataExtractor:
	def __init__(self, decoder: TagDecoder, clock: Callable[[], datetime] = datetime.now) -> None:
		self._decoder = decoder
		self._clock = clock

	def extract_image(self, data: bytes, file_timestamp: Optional[datetime] = None) -> CanonicalExifRecord:
		try:
			tags = self._decoder.decode(data)
		except Exception as e:
			logger.warning("EXIF decode failed, using basic metadata: {}", e)
			tags = None
		return self.extract(tags, file_timestamp)

	def extract(self, tags: Optional[RawTagSet], file_timestamp: Optional[datetime] = None) -> CanonicalExifRecord:
		if not tags:
			return self.basic_record(file_timestamp)
		try:
			return self._parse(tags)
		except Exception as e:
			logger.warning("Tag set unusable, using basic metadata: {}", e)
			return self.basic_record(file_timestamp)

	def basic_record(self, file_timestamp: Optional[datetime] = None) -> CanonicalExifRecord:
		ts = file_timestamp or self._clock()
		lat, lng = PLACEHOLDER_COORDINATES
		return CanonicalExifRecord(
			capture_display=format_capture(ts),
			camera=CameraInfo(),
			coordinates=Coordinates(lat, lng),
			location_address=PLACEHOLDER_ADDRESS,
		)

	def _parse(self, tags: RawTagSet) -> CanonicalExifRecord:
		capture_display = format_capture(self._clock())
		names, tag_id = CAPTURE_TIME_CHAIN
		captured = parse_capture_time(lookup_tag(tags, names, tag_id))
		if captured is not None:
			capture_display = format_capture(captured)

		lat = to_float(tags.get("latitude"))
		lng = to_float(tags.get("longitude"))
		coordinates = Coordinates(lat, lng) if lat is not None and lng is not None else Coordinates()

		camera = CameraInfo(
			make=resolve_field(tags, FIELD_CHAINS["make"]),
			model=resolve_field(tags, FIELD_CHAINS["model"]),
			focal_length=resolve_field(tags, FIELD_CHAINS["focal_length"]),
			aperture=resolve_field(tags, FIELD_CHAINS["aperture"]),
			iso=resolve_field(tags, FIELD_CHAINS["iso"]),
			shutter_speed=resolve_field(tags, FIELD_CHAINS["shutter_speed"]),
		)
		return CanonicalExifRecord(
			capture_display=capture_display,
			camera=camera,
			coordinates=coordinates,
			location_address=LOCATION_UNAVAILABLE,
			altitude_display=resolve_field(tags, FIELD_CHAINS["altitude"]),
			speed_display=resolve_field(tags, FIELD_CHAINS["speed"]),
			direction_display=resolve_field(tags, FIELD_CHAINS["direction"]),
			raw_tags=tags,
		)
