from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from PIL import ImageFont

from exifstamp.services.metadata import (
	LOCATION_UNAVAILABLE,
	NOT_AVAILABLE,
	PLACEHOLDER_ADDRESS,
	UNKNOWN,
	CanonicalExifRecord,
)


MIN_FONT_SIZE = 14
FONT_SCALE = 0.015
LINE_PITCH = 1.3
PADDING = 20
PRIMARY_SCALE = 1.2
SECONDARY_SCALE = 0.9
MAP_SCALE = 0.2

REGULAR_FACES = ("arial.ttf", "Arial.ttf", "DejaVuSans.ttf", "LiberationSans-Regular.ttf")
BOLD_FACES = ("arialbd.ttf", "Arial Bold.ttf", "DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf")


@dataclass(frozen=True)
class WatermarkLine:
	text: str
	font_size: float
	emphasis: str = "normal"  # primary | normal | secondary

	@property
	def bold(self) -> bool:
		return self.emphasis == "primary"


@dataclass(frozen=True)
class Rect:
	x: float
	y: float
	width: float
	height: float

	@property
	def right(self) -> float:
		return self.x + self.width

	@property
	def bottom(self) -> float:
		return self.y + self.height


@dataclass(frozen=True)
class LayoutPlan:
	font_size: float
	pitch: float
	padding: int
	text_box: Rect
	map_box: Rect

	@property
	def text_origin(self) -> Tuple[float, float]:
		"""Left edge and first baseline of the text block."""
		return (self.text_box.x + self.padding, self.text_box.y + self.padding + self.font_size)


class FontBook:
	"""Resolves Pillow fonts by pixel size: configured paths, common system faces, then Pillow's default."""

	def __init__(self, regular_path: Optional[str] = None, bold_path: Optional[str] = None) -> None:
		self._regular = ((regular_path,) if regular_path else ()) + REGULAR_FACES
		self._bold = ((bold_path,) if bold_path else ()) + BOLD_FACES + self._regular
		self.get = lru_cache(maxsize=32)(self._load)

	def _load(self, size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
		for candidate in (self._bold if bold else self._regular):
			try:
				return ImageFont.truetype(candidate, size)
			except OSError:
				continue
		return ImageFont.load_default(size=size)

	def font_for(self, line: WatermarkLine) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
		return self.get(max(1, int(round(line.font_size))), line.bold)

	def measure(self, line: WatermarkLine) -> float:
		return float(self.font_for(line).getlength(line.text))


def base_font_size(width: int) -> float:
	return max(MIN_FONT_SIZE, width * FONT_SCALE)


def build_lines(record: CanonicalExifRecord, font_size: float) -> List[WatermarkLine]:
	lines: List[WatermarkLine] = [WatermarkLine(record.capture_display, font_size * PRIMARY_SCALE, "primary")]

	cam = record.camera
	if cam.make != UNKNOWN:
		lines.append(WatermarkLine(f"{cam.make} {cam.model}", font_size))
	if cam.focal_length != NOT_AVAILABLE:
		lines.append(WatermarkLine(f"{cam.focal_length} {cam.aperture} {cam.shutter_speed} {cam.iso}", font_size))

	address = record.location_address
	if not address or address == LOCATION_UNAVAILABLE:
		address = PLACEHOLDER_ADDRESS
	for segment in address.split("\n"):
		lines.append(WatermarkLine(segment.strip(), font_size))

	extra: List[str] = []
	coords = record.coordinates
	if coords.known:
		extra.append(f"{coords.lat:.6f}, {coords.lng:.6f}")
	if record.altitude_display != NOT_AVAILABLE:
		extra.append(f"• Alt: {record.altitude_display}")
	if extra:
		lines.append(WatermarkLine(" ".join(extra), font_size * SECONDARY_SCALE, "secondary"))
	return lines


def compute_plan(widths: Sequence[float], font_size: float, base_width: int, base_height: int) -> LayoutPlan:
	pitch = font_size * LINE_PITCH
	box_w = max(widths, default=0.0) + PADDING * 2
	box_h = len(widths) * pitch + PADDING * 2
	text_box = Rect(base_width - box_w, base_height - box_h, box_w, box_h)
	side = min(base_width, base_height) * MAP_SCALE
	map_box = Rect(PADDING, base_height - side - PADDING, side, side)
	return LayoutPlan(font_size=font_size, pitch=pitch, padding=PADDING, text_box=text_box, map_box=map_box)


class WatermarkLayoutEngine:
	def __init__(self, fonts: FontBook) -> None:
		self.fonts = fonts

	def layout(self, record: CanonicalExifRecord, base_width: int, base_height: int) -> Tuple[List[WatermarkLine], LayoutPlan]:
		font_size = base_font_size(base_width)
		lines = build_lines(record, font_size)
		widths = [self.fonts.measure(line) for line in lines]
		return lines, compute_plan(widths, font_size, base_width, base_height)
