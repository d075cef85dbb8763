from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
from loguru import logger
from PIL import Image, ImageDraw

from exifstamp.services.errors import MapFetchError, RenderError
from exifstamp.services.image_utils import encode_jpeg
from exifstamp.services.layout import FontBook, LayoutPlan, WatermarkLine
from exifstamp.services.map_tiles import MapTileProvider
from exifstamp.services.metadata import Coordinates


TEXT_COLOR = (255, 255, 255)
SHADOW_OPACITY = 0.8
SHADOW_SIGMA = 1.0
SHADOW_OFFSET = (1, 1)
FIRST_LINE_ADVANCE = 1.2
MARKER_SCALE = 0.08
MARKER_OUTER = (0.5, "#ef4444")
MARKER_INNER = (0.2, "#dc2626")


def line_baselines(lines: Sequence[WatermarkLine], plan: LayoutPlan) -> List[Tuple[float, float]]:
	x, y = plan.text_origin
	out: List[Tuple[float, float]] = []
	for i, _ in enumerate(lines):
		out.append((x, y))
		y += plan.pitch * (FIRST_LINE_ADVANCE if i == 0 else 1.0)
	return out


class CompositingRenderer:
	def __init__(
		self,
		fonts: FontBook,
		maps: Optional[MapTileProvider],
		zoom: int = 15,
		map_request_size: Tuple[int, int] = (600, 400),
		jpeg_quality: int = 90,
		map_required: bool = True,
	) -> None:
		self._fonts = fonts
		self._maps = maps
		self._zoom = zoom
		self._map_request_size = map_request_size
		self._jpeg_quality = jpeg_quality
		self._map_required = map_required

	async def render(
		self,
		base: Image.Image,
		lines: Sequence[WatermarkLine],
		plan: LayoutPlan,
		coordinates: Coordinates,
		show_map: bool = True,
	) -> bytes:
		try:
			canvas = base.convert("RGB") if base.mode != "RGB" else base.copy()
		except (OSError, ValueError, MemoryError) as e:
			raise RenderError(f"cannot allocate output surface: {e}") from e

		canvas = self._draw_text(canvas, lines, plan)
		if show_map:
			try:
				await self._draw_map(canvas, plan, coordinates)
			except MapFetchError as e:
				if self._map_required:
					raise
				logger.warning("Map thumbnail skipped: {}", e)
		return encode_jpeg(canvas, self._jpeg_quality)

	def _shadow_region(self, canvas: Image.Image, plan: LayoutPlan) -> Tuple[int, int, int, int]:
		margin = int(math.ceil(SHADOW_SIGMA * 3)) + max(SHADOW_OFFSET)
		x0 = max(0, int(math.floor(plan.text_box.x)) - margin)
		y0 = max(0, int(math.floor(plan.text_box.y)) - margin)
		return (x0, y0, canvas.width, canvas.height)

	def _draw_text(self, canvas: Image.Image, lines: Sequence[WatermarkLine], plan: LayoutPlan) -> Image.Image:
		baselines = line_baselines(lines, plan)
		x0, y0, x1, y1 = self._shadow_region(canvas, plan)
		if x1 > x0 and y1 > y0:
			mask = Image.new("L", (x1 - x0, y1 - y0), 0)
			mask_draw = ImageDraw.Draw(mask)
			dx, dy = SHADOW_OFFSET
			for line, (bx, by) in zip(lines, baselines):
				mask_draw.text((bx - x0 + dx, by - y0 + dy), line.text, fill=255, font=self._fonts.font_for(line), anchor="ls")
			blurred = cv2.GaussianBlur(np.asarray(mask), (0, 0), sigmaX=SHADOW_SIGMA)
			alpha = (blurred.astype(np.float32) / 255.0) * SHADOW_OPACITY
			region = np.asarray(canvas.crop((x0, y0, x1, y1))).astype(np.float32)
			region *= (1.0 - alpha)[..., None]
			canvas.paste(Image.fromarray(np.clip(region + 0.5, 0, 255).astype(np.uint8)), (x0, y0))

		draw = ImageDraw.Draw(canvas)
		for line, (bx, by) in zip(lines, baselines):
			draw.text((bx, by), line.text, fill=TEXT_COLOR, font=self._fonts.font_for(line), anchor="ls")
		return canvas

	async def _draw_map(self, canvas: Image.Image, plan: LayoutPlan, coordinates: Coordinates) -> None:
		if self._maps is None:
			raise MapFetchError("no map tile provider configured")
		lat = coordinates.lat if coordinates.known else 0.0
		lng = coordinates.lng if coordinates.known else 0.0
		req_w, req_h = self._map_request_size
		tile = await self._maps.fetch(lng, lat, self._zoom, req_w, req_h)

		box = plan.map_box
		x, y = int(round(box.x)), int(round(box.y))
		side = max(1, int(round(box.width)))
		draw = ImageDraw.Draw(canvas)
		draw.rectangle([x, y, x + side - 1, y + side - 1], fill=(255, 255, 255))
		tile = tile.convert("RGBA").resize((side, side), Image.Resampling.LANCZOS)
		canvas.paste(tile, (x, y), tile)

		cx = box.x + box.width / 2
		cy = box.y + box.height / 2
		marker = box.width * MARKER_SCALE
		for scale, color in (MARKER_OUTER, MARKER_INNER):
			r = marker * scale
			draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=color)
