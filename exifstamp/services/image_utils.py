from __future__ import annotations

from io import BytesIO
from typing import Dict, List

from PIL import Image, UnidentifiedImageError

from exifstamp.services.errors import RenderError


ORIENTATION_TAG = 0x0112

# EXIF orientation -> transposes that bring the pixels upright
_ORIENTATION_OPS: Dict[int, List[Image.Transpose]] = {
	2: [Image.Transpose.FLIP_LEFT_RIGHT],
	3: [Image.Transpose.ROTATE_180],
	4: [Image.Transpose.FLIP_TOP_BOTTOM],
	5: [Image.Transpose.TRANSPOSE],
	6: [Image.Transpose.ROTATE_270],
	7: [Image.Transpose.TRANSVERSE],
	8: [Image.Transpose.ROTATE_90],
}


def apply_exif_orientation(img: Image.Image) -> Image.Image:
	try:
		o = int(img.getexif().get(ORIENTATION_TAG, 1))
	except (TypeError, ValueError):
		return img
	for op in _ORIENTATION_OPS.get(o, []):
		img = img.transpose(op)
	return img


def decode_base_image(data: bytes) -> Image.Image:
	try:
		img = Image.open(BytesIO(data))
		img.load()
	except (UnidentifiedImageError, OSError, ValueError) as e:
		raise RenderError(f"cannot decode base image: {e}") from e
	img = apply_exif_orientation(img)
	if img.mode != "RGB":
		img = img.convert("RGB")
	return img


def encode_jpeg(img: Image.Image, quality: int = 90) -> bytes:
	buf = BytesIO()
	img.save(buf, format="JPEG", quality=quality)
	return buf.getvalue()
