"""
Watermark Images - batch CLI

Stamps capture time, camera settings, location and a map thumbnail onto a copy
of every photo in a file or folder, writing watermarked-*.jpg next to them
(or into --output).
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List

from loguru import logger

from exifstamp.services.datetime_override import DateOptions
from exifstamp.services.factory import build_pipeline, make_http_client
from exifstamp.services.logging import init_logging
from exifstamp.services.pipeline import BatchRequest, ImageSource
from exifstamp.services.settings import load_settings
from exifstamp.services.watermark_job import unique_output_names


SUPPORTED_IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".webp"}


def list_image_files(input_path: Path) -> List[Path]:
	if input_path.is_file():
		return [input_path]
	return sorted(
		p for p in input_path.iterdir()
		if p.is_file() and p.suffix.lower() in SUPPORTED_IMAGE_EXTS and not p.name.startswith("watermarked-")
	)


def parse_args(argv=None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Overlay photo metadata and a location map onto images")
	parser.add_argument("input", help="Image file or folder")
	parser.add_argument("--output", default=None, help="Output folder (default: next to the input)")
	parser.add_argument("--location", default=None, help="Address to geocode and stamp instead of EXIF GPS")
	parser.add_argument("--lat", type=float, default=None, help="Latitude used when a photo has no GPS")
	parser.add_argument("--lng", type=float, default=None, help="Longitude used when a photo has no GPS")
	parser.add_argument("--datetime", default=None, dest="manual_datetime", help="ISO timestamp overriding the capture time")
	parser.add_argument("--no-hours", action="store_true", help="Hide hours in an overridden timestamp")
	parser.add_argument("--no-minutes", action="store_true", help="Hide minutes in an overridden timestamp")
	parser.add_argument("--no-seconds", action="store_true", help="Hide seconds in an overridden timestamp")
	parser.add_argument("--random-seconds", action="store_true", help="Use random seconds in an overridden timestamp")
	parser.add_argument("--no-map", action="store_true", help="Skip the map thumbnail")
	parser.add_argument("--settings", default=None, help="Path to a JSON settings file")
	args = parser.parse_args(argv)
	if (args.lat is None) != (args.lng is None):
		parser.error("--lat and --lng must be given together")
	return args


def build_request(args: argparse.Namespace) -> BatchRequest:
	coords = (args.lat, args.lng) if args.lat is not None else None
	return BatchRequest(
		manual_location=args.location,
		manual_coordinates=coords,
		manual_timestamp=args.manual_datetime,
		date_options=DateOptions(
			show_hours=not args.no_hours,
			show_minutes=not args.no_minutes,
			show_seconds=not args.no_seconds,
			randomize_seconds=bool(args.random_seconds),
		),
		show_map=not args.no_map,
	)


async def watermark_paths(paths: List[Path], output_dir: Path, request: BatchRequest, settings) -> int:
	output_dir.mkdir(parents=True, exist_ok=True)
	async with make_http_client() as client:
		pipeline = build_pipeline(settings, client)
		sources = [ImageSource.from_path(p) for p in paths]
		results = await pipeline.process_batch(sources, request)
	names = unique_output_names([s.name for s in sources])
	for r in results:
		out_path = output_dir / names[r.index]
		out_path.write_bytes(r.encoded_image)
		print(f"Saved: {out_path}")
	return len(results)


def main(argv=None) -> int:
	args = parse_args(argv)
	settings = load_settings(args.settings)
	init_logging(settings.log_dir, settings.log_level)

	input_path = Path(args.input).resolve()
	paths = list_image_files(input_path)
	if not paths:
		raise SystemExit(f"No images found in: {input_path}")
	base_dir = input_path.parent if input_path.is_file() else input_path
	output_dir = Path(args.output).resolve() if args.output else base_dir

	done = asyncio.run(watermark_paths(paths, output_dir, build_request(args), settings))
	logger.info("{}/{} images watermarked", done, len(paths))
	return 0 if done == len(paths) else 1


if __name__ == "__main__":
	raise SystemExit(main())
