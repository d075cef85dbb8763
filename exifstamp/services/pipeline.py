from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from exifstamp.services.datetime_override import DateOptions, apply_datetime_override
from exifstamp.services.image_utils import decode_base_image
from exifstamp.services.layout import WatermarkLayoutEngine
from exifstamp.services.location import LocationResolver
from exifstamp.services.metadata import CanonicalExifRecord, MetadataExtractor
from exifstamp.services.renderer import CompositingRenderer


ProgressCallback = Callable[[str, int, int], None]


@dataclass
class ImageSource:
	name: str
	data: Optional[bytes] = None
	path: Optional[Path] = None
	modified: Optional[datetime] = None

	@classmethod
	def from_path(cls, path: Path) -> "ImageSource":
		return cls(name=path.name, path=path, modified=datetime.fromtimestamp(path.stat().st_mtime))

	async def read(self) -> bytes:
		if self.data is not None:
			return self.data
		if self.path is None:
			raise ValueError(f"image source {self.name!r} has neither data nor path")
		return self.path.read_bytes()


@dataclass
class BatchRequest:
	manual_location: Optional[str] = None
	manual_coordinates: Optional[Tuple[float, float]] = None
	manual_timestamp: Optional[str] = None
	date_options: DateOptions = field(default_factory=DateOptions)
	show_map: bool = True


@dataclass
class ProcessedResult:
	source_ref: str
	encoded_image: bytes
	record: CanonicalExifRecord
	# position of the source in its batch
	index: int = 0


class WatermarkPipeline:
	def __init__(
		self,
		extractor: MetadataExtractor,
		resolver: LocationResolver,
		layout_engine: WatermarkLayoutEngine,
		renderer: CompositingRenderer,
	) -> None:
		self.extractor = extractor
		self.resolver = resolver
		self.layout_engine = layout_engine
		self.renderer = renderer

	async def process_one(self, source: ImageSource, request: BatchRequest) -> ProcessedResult:
		data = await source.read()
		base = decode_base_image(data)
		record = self.extractor.extract_image(data, source.modified)
		record = await self.resolver.resolve(record, request.manual_location, request.manual_coordinates)
		record = apply_datetime_override(record, request.manual_timestamp, request.date_options)

		lines, plan = self.layout_engine.layout(record, base.width, base.height)
		encoded = await self.renderer.render(base, lines, plan, record.coordinates, show_map=request.show_map)
		return ProcessedResult(source_ref=source.name, encoded_image=encoded, record=record)

	async def process_batch(
		self,
		sources: Sequence[ImageSource],
		request: Optional[BatchRequest] = None,
		on_progress: Optional[ProgressCallback] = None,
	) -> List[ProcessedResult]:
		"""
		Process every source one at a time, in input order, on a single worker.
		A failing image is logged and left out of the results; the batch always
		runs to the end of the list.
		"""
		request = request or BatchRequest()
		queue: asyncio.Queue = asyncio.Queue()
		for index, source in enumerate(sources):
			queue.put_nowait((index, source))
		results: List[ProcessedResult] = []
		worker = asyncio.create_task(self._worker(queue, request, len(sources), results, on_progress))
		await queue.join()
		await worker
		return results

	async def _worker(
		self,
		queue: asyncio.Queue,
		request: BatchRequest,
		total: int,
		results: List[ProcessedResult],
		on_progress: Optional[ProgressCallback],
	) -> None:
		while not queue.empty():
			index, source = await queue.get()
			try:
				if on_progress:
					on_progress(f"Processing {source.name}", index, total)
				result = await self.process_one(source, request)
				result.index = index
				results.append(result)
				logger.info("Watermarked {} ({}/{})", source.name, index + 1, total)
			except Exception:
				logger.exception("Failed to watermark {}, skipping", source.name)
			finally:
				queue.task_done()
