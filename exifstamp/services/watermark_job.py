from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Set

from loguru import logger

from exifstamp.services.pipeline import BatchRequest, ImageSource, WatermarkPipeline
from exifstamp.services.status_store import write_status


def output_name(source_name: str) -> str:
	return f"watermarked-{Path(source_name).stem}.jpg"


def unique_output_names(source_names: List[str]) -> List[str]:
	"""One output name per source, in order; repeated stems get a -2, -3, ... suffix."""
	used: Set[str] = set()
	names: List[str] = []
	for source_name in source_names:
		name = output_name(source_name)
		stem = name[:-len(".jpg")]
		n = 2
		while name in used:
			name = f"{stem}-{n}.jpg"
			n += 1
		used.add(name)
		names.append(name)
	return names


async def run_watermark_job(
	job_id: str,
	files_meta: List[Dict[str, Any]],
	request: BatchRequest,
	pipeline: WatermarkPipeline,
	output_root: Path,
) -> None:
	try:
		out_dir = output_root / job_id
		out_dir.mkdir(parents=True, exist_ok=True)
		sources = [ImageSource(name=Path(fm["filename"]).name, data=fm["data"]) for fm in files_meta]
		total = len(sources)

		def progress(step: str, index: int, count: int) -> None:
			write_status(job_id, {
				"job_id": job_id,
				"status": "processing",
				"step": step,
				"current": index + 1,
				"total": count,
			})

		results = await pipeline.process_batch(sources, request, on_progress=progress)

		names = unique_output_names([s.name for s in sources])
		outputs = []
		for r in results:
			name = names[r.index]
			(out_dir / name).write_bytes(r.encoded_image)
			outputs.append({"source": r.source_ref, "filename": name, "record": r.record.to_dict()})

		processed = {r.index for r in results}
		failed = [s.name for i, s in enumerate(sources) if i not in processed]
		write_status(job_id, {
			"job_id": job_id,
			"status": "completed",
			"step": "Done",
			"total": total,
			"outputs": outputs,
			"failed": failed,
		})
		logger.info("Job {} finished: {}/{} images watermarked", job_id, len(outputs), total)
	except Exception as e:
		logger.exception("Job {} failed", job_id)
		write_status(job_id, {"job_id": job_id, "status": "error", "error": str(e)})
