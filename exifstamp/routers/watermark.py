from __future__ import annotations

import uuid
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from exifstamp.services.datetime_override import DateOptions
from exifstamp.services.factory import build_pipeline, make_http_client
from exifstamp.services.pipeline import BatchRequest, WatermarkPipeline
from exifstamp.services.settings import Settings, get_settings
from exifstamp.services.status_store import read_status, write_status
from exifstamp.services.watermark_job import run_watermark_job


router = APIRouter(prefix="/watermark", tags=["watermark"])


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
	return make_http_client()


@lru_cache(maxsize=1)
def get_pipeline() -> WatermarkPipeline:
	return build_pipeline(get_settings(), get_http_client())


async def close_http_client() -> None:
	if get_http_client.cache_info().currsize:
		await get_http_client().aclose()
	get_http_client.cache_clear()
	get_pipeline.cache_clear()


def _slugify(text: str) -> str:
	return "".join(ch if (ch.isalnum() or ch in ("-", "_")) else "-" for ch in text).strip("-_").lower()


def _manual_coordinates(latitude: Optional[float], longitude: Optional[float]) -> Optional[tuple]:
	if latitude is None and longitude is None:
		return None
	if latitude is None or longitude is None:
		raise HTTPException(status_code=422, detail="latitude and longitude must be given together")
	return (latitude, longitude)


@router.post("/upload", summary="Upload photos and start watermarking in the background")
async def upload(
	background_tasks: BackgroundTasks,
	files: List[UploadFile] = File(...),
	manual_location: Optional[str] = Form(None),
	latitude: Optional[float] = Form(None),
	longitude: Optional[float] = Form(None),
	manual_datetime: Optional[str] = Form(None),
	show_hours: bool = Form(True),
	show_minutes: bool = Form(True),
	show_seconds: bool = Form(True),
	randomize_seconds: bool = Form(False),
	show_map: bool = Form(True),
	pipeline: WatermarkPipeline = Depends(get_pipeline),
	settings: Settings = Depends(get_settings),
):
	request = BatchRequest(
		manual_location=manual_location,
		manual_coordinates=_manual_coordinates(latitude, longitude),
		manual_timestamp=manual_datetime,
		date_options=DateOptions(
			show_hours=show_hours,
			show_minutes=show_minutes,
			show_seconds=show_seconds,
			randomize_seconds=randomize_seconds,
		),
		show_map=show_map,
	)
	files_meta = []
	for f in files:
		data = await f.read()
		files_meta.append({"filename": f.filename or "image.jpg", "data": data})
	filenames = [m["filename"] for m in files_meta]
	# "<first_filename_stem>_<ddmmyyyy>_<short id>"
	first_stem = _slugify(Path(filenames[0]).stem) if filenames else "job"
	job_id = f"{first_stem or 'job'}_{datetime.now().strftime('%d%m%Y')}_{uuid.uuid4().hex[:6]}"
	write_status(job_id, {"job_id": job_id, "status": "queued", "step": "Queued", "total": len(files_meta)})
	background_tasks.add_task(run_watermark_job, job_id, files_meta, request, pipeline, settings.output_dir)
	return {
		"job_id": job_id,
		"status": "queued",
		"num_files": len(files_meta),
		"filenames": filenames,
		"status_endpoint": f"/watermark/status/{job_id}",
		"result_endpoint": f"/watermark/result/{job_id}",
	}


def _known_status(job_id: str) -> dict:
	data = read_status(job_id)
	if data.get("status") == "unknown":
		raise HTTPException(status_code=404, detail=f"unknown job {job_id}")
	return data


@router.get("/status/{job_id}", summary="Get watermark job status")
def status(job_id: str):
	return _known_status(job_id)


@router.get("/result/{job_id}", summary="Get watermark job results")
def result(job_id: str):
	data = _known_status(job_id)
	if data.get("status") != "completed":
		return {"job_id": job_id, "status": data.get("status"), "message": "not completed yet"}
	return {
		"job_id": job_id,
		"outputs": [
			{**o, "download": f"/watermark/result/{job_id}/files/{o['filename']}"}
			for o in data.get("outputs", [])
		],
		"failed": data.get("failed", []),
	}


@router.get("/result/{job_id}/files/{filename}", summary="Download one watermarked image")
def download(job_id: str, filename: str, settings: Settings = Depends(get_settings)):
	data = _known_status(job_id)
	names = {o.get("filename") for o in data.get("outputs", [])}
	path = settings.output_dir / job_id / filename
	if filename not in names or not path.exists():
		raise HTTPException(status_code=404, detail=f"no such output {filename}")
	return FileResponse(path, media_type="image/jpeg", filename=filename)
