from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from exifstamp.services.settings import get_settings


def _jobs_dir(jobs_dir: Optional[Path] = None) -> Path:
	d = jobs_dir or get_settings().jobs_dir
	d.mkdir(parents=True, exist_ok=True)
	return d


def write_status(job_id: str, data: Dict[str, Any], jobs_dir: Optional[Path] = None) -> None:
	status_path = _jobs_dir(jobs_dir) / f"{job_id}.json"
	with status_path.open("w", encoding="utf-8") as f:
		json.dump(data, f, indent=2, ensure_ascii=False)


def read_status(job_id: str, jobs_dir: Optional[Path] = None) -> Dict[str, Any]:
	status_path = _jobs_dir(jobs_dir) / f"{job_id}.json"
	if not status_path.exists():
		return {"job_id": job_id, "status": "unknown"}
	with status_path.open("r", encoding="utf-8") as f:
		return json.load(f)
