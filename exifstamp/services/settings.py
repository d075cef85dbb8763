from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


ENV_PREFIX = "EXIFSTAMP_"


@dataclass
class Settings:
	opencage_api_key: str = ""
	opencage_url: str = "https://api.opencagedata.com/geocode/v1/json"
	geocode_language: str = "id"
	nominatim_url: str = "https://nominatim.openstreetmap.org/reverse"
	user_agent: str = "exifstamp/0.1"
	reverse_geocoding: bool = False
	mapbox_token: str = ""
	mapbox_style: str = "mapbox/streets-v11"
	map_zoom: int = 15
	map_request_size: Tuple[int, int] = (600, 400)
	map_required: bool = True
	jobs_dir: Path = Path("jobs")
	output_dir: Path = Path("output")
	log_dir: Optional[Path] = None
	log_level: str = "INFO"
	font_regular: Optional[str] = None
	font_bold: Optional[str] = None
	jpeg_quality: int = 90
	extra: Dict[str, Any] = field(default_factory=dict)


class JsonSettingsFile:
	"""JSON settings file, flattened one section deep."""

	def __init__(self, settings_path: str | Path) -> None:
		self._path = Path(settings_path)
		if not self._path.exists():
			raise FileNotFoundError(f"settings file not found: {self._path}")
		with self._path.open("r", encoding="utf-8") as f:
			self._data = json.load(f)

	def flat(self) -> Dict[str, Any]:
		"""Top-level keys plus `section.key` pairs flattened to `section_key`."""
		out: Dict[str, Any] = {}
		for k, v in self._data.items():
			if isinstance(v, dict):
				for sub_k, sub_v in v.items():
					out[f"{k}_{sub_k}"] = sub_v
			else:
				out[k] = v
		return out


def _to_bool(v: Any) -> bool:
	if isinstance(v, bool):
		return v
	return str(v).strip().lower() in ("1", "true", "yes", "on")


def _to_size(v: Any) -> Tuple[int, int]:
	if isinstance(v, str):
		w, h = v.lower().split("x", 1)
		return (int(w), int(h))
	w, h = v
	return (int(w), int(h))


_COERCE = {
	"reverse_geocoding": _to_bool,
	"map_required": _to_bool,
	"map_zoom": int,
	"jpeg_quality": int,
	"map_request_size": _to_size,
	"jobs_dir": Path,
	"output_dir": Path,
	"log_dir": lambda v: Path(v) if v else None,
}


def load_settings(path: Optional[str | Path] = None) -> Settings:
	raw: Dict[str, Any] = {}
	if path is None:
		path = os.environ.get(f"{ENV_PREFIX}SETTINGS")
	if path:
		raw.update(JsonSettingsFile(path).flat())

	names = {f.name for f in fields(Settings) if f.name != "extra"}
	for name in names:
		env_value = os.environ.get(ENV_PREFIX + name.upper())
		if env_value is not None:
			raw[name] = env_value

	values: Dict[str, Any] = {}
	extra: Dict[str, Any] = {}
	for key, value in raw.items():
		if key not in names:
			extra[key] = value
			continue
		coerce = _COERCE.get(key)
		values[key] = coerce(value) if coerce else value
	return Settings(**values, extra=extra)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
	return load_settings()
