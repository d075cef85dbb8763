from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional


COMPASS_POINTS = [
	"N", "NNE", "NE", "ENE",
	"E", "ESE", "SE", "SSE",
	"S", "SSW", "SW", "WSW",
	"W", "WNW", "NW", "NNW",
]

# id-ID short month names
MONTHS_SHORT = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]

KNOTS_TO_KMH = 1.852


def round_half_up(x: float) -> int:
	return int(math.floor(x + 0.5))


def format_number(v: Any) -> str:
	"""Render a number the way a display string expects: 50.0 -> "50", 1.8 -> "1.8"."""
	if isinstance(v, float) and v.is_integer():
		return str(int(v))
	return str(v)


def to_float(v: Any) -> Optional[float]:
	if v is None or isinstance(v, bool):
		return None
	if isinstance(v, (tuple, list)):
		if len(v) == 2 and all(isinstance(p, int) for p in v):
			num, den = v
			return float(num) / float(den) if den else None
		return to_float(v[0]) if v else None
	try:
		return float(v)
	except (TypeError, ValueError):
		return None


def format_shutter_speed(exposure_time: float) -> str:
	if exposure_time >= 1:
		return f"{format_number(exposure_time)}s"
	return f"1/{round_half_up(1 / exposure_time)}"


def format_direction(direction: float) -> str:
	index = round_half_up(direction / 22.5) % 16
	return f"{round_half_up(direction)}° {COMPASS_POINTS[index]}"


def format_altitude(meters: float) -> str:
	return f"{round_half_up(meters)}m"


def format_speed(knots: float) -> str:
	return f"{round_half_up(knots * KNOTS_TO_KMH)}km/h"


def format_date(dt: datetime) -> str:
	return f"{dt.day:02d} {MONTHS_SHORT[dt.month - 1]} {dt.year}"


def format_clock(dt: datetime) -> str:
	return f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"


def format_capture(dt: datetime) -> str:
	return f"{format_date(dt)}, {format_clock(dt)}"
