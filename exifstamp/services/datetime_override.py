from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

from loguru import logger

from exifstamp.services.formatting import format_date
from exifstamp.services.metadata import CanonicalExifRecord


@dataclass(frozen=True)
class DateOptions:
	show_hours: bool = True
	show_minutes: bool = True
	show_seconds: bool = True
	randomize_seconds: bool = False


def parse_override(iso_timestamp: Optional[str]) -> Optional[datetime]:
	if not iso_timestamp or not iso_timestamp.strip():
		return None
	try:
		parsed = datetime.fromisoformat(iso_timestamp.strip())
	except ValueError:
		return None
	if parsed.tzinfo is not None:
		# wall-clock time in the local zone, as the photo would be labelled
		parsed = parsed.astimezone().replace(tzinfo=None)
	return parsed


def format_override(parsed: datetime, options: DateOptions, rng: Optional[random.Random] = None) -> str:
	if not options.show_seconds:
		seconds = None
	elif options.randomize_seconds:
		seconds = (rng or random).randrange(60)
	else:
		seconds = parsed.second

	time_parts: List[str] = []
	if options.show_hours:
		time_parts.append(f"{parsed.hour:02d}")
	if options.show_minutes:
		time_parts.append(f"{parsed.minute:02d}")
	if seconds is not None:
		time_parts.append(f"{seconds:02d}")

	date_text = format_date(parsed)
	if not time_parts:
		return date_text
	return f"{date_text}, {':'.join(time_parts)}"


def apply_datetime_override(
	record: CanonicalExifRecord,
	iso_timestamp: Optional[str],
	options: Optional[DateOptions] = None,
	rng: Optional[random.Random] = None,
) -> CanonicalExifRecord:
	parsed = parse_override(iso_timestamp)
	if parsed is None:
		if iso_timestamp and iso_timestamp.strip():
			logger.warning("Ignoring unparseable date override: {!r}", iso_timestamp)
		return record
	return replace(record, capture_display=format_override(parsed, options or DateOptions(), rng))
