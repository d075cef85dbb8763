from datetime import datetime

import pytest

from conftest import FIXED_NOW, make_jpeg, sample_exif
from exifstamp.services.metadata import (
	LOCATION_UNAVAILABLE,
	PLACEHOLDER_ADDRESS,
	PLACEHOLDER_COORDINATES,
	Coordinates,
	MetadataExtractor,
	parse_capture_time,
)


class _BrokenDecoder:
	def decode(self, data):
		raise RuntimeError("corrupt APP1 segment")


@pytest.mark.parametrize("tags", [None, {}])
def test_basic_record_when_no_tags(extractor, tags):
	record = extractor.extract(tags, datetime(2023, 12, 31, 23, 59, 1))
	assert record.capture_display == "31 Des 2023, 23:59:01"
	assert record.camera.make == "Unknown"
	assert record.camera.model == "Unknown"
	assert record.camera.focal_length == "N/A"
	assert record.camera.shutter_speed == "N/A"
	assert record.location_address == PLACEHOLDER_ADDRESS
	assert (record.coordinates.lat, record.coordinates.lng) == PLACEHOLDER_COORDINATES
	assert record.altitude_display == "N/A"
	assert record.speed_display == "0km/h"
	assert record.direction_display == "N/A"


def test_basic_record_without_file_time_uses_clock(extractor):
	assert extractor.extract(None).capture_display == "02 Jan 2024, 03:04:05"


def test_named_tag_wins_over_numeric(extractor):
	record = extractor.extract({"Make": "Canon", 271: "Nikon", 272: "D750"})
	assert record.camera.make == "Canon"
	assert record.camera.model == "D750"


def test_numeric_string_keys_are_accepted(extractor):
	record = extractor.extract({"271": "Sony", "272": "A7 III", "33437": 2.8, "34855": 400, "33434": 2})
	assert record.camera.make == "Sony"
	assert record.camera.aperture == "f/2.8"
	assert record.camera.iso == "ISO 400"
	assert record.camera.shutter_speed == "2s"


def test_full_tag_set(extractor):
	tags = {
		"Make": "Canon",
		"Model": "EOS R6",
		"FocalLength": 50.0,
		"FNumber": 1.8,
		34855: 200,
		"ExposureTime": 0.004,
		"DateTimeOriginal": "2024:05:01 14:05:09",
		6: 123.4,
		13: 10,
		"GPSImgDirection": 90,
		"latitude": -6.5,
		"longitude": 106.8,
	}
	record = extractor.extract(tags)
	assert record.capture_display == "01 Mei 2024, 14:05:09"
	assert record.camera.focal_length == "50mm"
	assert record.camera.aperture == "f/1.8"
	assert record.camera.iso == "ISO 200"
	assert record.camera.shutter_speed == "1/250"
	assert record.altitude_display == "123m"
	assert record.speed_display == "19km/h"
	assert record.direction_display == "90° E"
	assert record.coordinates == Coordinates(-6.5, 106.8)
	assert record.location_address == LOCATION_UNAVAILABLE
	assert record.raw_tags is tags


def test_missing_values_fall_back_to_literals(extractor):
	record = extractor.extract({"Make": "Canon"})
	assert record.camera.model == "Unknown"
	assert record.camera.iso == "N/A"
	assert record.speed_display == "0km/h"
	assert record.altitude_display == "N/A"
	assert record.capture_display == "02 Jan 2024, 03:04:05"


def test_native_datetime_capture(extractor):
	record = extractor.extract({"CreateDate": datetime(2022, 2, 3, 4, 5, 6)})
	assert record.capture_display == "03 Feb 2022, 04:05:06"


@pytest.mark.parametrize("value", ["garbage", "2024:13:01 10:00:00", "2024:05:01", "2024-05-01 aa:bb:cc"])
def test_malformed_capture_time_keeps_default(extractor, value):
	record = extractor.extract({"DateTime": value})
	assert record.capture_display == "02 Jan 2024, 03:04:05"


def test_parse_capture_time():
	assert parse_capture_time("2024:05:01 14:05:09") == datetime(2024, 5, 1, 14, 5, 9)
	assert parse_capture_time(12345) is None


@pytest.mark.parametrize("tags", [{"latitude": -6.5}, {"longitude": 106.8}, {"Make": "Canon"}])
def test_coordinates_need_both_axes(extractor, tags):
	record = extractor.extract(tags)
	assert record.coordinates.lat is None
	assert record.coordinates.lng is None


def test_coordinates_reject_half_pairs():
	with pytest.raises(ValueError):
		Coordinates(1.0, None)


def test_extract_image_end_to_end(extractor):
	record = extractor.extract_image(make_jpeg(exif=sample_exif()))
	assert record.camera.make == "Canon"
	assert record.camera.model == "EOS R6"
	assert record.capture_display == "01 Mei 2024, 14:05:09"
	assert record.camera.shutter_speed == "1/250"
	assert record.altitude_display == "123m"
	assert record.coordinates.lat == pytest.approx(-6.4817, abs=1e-4)


def test_undecodable_bytes_degrade_to_basic_record():
	extractor = MetadataExtractor(_BrokenDecoder(), clock=lambda: FIXED_NOW)
	record = extractor.extract_image(b"\x89PNG not really", datetime(2020, 6, 1, 8, 0, 0))
	assert record.capture_display == "01 Jun 2020, 08:00:00"
	assert record.location_address == PLACEHOLDER_ADDRESS


def test_jpeg_without_exif_gives_basic_record(extractor):
	record = extractor.extract_image(make_jpeg(), datetime(2020, 6, 1, 8, 0, 0))
	assert record.camera.make == "Unknown"
	assert record.capture_display == "01 Jun 2020, 08:00:00"


def test_to_dict_drops_raw_tags(extractor):
	data = extractor.extract({"Make": "Canon"}).to_dict()
	assert "raw_tags" not in data
	assert data["camera"]["make"] == "Canon"
	assert data["coordinates"] == {"lat": None, "lng": None}
