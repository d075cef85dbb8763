import pytest

from exifstamp.services.layout import (
	PADDING,
	WatermarkLayoutEngine,
	WatermarkLine,
	base_font_size,
	build_lines,
	compute_plan,
)
from exifstamp.services.metadata import (
	LOCATION_UNAVAILABLE,
	PLACEHOLDER_ADDRESS,
	CameraInfo,
	CanonicalExifRecord,
	Coordinates,
)


def _full_record(**overrides):
	values = dict(
		capture_display="01 Mei 2024, 14:05:09",
		camera=CameraInfo("Canon", "EOS R6", "50mm", "f/1.8", "ISO 200", "1/250"),
		coordinates=Coordinates(-6.4817, 106.837),
		location_address="Jalan Cikempong\n Pakansari \nJawa Barat",
		altitude_display="123m",
	)
	values.update(overrides)
	return CanonicalExifRecord(**values)


def test_base_font_size():
	assert base_font_size(500) == 14
	assert base_font_size(4000) == pytest.approx(60.0)


def test_line_order_and_emphasis():
	lines = build_lines(_full_record(), 20.0)
	assert [line.text for line in lines] == [
		"01 Mei 2024, 14:05:09",
		"Canon EOS R6",
		"50mm f/1.8 1/250 ISO 200",
		"Jalan Cikempong",
		"Pakansari",
		"Jawa Barat",
		"-6.481700, 106.837000 • Alt: 123m",
	]
	assert lines[0] == WatermarkLine("01 Mei 2024, 14:05:09", pytest.approx(24.0), "primary")
	assert lines[0].bold
	assert all(line.emphasis == "normal" and line.font_size == 20.0 for line in lines[1:-1])
	assert lines[-1].emphasis == "secondary"
	assert lines[-1].font_size == pytest.approx(18.0)


def test_unknown_make_omits_camera_line():
	record = _full_record(camera=CameraInfo(focal_length="35mm", aperture="f/2", iso="ISO 100", shutter_speed="1/60"))
	texts = [line.text for line in build_lines(record, 20.0)]
	assert "Unknown Unknown" not in texts
	assert texts[1] == "35mm f/2 1/60 ISO 100"


def test_unknown_focal_length_omits_settings_line():
	record = _full_record(camera=CameraInfo(make="Canon", model="EOS R6"))
	texts = [line.text for line in build_lines(record, 20.0)]
	assert texts[1] == "Canon EOS R6"
	assert texts[2] == "Jalan Cikempong"


def test_unavailable_address_replaced_by_placeholder():
	record = _full_record(location_address=LOCATION_UNAVAILABLE)
	texts = [line.text for line in build_lines(record, 20.0)]
	assert texts[3:8] == PLACEHOLDER_ADDRESS.split("\n")


def test_altitude_only_line():
	record = _full_record(coordinates=Coordinates(), altitude_display="88m")
	assert build_lines(record, 20.0)[-1].text == "• Alt: 88m"


def test_coordinates_only_line():
	record = _full_record(altitude_display="N/A")
	assert build_lines(record, 20.0)[-1].text == "-6.481700, 106.837000"


def test_no_position_line_without_coordinates_or_altitude():
	record = _full_record(coordinates=Coordinates(), altitude_display="N/A")
	lines = build_lines(record, 20.0)
	assert lines[-1].text == "Jawa Barat"
	assert all(line.emphasis != "secondary" for line in lines)


def test_plan_geometry():
	plan = compute_plan([100.0, 250.0, 180.0], 15.0, 1000, 800)
	assert plan.pitch == pytest.approx(19.5)
	assert plan.padding == PADDING
	assert plan.text_box.width == pytest.approx(290.0)
	assert plan.text_box.height == pytest.approx(3 * 19.5 + 40)
	assert plan.text_box.right == pytest.approx(1000)
	assert plan.text_box.bottom == pytest.approx(800)
	assert plan.map_box.width == pytest.approx(160.0)
	assert plan.map_box.height == pytest.approx(160.0)
	assert (plan.map_box.x, plan.map_box.y) == (20, pytest.approx(800 - 160 - 20))
	assert plan.text_origin == (pytest.approx(710 + 20), pytest.approx(plan.text_box.y + 20 + 15.0))


def test_engine_measures_lines(fonts):
	engine = WatermarkLayoutEngine(fonts)
	record = _full_record()
	lines, plan = engine.layout(record, 1200, 900)
	widest = max(fonts.measure(line) for line in lines)
	assert plan.font_size == pytest.approx(18.0)
	assert plan.text_box.width == pytest.approx(widest + 2 * PADDING)
	assert plan.text_box.height == pytest.approx(len(lines) * 18.0 * 1.3 + 2 * PADDING)
	assert plan.map_box.width == pytest.approx(180.0)


def test_portrait_map_uses_short_side(fonts):
	_, plan = WatermarkLayoutEngine(fonts).layout(_full_record(), 600, 1000)
	assert plan.map_box.width == pytest.approx(120.0)
	assert plan.map_box.bottom == pytest.approx(1000 - PADDING)
