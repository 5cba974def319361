import io
import logging
from datetime import datetime

import pytest
from PIL import Image

from photobooth import config
from photobooth.backgrounds import encode_data_url
from photobooth.compositor import (
    build_filename,
    compose,
    cover_crop_box,
    export_collage,
    save_export,
)
from photobooth.errors import CompositionError
from photobooth.layout import fixed_slots

from conftest import make_image_bytes

COLORS = [(220, 20, 20), (20, 220, 20), (20, 20, 220), (220, 220, 20)]


def assert_close(actual, expected, tolerance=3):
    assert all(abs(a - e) <= tolerance for a, e in zip(actual, expected)), (actual, expected)


def center(slot):
    return slot.x + slot.width // 2, slot.y + slot.height // 2


@pytest.fixture()
def photos():
    return [make_image_bytes((100, 100), color) for color in COLORS]


def test_cover_crop_box_centres_overflow():
    assert cover_crop_box((400, 100), (100, 100)) == (150.0, 0.0, 250.0, 100.0)
    assert cover_crop_box((100, 400), (100, 100)) == (0.0, 150.0, 100.0, 250.0)
    assert cover_crop_box((200, 100), (400, 200)) == (0.0, 0.0, 200.0, 100.0)


def test_compose_places_photos_in_slot_order(photos):
    result = compose(photos, output_format="png")
    image = result.image
    assert image.size == (config.COLLAGE_WIDTH, config.COLLAGE_HEIGHT)
    for slot, color in zip(fixed_slots(), COLORS):
        assert_close(image.getpixel(center(slot)), color)
        assert_close(image.getpixel((slot.x, slot.y)), color)
        assert_close(image.getpixel((slot.right - 1, slot.bottom - 1)), color)


def test_compose_leaves_margins_gap_and_text_band_black(photos):
    image = compose(photos, output_format="png").image
    first = fixed_slots()[0]
    assert image.getpixel((5, 5)) == config.BACKGROUND_COLOR
    assert image.getpixel((first.right + config.COLLAGE_GAP // 2, 400)) == config.BACKGROUND_COLOR
    assert image.getpixel((540, config.COLLAGE_HEIGHT - 100)) == config.BACKGROUND_COLOR


def test_compose_crops_photos_around_centre():
    # Wide strip with a green centre: cover-fit keeps only the centre band.
    strip = Image.new("RGB", (1000, 100), (200, 0, 0))
    strip.paste((0, 200, 0), (400, 0, 600, 100))
    buffer = io.BytesIO()
    strip.save(buffer, format="PNG")
    data = buffer.getvalue()

    image = compose([data] * 4, output_format="png").image
    slot = fixed_slots()[0]
    for point in [(slot.x, slot.y), center(slot), (slot.right - 1, slot.bottom - 1)]:
        assert_close(image.getpixel(point), (0, 200, 0))


def test_compose_is_deterministic(photos):
    background = encode_data_url(make_image_bytes((60, 90), (10, 90, 160)), "image/png")
    for output_format in ("png", "jpeg"):
        first = compose(photos, background, output_format=output_format)
        second = compose(photos, background, output_format=output_format)
        assert first.data == second.data
        assert first.data_url == second.data_url


def test_compose_draws_background_behind_photos(photos):
    background = make_image_bytes((30, 30), (90, 40, 160))
    image = compose(photos, background, output_format="png").image
    assert_close(image.getpixel((5, 5)), (90, 40, 160))
    assert_close(image.getpixel((540, config.COLLAGE_HEIGHT - 50)), (90, 40, 160))
    assert_close(image.getpixel(center(fixed_slots()[0])), COLORS[0])


def _rgba_png(size, color) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def test_transparent_background_areas_stay_black(photos):
    background = encode_data_url(_rgba_png((40, 40), (255, 255, 255, 0)), "image/png")
    image = compose(photos, background, output_format="png").image
    assert image.getpixel((5, 5)) == config.BACKGROUND_COLOR
    assert image.getpixel((540, config.COLLAGE_HEIGHT - 50)) == config.BACKGROUND_COLOR


def test_translucent_background_is_blended_over_black(photos):
    background = _rgba_png((40, 40), (200, 100, 0, 128))
    image = compose(photos, background, output_format="png").image
    assert_close(image.getpixel((5, 5)), (100, 50, 0))


def test_palette_background_transparency_is_honoured(photos):
    palette = Image.new("P", (16, 16), 0)
    palette.putpalette([255, 255, 255] * 256)
    buffer = io.BytesIO()
    palette.save(buffer, format="PNG", transparency=0)
    image = compose(photos, buffer.getvalue(), output_format="png").image
    assert image.getpixel((5, 5)) == config.BACKGROUND_COLOR


def test_undecodable_background_falls_back_to_black(photos, caplog):
    with caplog.at_level(logging.WARNING, logger="photobooth.compositor"):
        result = compose(photos, b"not an image", output_format="png")
    assert result.image.getpixel((5, 5)) == config.BACKGROUND_COLOR
    assert any("Background could not be decoded" in r.getMessage() for r in caplog.records)


def test_undecodable_photo_aborts(photos):
    photos[2] = b"broken"
    with pytest.raises(CompositionError):
        compose(photos)


def test_fewer_photos_leave_slots_empty(photos):
    image = compose(photos[:2], output_format="png").image
    slots = fixed_slots()
    assert_close(image.getpixel(center(slots[1])), COLORS[1])
    assert image.getpixel(center(slots[2])) == config.BACKGROUND_COLOR
    assert image.getpixel(center(slots[3])) == config.BACKGROUND_COLOR


def test_extra_photos_are_ignored(photos):
    five = photos + [make_image_bytes((100, 100), (255, 255, 255))]
    assert compose(five, output_format="png").data == compose(photos, output_format="png").data


def test_output_encoding(photos):
    jpeg = compose(photos)
    assert jpeg.mime_type == "image/jpeg"
    assert jpeg.data_url.startswith("data:image/jpeg;base64,")
    assert Image.open(io.BytesIO(jpeg.data)).format == "JPEG"

    png = compose(photos, output_format="PNG")
    assert png.mime_type == "image/png"
    assert Image.open(io.BytesIO(png.data)).format == "PNG"


def test_png_ignores_quality(photos):
    low = compose(photos, output_format="png", quality=0.1)
    high = compose(photos, output_format="png", quality=1.0)
    assert low.data == high.data


def test_jpeg_quality_changes_output(photos):
    low = compose(photos, quality=0.1)
    high = compose(photos, quality=1.0)
    assert len(low.data) < len(high.data)


@pytest.mark.parametrize(
    "kwargs",
    [{"output_format": "gif"}, {"quality": 1.5}, {"quality": -0.1}],
)
def test_invalid_encoding_options(photos, kwargs):
    with pytest.raises(ValueError):
        compose(photos, **kwargs)


def test_build_filename_uses_local_timestamp():
    now = datetime(2024, 1, 2, 3, 4, 5)
    assert build_filename("image/jpeg", now) == "photobooth_20240102_030405.jpg"
    assert build_filename("image/png", now) == "photobooth_20240102_030405.png"


def test_export_and_save(photos, tmp_path):
    result = compose(photos)
    export = export_collage(result, datetime(2024, 6, 30, 23, 59, 58))
    assert export.filename == "photobooth_20240630_235958.jpg"
    assert export.mime_type == "image/jpeg"

    path = save_export(export, tmp_path / "out")
    assert path.name == export.filename
    assert path.read_bytes() == result.data
