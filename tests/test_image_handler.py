import asyncio
from io import BytesIO

from PIL import Image

from handwriting_ocr import image_handler
from handwriting_ocr.image_handler import normalize_image, scaled_size
from conftest import make_image_bytes


def _open(data):
    return Image.open(BytesIO(data))


def test_scaled_size_within_bounds_is_unchanged():
    assert scaled_size(100, 50, 4096) == (100, 50)
    assert scaled_size(4096, 10, 4096) == (4096, 10)


def test_scaled_size_keeps_aspect_ratio():
    assert scaled_size(5000, 2500, 4096) == (4096, 2048)
    assert scaled_size(2500, 5000, 4096) == (2048, 4096)


def test_scaled_size_rounds_half_up_and_never_hits_zero():
    assert scaled_size(8, 5, 4) == (4, 3)
    assert scaled_size(10000, 1, 100) == (100, 1)


def test_safe_format_within_bounds_is_returned_untouched(jpeg_bytes):
    data, mime = asyncio.run(normalize_image(jpeg_bytes, "image/jpeg"))
    assert data is jpeg_bytes
    assert mime == "image/jpeg"


def test_png_within_bounds_keeps_its_type(png_bytes):
    data, mime = asyncio.run(normalize_image(png_bytes, "image/png"))
    assert data == png_bytes
    assert mime == "image/png"


def test_oversized_image_is_downscaled_to_jpeg():
    original = make_image_bytes((500, 250), "PNG")
    data, mime = asyncio.run(normalize_image(original, "image/png", max_dimension=400))
    assert mime == "image/jpeg"
    img = _open(data)
    assert img.format == "JPEG"
    assert img.size == (400, 200)


def test_unsafe_decodable_format_is_reencoded(bmp_bytes):
    data, mime = asyncio.run(normalize_image(bmp_bytes, "image/bmp"))
    assert mime == "image/jpeg"
    assert _open(data).size == (100, 50)


def test_exif_orientation_is_applied_when_reencoding():
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 degrees clockwise on display
    original = make_image_bytes((200, 100), "JPEG", exif=exif.tobytes())
    data, mime = asyncio.run(normalize_image(original, "image/jpeg", max_dimension=150))
    assert mime == "image/jpeg"
    assert _open(data).size == (75, 150)


def test_undecodable_heic_without_converter_keeps_original(monkeypatch):
    monkeypatch.setattr(image_handler, "convert_with_platform_tool", lambda *a, **k: None)
    data, mime = asyncio.run(normalize_image(b"not really heic", "image/heic"))
    assert data == b"not really heic"
    assert mime == "image/heic"


def test_platform_converter_output_is_used(monkeypatch, jpeg_bytes):
    calls = []

    def fake_convert(image_bytes, mime_type, quality=85):
        calls.append(mime_type)
        return jpeg_bytes

    monkeypatch.setattr(image_handler, "convert_with_platform_tool", fake_convert)
    data, mime = asyncio.run(normalize_image(b"heic payload", "image/heic"))
    assert calls == ["image/heic"]
    assert data == jpeg_bytes
    assert mime == "image/jpeg"


def test_undecodable_safe_format_is_returned_as_is(monkeypatch):
    def fail(*a, **k):
        raise AssertionError("converter should not run for safe types")

    monkeypatch.setattr(image_handler, "convert_with_platform_tool", fail)
    data, mime = asyncio.run(normalize_image(b"\xff\xd8broken", "image/jpeg"))
    assert data == b"\xff\xd8broken"
    assert mime == "image/jpeg"


def test_render_failure_falls_back_to_original(monkeypatch, bmp_bytes):
    def boom(*a, **k):
        raise OSError("encoder unavailable")

    monkeypatch.setattr(image_handler, "render_jpeg", boom)
    data, mime = asyncio.run(normalize_image(bmp_bytes, "image/bmp"))
    assert data == bmp_bytes
    assert mime == "image/bmp"


def test_decode_timeout_keeps_original(monkeypatch, bmp_bytes):
    async def never(image_bytes, *args, **kwargs):
        return None

    monkeypatch.setattr(image_handler, "decode_with_timeout", never)
    monkeypatch.setattr(image_handler, "convert_with_platform_tool", lambda *a, **k: None)
    data, mime = asyncio.run(normalize_image(bmp_bytes, "image/bmp"))
    assert data == bmp_bytes
    assert mime == "image/bmp"


def test_image_above_pillow_pixel_ceiling_is_still_downscaled(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    original = make_image_bytes((2000, 1000), "JPEG")
    data, mime = asyncio.run(normalize_image(original, "image/jpeg", max_dimension=400))
    assert Image.MAX_IMAGE_PIXELS == 1000

    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", None)
    assert data != original
    assert mime == "image/jpeg"
    assert _open(data).size == (400, 200)


def test_jpeg_decode_is_drafted_but_stays_above_the_bound():
    original = make_image_bytes((2000, 1000), "JPEG")
    assert image_handler._decode(original, 400).size == (1000, 500)
    assert image_handler._decode(original, 600).size == (2000, 1000)
    assert image_handler._decode(original).size == (2000, 1000)


def test_render_jpeg_flattens_transparency():
    img = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
    out = _open(image_handler.render_jpeg(img, (5, 5), 85))
    assert out.mode == "RGB"
    assert out.size == (5, 5)
    r, g, b = out.getpixel((2, 2))
    assert min(r, g, b) > 240
