"""Image normalization: make page bytes previewable and size-bounded."""

import asyncio
import logging
import math
import platform
import shutil
import subprocess
import tempfile
import threading
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageOps

from handwriting_ocr.sources import extension_for

log = logging.getLogger(__name__)

MAX_DIMENSION = 4096
JPEG_QUALITY = 85
DECODE_TIMEOUT_SECONDS = 5.0
CONVERT_TIMEOUT_SECONDS = 30.0

_PIXEL_LIMIT_LOCK = threading.Lock()

# Formats that any renderer and the extraction service accept as-is
SAFE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def is_safe_mime_type(mime_type: str) -> bool:
    return mime_type in SAFE_MIME_TYPES


def scaled_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Scale (width, height) uniformly so the longest side is at most max_dimension."""
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height

    scale = max_dimension / longest
    # Round half up
    new_width = max(1, int(math.floor(width * scale + 0.5)))
    new_height = max(1, int(math.floor(height * scale + 0.5)))
    return new_width, new_height


def _open_trusted(image_bytes: bytes) -> Image.Image:
    """Open local image bytes, allowing more pixels than Pillow's bomb guard."""
    try:
        return Image.open(BytesIO(image_bytes))
    except Image.DecompressionBombError:
        pass

    # Retry with the ceiling lifted
    with _PIXEL_LIMIT_LOCK:
        limit = Image.MAX_IMAGE_PIXELS
        Image.MAX_IMAGE_PIXELS = None
        try:
            return Image.open(BytesIO(image_bytes))
        finally:
            Image.MAX_IMAGE_PIXELS = limit


def _decode(image_bytes: bytes, max_dimension: Optional[int] = None) -> Image.Image:
    img = _open_trusted(image_bytes)
    if max_dimension and img.format == "JPEG":
        # Let libjpeg scale by a power of two while keeping both sides above
        # the bound, so the final resize still happens
        img.draft(img.mode, (max_dimension + 1, max_dimension + 1))
    img.load()
    return img


async def decode_with_timeout(
    image_bytes: bytes,
    timeout: float = DECODE_TIMEOUT_SECONDS,
    max_dimension: Optional[int] = None,
) -> Optional[Image.Image]:
    """Decode bytes into a bitmap off the event loop. None on failure or timeout."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_decode, image_bytes, max_dimension), timeout
        )
    except asyncio.TimeoutError:
        log.warning(f"Image decode timed out after {timeout}s")
        return None
    except Exception as e:
        log.debug(f"Image decode failed: {e}")
        return None


def render_jpeg(img: Image.Image, size: Tuple[int, int], quality: int) -> bytes:
    """Draw img at the given size and encode it as JPEG."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        img = background
    elif img.mode != "RGB":
        img = img.convert("RGB")

    if img.size != size:
        img = img.resize(size, Image.Resampling.LANCZOS)

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def _platform_convert_command(src: Path, dst: Path, quality: int) -> Optional[list]:
    if platform.system() == "Darwin" and shutil.which("sips"):
        # ImageIO handles HEIC natively on macOS
        return [
            "sips",
            "-s", "format", "jpeg",
            "-s", "formatOptions", str(quality),
            str(src),
            "--out", str(dst),
        ]
    magick = shutil.which("magick")
    if magick:
        return [magick, str(src), "-quality", str(quality), str(dst)]
    convert = shutil.which("convert")
    if convert and platform.system() != "Windows":
        return [convert, str(src), "-quality", str(quality), str(dst)]
    return None


def convert_with_platform_tool(
    image_bytes: bytes, mime_type: str, quality: int = JPEG_QUALITY
) -> Optional[bytes]:
    """
    Convert an image to JPEG with an OS-provided converter.

    Uses sips on macOS and ImageMagick elsewhere. Returns None when no
    converter is installed or the conversion fails.
    """
    with tempfile.TemporaryDirectory(prefix="hwocr-") as tmp:
        src = Path(tmp) / f"input.{extension_for(mime_type)}"
        dst = Path(tmp) / "output.jpg"
        command = _platform_convert_command(src, dst, quality)
        if command is None:
            log.debug("No platform image converter available")
            return None

        src.write_bytes(image_bytes)
        try:
            subprocess.run(
                command,
                check=True,
                capture_output=True,
                timeout=CONVERT_TIMEOUT_SECONDS,
            )
            data = dst.read_bytes()
        except (OSError, subprocess.SubprocessError) as e:
            log.warning(f"Platform conversion with {command[0]} failed: {e}")
            return None

    return data or None


async def _normalize(
    image_bytes: bytes,
    mime_type: str,
    max_dimension: int,
    quality: int,
    decode_timeout: float,
) -> Tuple[bytes, str]:
    needs_conversion = not is_safe_mime_type(mime_type)
    current_bytes, current_mime = image_bytes, mime_type

    img = await decode_with_timeout(current_bytes, decode_timeout, max_dimension)

    # Phase 1: convert with the platform tool if Pillow cannot read the format
    if img is None:
        if not needs_conversion:
            return image_bytes, mime_type

        converted = await asyncio.to_thread(
            convert_with_platform_tool, image_bytes, mime_type, quality
        )
        if converted is None:
            return image_bytes, mime_type

        log.debug(f"Converted {mime_type} to JPEG with platform tool")
        current_bytes, current_mime = converted, "image/jpeg"
        needs_conversion = False
        img = await decode_with_timeout(current_bytes, decode_timeout, max_dimension)
        if img is None:
            return current_bytes, current_mime

    # Phase 2: resize (and re-encode) if needed
    width, height = img.size
    needs_resize = max(width, height) > max_dimension

    if not needs_conversion and not needs_resize:
        return current_bytes, current_mime

    # Re-encoding drops EXIF, so bake the orientation into the pixels
    img = ImageOps.exif_transpose(img)
    target = scaled_size(img.width, img.height, max_dimension)

    log.debug(
        f"Re-encoding {current_mime} {width}x{height} as JPEG {target[0]}x{target[1]}"
    )
    encoded = await asyncio.to_thread(render_jpeg, img, target, quality)
    return encoded, "image/jpeg"


async def normalize_image(
    image_bytes: bytes,
    mime_type: str,
    max_dimension: int = MAX_DIMENSION,
    quality: int = JPEG_QUALITY,
    decode_timeout: float = DECODE_TIMEOUT_SECONDS,
) -> Tuple[bytes, str]:
    """
    Normalize an image for preview and upload.

    Safe formats within max_dimension come back untouched. Anything else is
    converted and/or downscaled to JPEG. Never raises: if every conversion
    path fails the original bytes and MIME type are returned unchanged.
    """
    try:
        return await _normalize(
            image_bytes, mime_type, max_dimension, quality, decode_timeout
        )
    except Exception as e:
        log.warning(f"Normalization failed, keeping original {mime_type}: {e}")
        return image_bytes, mime_type
