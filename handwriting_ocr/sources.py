"""Image sources: files on disk, the system clipboard and the library folder."""

import logging
import os
from dataclasses import dataclass
from io import BytesIO
from itertools import islice
from pathlib import Path
from typing import Iterator, List, Optional

from PIL import Image, ImageGrab

log = logging.getLogger(__name__)

MIME_MAP = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
}

IMAGE_EXTENSIONS = frozenset(MIME_MAP)

CLIPBOARD_LABEL = "clipboard"

MAX_LIBRARY_IMAGES = 5000
SKIPPED_DIRS = frozenset({"node_modules", "__pycache__", "site-packages"})


@dataclass(frozen=True)
class ImageSource:
    """Raw bytes handed off by a file picker, drop target or clipboard."""

    image_bytes: bytes
    mime_type: str
    label: str


def mime_type_for(filename: str) -> str:
    """Guess the MIME type from a file name; unknown extensions fall back to JPEG."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_MAP.get(ext, "image/jpeg")


def extension_for(mime_type: str) -> str:
    for ext, mime in MIME_MAP.items():
        if mime == mime_type:
            return ext
    return "jpg"


def is_image_path(path: Path) -> bool:
    return path.suffix.lower().lstrip(".") in IMAGE_EXTENSIONS


def read_image_file(path: Path) -> ImageSource:
    """Read an image file. The file name doubles as the page label."""
    path = Path(path)
    with open(path, "rb") as f:
        data = f.read()
    log.debug(f"Read {len(data)} bytes from {path}")
    return ImageSource(data, mime_type_for(path.name), path.name)


def read_clipboard_image() -> Optional[ImageSource]:
    """
    Grab an image from the system clipboard.

    Returns None when the clipboard holds neither an image nor a copied image
    file. Raises OSError when the platform clipboard cannot be read at all,
    including Linux desktops without xclip or wl-paste.
    """
    try:
        grabbed = ImageGrab.grabclipboard()
    except NotImplementedError as e:
        raise OSError(str(e)) from e

    if isinstance(grabbed, Image.Image):
        buffer = BytesIO()
        grabbed.save(buffer, format="PNG")
        return ImageSource(buffer.getvalue(), "image/png", CLIPBOARD_LABEL)

    if isinstance(grabbed, list):
        # Copied files come back as a list of paths
        for name in grabbed:
            path = Path(name)
            if is_image_path(path) and path.is_file():
                source = read_image_file(path)
                return ImageSource(source.image_bytes, source.mime_type, CLIPBOARD_LABEL)

    return None


def _walk_images(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so hidden trees are never entered
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in SKIPPED_DIRS
        )
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if not name.startswith(".") and is_image_path(path):
                yield path


def list_library_images(root: Path, limit: int = MAX_LIBRARY_IMAGES) -> List[Path]:
    """
    List image files below root, sorted by their path relative to root.

    Hidden and tooling directories are skipped, and at most limit images
    are collected.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    found = list(islice(_walk_images(root), limit))
    if len(found) == limit:
        log.warning(f"Library listing stopped at {limit} images under {root}")
    return sorted(found, key=lambda p: p.relative_to(root).as_posix().lower())


def _fuzzy_match(query: str, text: str) -> bool:
    """True if every character of query appears in text, in order."""
    it = iter(text)
    return all(ch in it for ch in query)


def filter_library_images(paths: List[Path], query: str, root: Path) -> List[Path]:
    """Case-insensitive fuzzy filter on the path relative to root."""
    query = query.strip().lower()
    if not query:
        return list(paths)

    root = Path(root)
    return [
        p for p in paths if _fuzzy_match(query, p.relative_to(root).as_posix().lower())
    ]
