"""
Image Sources
=============
Decodes screenshots from files, directories and the system clipboard.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Iterable, Union

from PIL import Image, ImageGrab, UnidentifiedImageError

from .errors import UnsupportedImageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def is_image_file(path: PathLike) -> bool:
    """True if the file name maps to an image/* MIME type."""
    mime_type, _ = mimetypes.guess_type(str(path))
    return bool(mime_type and mime_type.startswith("image/"))


def load_image(path: PathLike) -> Image.Image:
    """
    Decode an image file fully into memory.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedImageError: If Pillow cannot decode it.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedImageError(f"Cannot decode {path.name}: {e}") from e


def collect_image_files(paths: Iterable[PathLike]) -> list[Path]:
    """
    Expand arguments into an ordered list of image files.

    Directories contribute their image files (sorted, non-recursive);
    files are kept if they look like images. Order of arguments is kept.
    """
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted(
                p for p in path.iterdir() if p.is_file() and is_image_file(p)
            )
            logger.debug(f"Found {len(found)} image(s) in {path}")
            files.extend(found)
        elif is_image_file(path):
            files.append(path)
        else:
            logger.warning(f"Skipping non-image file: {path}")
    return files


def grab_clipboard_images() -> list[tuple[str, Image.Image]]:
    """
    Read images from the clipboard.

    Returns:
        (name, image) pairs: one for a copied bitmap, or one per copied
        image file. Empty if the clipboard holds nothing usable.
    """
    try:
        content = ImageGrab.grabclipboard()
    except (NotImplementedError, OSError) as e:
        logger.warning(f"Clipboard is not available: {e}")
        return []

    if isinstance(content, Image.Image):
        return [("<clipboard>", content)]

    images: list[tuple[str, Image.Image]] = []
    if isinstance(content, list):
        for filename in content:
            if not is_image_file(filename):
                continue
            try:
                images.append((Path(filename).name, load_image(filename)))
            except (FileNotFoundError, UnsupportedImageError) as e:
                logger.warning(f"Skipping clipboard file {filename}: {e}")
    return images
