from __future__ import annotations
import random
import re
import time
from pathlib import Path
from typing import BinaryIO

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
_IMAGE_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")
_CHUNK = 1024 * 1024


class UploadRejected(ValueError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def is_image_name(name: str) -> bool:
    return Path(name).suffix.lower() in IMAGE_EXTENSIONS


def list_images(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_file() and is_image_name(p.name))


def count_images(directory: Path) -> int:
    return len(list_images(directory))


def check_image(filename: str | None, content_type: str | None):
    # both the extension and the declared MIME type must look like an image
    ext = Path(filename or "").suffix.lower()
    if not (_IMAGE_TYPES.search(content_type or "") and _IMAGE_TYPES.search(ext)):
        raise UploadRejected("Only image files are allowed!")


def unique_filename(original: str) -> str:
    ext = Path(original).suffix.lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def store_file(src: BinaryIO, original: str, directory: Path, max_bytes: int) -> str:
    """Copy ``src`` into ``directory`` under a fresh name and return that name.

    The partial file is removed when the stream exceeds ``max_bytes``.
    """
    directory.mkdir(parents=True, exist_ok=True)
    name = unique_filename(original)
    target = directory / name
    written = 0
    with target.open("wb") as out:
        while True:
            chunk = src.read(_CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                out.close()
                target.unlink(missing_ok=True)
                raise UploadRejected(f"File too large: {original}", status_code=413)
            out.write(chunk)
    return name


def delete_image(directory: Path, filename: str):
    # plain names only, no traversal out of the uploads folder
    if Path(filename).name != filename or filename in ("", ".", ".."):
        raise UploadRejected("Invalid filename")
    if not is_image_name(filename):
        raise UploadRejected("Only image files can be deleted")
    target = directory / filename
    if not target.is_file():
        raise UploadRejected(f"Image '{filename}' not found", status_code=404)
    target.unlink()
