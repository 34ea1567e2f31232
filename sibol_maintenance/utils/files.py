from __future__ import annotations

import mimetypes
import re
from pathlib import Path
from urllib.parse import unquote, urlparse

_IMAGE_EXT = re.compile(r"\.(png|jpe?g|gif|webp)$", re.IGNORECASE)


def is_likely_image(file_name_or_url: str | None, file_type: str | None = None) -> bool:
    if (file_type or "").lower().startswith("image/"):
        return True
    value = (file_name_or_url or "").lower()
    # Cloudinary delivery URLs often carry no extension
    if "/image/upload/" in value:
        return True
    return bool(_IMAGE_EXT.search(value.split("?")[0]))


def guess_file_name(url: str | None, fallback: str = "attachment") -> str:
    if not url:
        return fallback
    clean = url.split("?")[0]
    last = clean[clean.rfind("/") + 1 :]
    return last or fallback


def local_path_from_uri(uri: str) -> Path:
    """Resolve a staged attachment URI (plain path or file:// URI) to a filesystem path."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri).expanduser()


def guess_mime_type(name: str, default: str = "application/octet-stream") -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or default
