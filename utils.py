"""Utility helpers shared across server modules."""

import mimetypes
from pathlib import Path


def get_content_type(file_path: str | Path) -> str:
    content_type, _encoding = mimetypes.guess_type(Path(file_path).name)
    return content_type or "application/octet-stream"


def resolve_page_file(relative_path: str, web_root: str | Path) -> Path | None:
    """Resolve a page file under the web root or return None for traversal attempts."""
    root = Path(web_root).resolve()
    candidate = (root / relative_path).resolve()

    try:
        candidate.relative_to(root)
    except ValueError:
        return None

    return candidate
