"""Immutable in-memory cache of servable pages loaded from the web root."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from utils import resolve_page_file

logger = logging.getLogger(__name__)

DEFAULT_PAGE_NAME = "index.html"
DEFAULT_PAGE_PATH = "index.html"


class FilesystemError(OSError):
    """Raised when the web root or a page file cannot be created or read."""


@dataclass(frozen=True, slots=True)
class PageDescriptor:
    name: str
    path: str


@dataclass(frozen=True, slots=True)
class Page:
    name: str
    path: str
    contents: str = ""


class PageStore(Sequence[Page]):
    """Ordered, never-empty sequence of pages.

    The first page doubles as the fallback page for unmatched routes, so the
    store refuses to exist without one.
    """

    def __init__(
        self,
        pages: Iterable[Page],
        *,
        web_root: str | Path = ".",
        descriptors: Iterable[PageDescriptor] = (),
    ) -> None:
        self._pages = tuple(pages)
        if not self._pages:
            raise ValueError("page store requires at least one page")
        self._web_root = Path(web_root)
        self._descriptors = tuple(descriptors)

    @classmethod
    def load(
        cls,
        web_root: str | Path,
        descriptors: Iterable[PageDescriptor],
    ) -> "PageStore":
        """Build a store from descriptors, creating missing files as empty pages."""
        root = Path(web_root)
        descriptors = tuple(descriptors)
        _ensure_directory(root)

        effective = descriptors
        if not effective:
            logger.info("No pages configured, creating %s", DEFAULT_PAGE_NAME)
            effective = (PageDescriptor(name=DEFAULT_PAGE_NAME, path=DEFAULT_PAGE_PATH),)

        pages = [_load_page(root, descriptor) for descriptor in effective]
        return cls(pages, web_root=root, descriptors=descriptors)

    def reload(self) -> "PageStore":
        """Re-read every page from disk and return a fresh store."""
        return type(self).load(self._web_root, self._descriptors)

    @property
    def web_root(self) -> Path:
        return self._web_root

    @property
    def default_page(self) -> Page:
        return self._pages[0]

    def __getitem__(self, index):
        return self._pages[index]

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)


def _ensure_directory(directory: Path) -> None:
    if directory.is_dir():
        return
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Failed to create directory: {directory}") from exc
    logger.info("Created directory: %s", directory)


def _load_page(web_root: Path, descriptor: PageDescriptor) -> Page:
    file_path = resolve_page_file(descriptor.path, web_root)
    if file_path is None:
        raise FilesystemError(f"Page path escapes the web root: {descriptor.path}")

    if not file_path.exists():
        _ensure_directory(file_path.parent)
        try:
            file_path.write_text("", encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Failed to create file: {file_path}") from exc
        logger.info("Created file: %s", file_path)
        return Page(name=descriptor.name, path=descriptor.path)

    try:
        contents = file_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FilesystemError(f"Failed to read page contents: {file_path}") from exc
    return Page(name=descriptor.name, path=descriptor.path, contents=contents)
