"""Unit tests for loading pages into the in-memory store."""

from pathlib import Path

import pytest

from page_store import FilesystemError, Page, PageDescriptor, PageStore


def test_empty_descriptor_list_creates_default_index(tmp_path: Path) -> None:
    web_root = tmp_path / "web"

    store = PageStore.load(web_root, [])

    assert len(store) == 1
    assert store[0] == Page(name="index.html", path="index.html", contents="")
    assert (web_root / "index.html").is_file()
    assert (web_root / "index.html").read_bytes() == b""


def test_existing_file_contents_are_loaded_verbatim(tmp_path: Path) -> None:
    (tmp_path / "hello.html").write_bytes(b"Hello")
    (tmp_path / "crlf.txt").write_bytes(b"line one\r\nline two\r\n")

    store = PageStore.load(
        tmp_path,
        [PageDescriptor("/", "hello.html"), PageDescriptor("/crlf", "crlf.txt")],
    )

    assert store[0].contents == "Hello"
    assert store[1].contents == "line one\r\nline two\r\n"


def test_missing_file_is_created_with_parent_directories(tmp_path: Path) -> None:
    store = PageStore.load(tmp_path / "web", [PageDescriptor("/docs", "docs/guide/index.html")])

    assert store[0] == Page(name="/docs", path="docs/guide/index.html", contents="")
    assert (tmp_path / "web" / "docs" / "guide" / "index.html").is_file()


def test_pages_keep_descriptor_order(tmp_path: Path) -> None:
    descriptors = [PageDescriptor(f"/p{index}", f"p{index}.html") for index in range(4)]

    store = PageStore.load(tmp_path, descriptors)

    assert [page.name for page in store] == ["/p0", "/p1", "/p2", "/p3"]
    assert store.default_page is store[0]


def test_web_root_that_is_a_file_is_fatal(tmp_path: Path) -> None:
    web_root = tmp_path / "web"
    web_root.write_text("not a directory", encoding="utf-8")

    with pytest.raises(FilesystemError, match="Failed to create directory"):
        PageStore.load(web_root, [PageDescriptor("/", "index.html")])


def test_undecodable_file_is_fatal(tmp_path: Path) -> None:
    (tmp_path / "binary.bin").write_bytes(b"\xff\xfe\x00")

    with pytest.raises(FilesystemError, match="Failed to read page contents"):
        PageStore.load(tmp_path, [PageDescriptor("/", "binary.bin")])


def test_path_outside_web_root_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError, match="escapes the web root"):
        PageStore.load(tmp_path / "web", [PageDescriptor("/", "../secret.txt")])

    assert not (tmp_path / "secret.txt").exists()


def test_store_cannot_be_empty() -> None:
    with pytest.raises(ValueError, match="at least one page"):
        PageStore([])


def test_reload_reads_edited_files(tmp_path: Path) -> None:
    page_file = tmp_path / "index.html"
    page_file.write_text("v1", encoding="utf-8")
    store = PageStore.load(tmp_path, [PageDescriptor("/", "index.html")])

    page_file.write_text("v2", encoding="utf-8")

    assert store[0].contents == "v1"
    reloaded = store.reload()
    assert reloaded is not store
    assert reloaded[0].contents == "v2"


def test_reload_of_default_store_keeps_single_default_page(tmp_path: Path) -> None:
    store = PageStore.load(tmp_path, [])

    reloaded = store.reload()

    assert [page.name for page in reloaded] == ["index.html"]
