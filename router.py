"""Routing table mapping request paths to cached pages."""

from __future__ import annotations

from enum import Enum

from page_store import Page, PageStore


class NoMatchPolicy(str, Enum):
    FALLBACK = "fallback"
    NOT_FOUND = "not_found"


class Router:
    def __init__(self, store: PageStore, no_match: NoMatchPolicy = NoMatchPolicy.FALLBACK) -> None:
        self._store = store
        self._no_match = NoMatchPolicy(no_match)
        self._routes: dict[str, Page] = {}
        for page in store:
            # first page wins on duplicate names
            self._routes.setdefault(page.name, page)

    @property
    def store(self) -> PageStore:
        return self._store

    @property
    def no_match(self) -> NoMatchPolicy:
        return self._no_match

    def resolve(self, path: str) -> Page | None:
        page = self._routes.get(path)
        if page is not None:
            return page
        if self._no_match is NoMatchPolicy.FALLBACK:
            return self._store.default_page
        return None
