'''
Documents with links in them, so junk can be stripped from every href
'''

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

from bs4 import BeautifulSoup, Tag

from .common import PathIsh


class Link(Protocol):
    # bs4.Tag and plain dicts both fit
    def get(self, key: str, default: Any = None) -> Any: ...
    def __setitem__(self, key: str, value: Any) -> None: ...


InsertCallback = Callable[[Any], None]


class LinkDocument(Protocol):
    def links(self, root: Any = None) -> Iterable[Link]: ...
    def on_insert(self, callback: InsertCallback) -> None: ...


class HtmlDocument:
    def __init__(self, html: str, *, parser: str = 'lxml') -> None:
        self.parser = parser
        self.soup = BeautifulSoup(html, parser)
        self._listeners: list[InsertCallback] = []

    @classmethod
    def from_file(cls, path: PathIsh, **kwargs) -> 'HtmlDocument':
        return cls(Path(path).read_text(errors='replace'), **kwargs)

    def links(self, root: Optional[Tag] = None) -> Iterator[Tag]:
        root = self.soup if root is None else root
        for t in root.find_all(href=True):
            assert isinstance(t, Tag), t  # make mypy happy
            yield t

    def on_insert(self, callback: InsertCallback) -> None:
        self._listeners.append(callback)

    def insert(self, html: str, parent: Optional[Tag] = None) -> list[Tag]:
        if parent is None:
            parent = self.soup.body or self.soup
        fragment = BeautifulSoup(html, self.parser)
        # lxml wraps fragments in html/body
        container = fragment.body or fragment
        inserted = [c for c in container.contents if isinstance(c, Tag)]
        for t in inserted:
            parent.append(t.extract())
            for cb in self._listeners:
                cb(t)
        return inserted

    def render(self) -> str:
        return str(self.soup)

    def __str__(self) -> str:
        return self.render()
