from __future__ import annotations

from functools import lru_cache
from typing import Iterator, Optional

from .common import Url
from .core import Stripper


@lru_cache(None)
def _get_urlextractor():
    from urlextract import URLExtract # type: ignore
    return URLExtract()


def _iter_spans(text: str) -> Iterator[tuple[Url, int, int]]:
    for u, (start, end) in _get_urlextractor().gen_urls(text, get_indices=True):
        yield u, start, end


def iter_urls(text: str) -> Iterator[Url]:
    for u, _, _ in _iter_spans(text):
        yield u


def strip_text(text: str, stripper: Optional[Stripper] = None) -> str:
    '''
    Strips every URL found in the text, the rest of the text is kept as is.
    '''
    if stripper is None:
        stripper = Stripper()
    chunks = []
    pos = 0
    for u, start, end in _iter_spans(text):
        chunks.append(text[pos:start])
        chunks.append(stripper.strip_url(u))
        pos = end
    chunks.append(text[pos:])
    return ''.join(chunks)
