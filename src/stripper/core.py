"""
Removes junk query parameters (utm_source and friends) from URLs.

Only the query string is ever rewritten: scheme, host, port, path and fragment are carried over verbatim,
so stripping a URL twice gives the same result as stripping it once.
Anything that doesn't look like a fully qualified URL (or can't be parsed) is passed through untouched.
"""
from __future__ import annotations

import re
from typing import Any, Callable, NamedTuple, Optional, Sequence, TYPE_CHECKING
from urllib.parse import urlsplit

from more_itertools import unique_everseen

from .common import Host, ParamName, Url, logger
from .rules import RuleSet, RuleSetIsh, as_rules, normalise_host

if TYPE_CHECKING:
    from .document import Link, LinkDocument


LocationT = Callable[[], Url]
RedirectT = Callable[[Url], None]


class ParsedUrl(NamedTuple):
    '''
    The bits of a URL stripping needs.

    path comes from urlsplit and is informational; rebuilding goes through head,
    the raw text in front of the query, so nothing outside the query is ever re-encoded.
    '''
    scheme: str
    # normalised, only used for rule lookup. IPv6 literals keep brackets when there is a port
    host: Host
    path: str
    # everything up to the query, as it was in the input
    head: str
    query: str
    fragment: str

    def unsplit(self, query: str) -> Url:
        res = self.head
        if query:
            res += '?' + query
        if self.fragment:
            res += '#' + self.fragment
        return res


def parse_url(url: Url) -> Optional[ParsedUrl]:
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        port = parts.port # raises on garbage ports
    except ValueError as e:
        logger.debug('failed to parse %r: %s', url, e)
        return None
    if not hostname:
        logger.debug('no hostname in %r', url)
        return None

    host = normalise_host(hostname)
    if port is not None:
        if ':' in host:
            host = f'[{host}]'
        host += f':{port}'

    # split by hand rather than urlunsplit, so whatever isn't the query survives byte for byte
    base, _, fragment = url.partition('#')
    head, _, query = base.partition('?')
    return ParsedUrl(
        scheme=parts.scheme,
        host=host,
        path=parts.path,
        head=head,
        query=query,
        fragment=fragment,
    )


def build_matcher(names: Sequence[ParamName]) -> re.Pattern[str]:
    '''
    Matches any of the names (plus the separators in front of it) and everything after it up to the next '&'.
    Names are prefixes: 'feature' also takes 'features=x' along.
    '''
    alts = '|'.join(re.escape(n) for n in unique_everseen(names))
    return re.compile(rf'(?:^|[&?]+)(?:{alts})=?[^&]*', re.IGNORECASE)


def filter_query(query: str, names: Optional[Sequence[ParamName]]) -> str:
    if names is None:
        # nothing applies, only drop the dangling separators
        return query.rstrip('&?')
    res = build_matcher(names).sub('', query)
    return res.strip('&?')


def strip_url(url: Url, rules: Optional[RuleSetIsh] = None) -> Url:
    if '://' not in url:
        return url
    parsed = parse_url(url)
    if parsed is None:
        return url
    names = as_rules(rules).resolve(parsed.host)
    return parsed.unsplit(filter_query(parsed.query, names))


class Stripper:
    def __init__(
            self,
            rules: Optional[RuleSetIsh] = None,
            *,
            location: Optional[LocationT] = None,
            redirect: Optional[RedirectT] = None,
    ) -> None:
        self._rules = as_rules(rules)
        self.location = location
        self.redirect = redirect

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def set_rules(self, rules: Optional[RuleSetIsh]) -> 'Stripper':
        # whole reference is swapped, resolution never sees a half updated table
        self._rules = as_rules(rules)
        return self

    def _current_location(self) -> Url:
        if self.location is None:
            raise RuntimeError("No location accessor configured, pass 'location=' or an explicit url")
        return self.location()

    def strip_url(self, url: Optional[Url] = None) -> Url:
        if url is None:
            url = self._current_location()
        return strip_url(url, self._rules)

    def strip_location(self) -> Url:
        '''
        Redirects only if something was actually stripped.
        '''
        current = self._current_location()
        stripped = self.strip_url(current)
        if stripped != current:
            if self.redirect is None:
                raise RuntimeError("No redirect sink configured, pass 'redirect='")
            logger.info('redirecting %s -> %s', current, stripped)
            self.redirect(stripped)
        return stripped

    def strip_links(self, document: 'LinkDocument') -> None:
        '''
        Rewrites all links that are already in the document, and all that will be inserted later on.
        '''
        def strip_link(link: 'Link') -> bool:
            href = link.get('href')
            if not isinstance(href, str):
                # e.g. multi-valued attribute, not something we can handle
                return False
            stripped = self.strip_url(href)
            if stripped == href:
                return False
            link['href'] = stripped
            return True

        def strip_all(root: Any = None) -> None:
            changed = sum(strip_link(link) for link in document.links(root))
            if changed > 0:
                logger.debug('stripped %d links', changed)

        def on_insert(node: Any) -> None:
            if hasattr(node, 'get'):
                strip_link(node)
            strip_all(node)

        strip_all()
        document.on_insert(on_insert)


SELF_TEST_CASES: Sequence[tuple[str, Url, Url]] = [
    (
        'Strip from complicated url',
        'https://encrypted.google.com/search?q=test&utm_source=blah&foo#bar',
        'https://encrypted.google.com/search?q=test&foo#bar',
    ),
    (
        'Strip not tricked by fragment',
        'http://www.google.com/search?utm_campaign=testing&foo=bar#utm_term=baz',
        'http://www.google.com/search?foo=bar#utm_term=baz',
    ),
    (
        'Strip from a non-global rule',
        'http://youtube.com/?v=12345&feature=youtube-gdata',
        'http://youtube.com/?v=12345',
    ),
    (
        'Strip from a non-global rule found by partial match (subdomain)',
        'http://videos.youtube.com/?v=12345&feature=youtube-gdata',
        'http://videos.youtube.com/?v=12345',
    ),
    (
        'Strip keeps the port',
        'http://videos.youtube.com:4040/?v=12345&feature=youtube-gdata',
        'http://videos.youtube.com:4040/?v=12345',
    ),
    (
        'Strip leaves urls without query alone',
        'http://example.com/path',
        'http://example.com/path',
    ),
]


def self_test(stripper: Optional[Stripper] = None) -> list[tuple[str, bool]]:
    # the expectations are for the built-in rules
    if stripper is None:
        stripper = Stripper()
    results = []
    for description, original, expected in SELF_TEST_CASES:
        actual = stripper.strip_url(original)
        ok = actual == expected
        if ok:
            logger.info('[%s]: passed.', description)
        else:
            logger.warning('[%s]: failed. expected %s, got %s', description, expected, actual)
        results.append((description, ok))
    return results
