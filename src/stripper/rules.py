"""
Host-sensitive rule tables: which query parameters count as junk for which host.

A table maps either the :data:`GLOBAL` sentinel or a host pattern to an ordered list of parameter names, e.g.

    >>> rules = RuleSet.make({GLOBAL: ['utm_source'], 'youtube.com': ['feature']})
    >>> rules.resolve('www.videos.youtube.com')
    ('utm_source', 'feature')
    >>> rules.resolve('example.com')
    ('utm_source',)

Host patterns match the host itself and any of its subdomains, but only on a dot boundary:
'oo.com' never matches 'foo.com'.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple, Optional, Union

from .common import Host, ParamName, PathIsh


# never a valid hostname
GLOBAL = '*'

Names = tuple[ParamName, ...]
Table = Mapping[str, Iterable[ParamName]]


_WWW = re.compile(r'^www\d*\.')

def normalise_host(host: Host) -> Host:
    """
    Lowercases and strips the leading 'www.' (or 'www2.' etc)

    >>> normalise_host('WWW3.Example.com:8080')
    'example.com:8080'
    """
    return _WWW.sub('', host.strip().lower())


def _cut_port(host: Host) -> Optional[Host]:
    bare, sep, port = host.rpartition(':')
    if not sep or not port.isdigit():
        return None
    if bare.startswith('['):
        # '[::1]:8080'
        if not bare.endswith(']'):
            return None
        return bare[1:-1]
    if ':' in bare:
        # bare IPv6 literal, the last group isn't a port
        return None
    return bare


def host_matches(host: Host, key: Host) -> bool:
    """
    Both arguments are expected to be normalised already.

    >>> host_matches('videos.youtube.com:4040', 'youtube.com')
    True
    >>> host_matches('foo.com', 'oo.com')
    False
    """
    candidates = [host]
    bare = _cut_port(host)
    if bare is not None:
        candidates.append(bare)
    for h in candidates:
        if h == key or h.endswith('.' + key):
            return True
    return False


def _normalise_key(key: str) -> Host:
    lkey = key.strip().lower()
    nkey = normalise_host(lkey)
    if nkey != lkey:
        # 'www.com' would turn into 'com' and match every .com host
        bare = _cut_port(nkey) or nkey
        if '.' not in bare:
            raise ValueError(f"'{key}': host pattern is a single label once 'www' prefix is removed")
    return nkey


def _names(key: str, names: Iterable[ParamName]) -> Names:
    if isinstance(names, str):
        raise ValueError(f"'{key}': expected a list of parameter names, got a string {names!r}")
    res = tuple(names)
    for n in res:
        if not isinstance(n, str):
            raise ValueError(f"'{key}': parameter names should be strings, got {n!r}")
        if len(n) == 0:
            raise ValueError(f"'{key}': empty parameter name")
    return res


class RuleSet(NamedTuple):
    global_rules: Names = ()
    # read only, insertion ordered
    host_rules: Mapping[Host, Names] = MappingProxyType({})

    @classmethod
    def make(cls, table: Table) -> 'RuleSet':
        global_rules: Names = ()
        host_rules: dict[Host, Names] = {}
        for key, names in table.items():
            if not isinstance(key, str) or len(key.strip()) == 0:
                raise ValueError(f'bad host pattern: {key!r}')
            nnames = _names(key, names)
            if key == GLOBAL:
                global_rules += nnames
                continue
            nkey = _normalise_key(key)
            # 'www.foo.com' and 'foo.com' collapse into the same key
            host_rules[nkey] = host_rules.get(nkey, ()) + nnames
        return cls(global_rules=global_rules, host_rules=MappingProxyType(host_rules))

    def resolve(self, host: Host) -> Optional[Names]:
        '''
        Global names first, then the names of every matching host pattern, in table order.
        None means that nothing applies to this host at all.
        '''
        nhost = normalise_host(host)
        res = list(self.global_rules)
        for key, names in self.host_rules.items():
            if host_matches(nhost, key):
                res.extend(names)
        if len(res) == 0:
            return None
        return tuple(res)

    def to_table(self) -> dict[str, list[ParamName]]:
        res: dict[str, list[ParamName]] = {}
        if len(self.global_rules) > 0:
            res[GLOBAL] = list(self.global_rules)
        for key, names in self.host_rules.items():
            res[key] = list(names)
        return res

    def merge(self, other: 'RuleSet | Table') -> 'RuleSet':
        '''
        Returns a new RuleSet with the lists of 'other' appended per key.
        '''
        if not isinstance(other, RuleSet):
            other = RuleSet.make(other)
        table: dict[str, list[ParamName]] = self.to_table()
        for key, names in other.to_table().items():
            table.setdefault(key, []).extend(names)
        return RuleSet.make(table)


RuleSetIsh = Union[RuleSet, Table]


def as_rules(rules: Optional[RuleSetIsh]) -> RuleSet:
    if rules is None:
        return default_rules()
    if isinstance(rules, RuleSet):
        return rules
    return RuleSet.make(rules)


@lru_cache(1)
def default_rules() -> RuleSet:
    return RuleSet.make({
        GLOBAL: [
            'utm_source',
            'utm_medium',
            'utm_term',
            'utm_content',
            'utm_campaign',
            'yclid',
            'fb_action_ids',
            'fb_action_types',
            'fb_ref',
            'fb_source',
            'action_object_map',
            'action_type_map',
            'action_ref_map',
        ],
        'youtube.com': [
            'feature',
        ],
        'facebook.com': [
            'ref',
            'fref',
            'hc_location',
        ],
        'imdb.com': [
            'ref_',
        ],
        'chrome.google.com': [
            'hl',
        ],
        'addons.opera.com': [
            'display',
        ],
        'addons.mozilla.org': [
            'src',
        ],
    })


def load(path: PathIsh) -> RuleSet:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f'{path}: expected a JSON object with host patterns as keys')
    return RuleSet.make(data)


def save(rules: RuleSet, path: PathIsh) -> None:
    Path(path).write_text(json.dumps(rules.to_table(), indent=2) + '\n')
