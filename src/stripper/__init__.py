from .core import Stripper, strip_url, self_test
from .rules import GLOBAL, RuleSet, default_rules

__all__ = [
    'GLOBAL',
    'RuleSet',
    'Stripper',
    'default_rules',
    'self_test',
    'strip_url',
]
