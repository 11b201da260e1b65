from pathlib import Path
import importlib.util
from typing import Mapping, NamedTuple, Optional

from .common import PathIsh
from .rules import RuleSet, RuleSetIsh, as_rules


class Config(NamedTuple):
    # if not specified, uses the built-in rules
    RULES: Optional[RuleSetIsh] = None

    # appended on top of RULES
    EXTRA_RULES: Optional[RuleSetIsh] = None

    @property
    def rules(self) -> RuleSet:
        rules = as_rules(self.RULES)
        extra = self.EXTRA_RULES
        if extra is not None:
            rules = rules.merge(extra)
        return rules


instance: Optional[Config] = None


def has() -> bool:
    return instance is not None

def get() -> Config:
    assert instance is not None, "Expected config to be set, but it's not"
    return instance


def load_from(config_file: PathIsh) -> None:
    global instance
    instance = import_config(config_file)


def reset() -> None:
    global instance
    assert instance is not None
    instance = None


def import_config(config_file: PathIsh) -> Config:
    p = Path(config_file)

    name = p.stem
    spec = importlib.util.spec_from_file_location(name, p); assert spec is not None
    mod = importlib.util.module_from_spec(spec); assert mod is not None
    loader = spec.loader; assert loader is not None
    loader.exec_module(mod)

    d = {}
    for f in Config._fields:
        if hasattr(mod, f):
            d[f] = getattr(mod, f)
    cfg = Config(**d)
    for f in Config._fields:
        v = getattr(cfg, f)
        if v is not None and not isinstance(v, (RuleSet, Mapping)):
            raise ValueError(f'{p}: {f} should be a mapping of host patterns to parameter names, got {type(v)}')
    # validate early, so errors show up at load time
    cfg.rules  # noqa: B018
    return cfg
