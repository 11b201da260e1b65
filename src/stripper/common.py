import os
from pathlib import Path
from typing import Union

from .logging import LazyLogger


PathIsh = Union[str, Path]

Url = str
Host = str
ParamName = str


logger = LazyLogger('stripper', level='INFO')


def appdirs():
    under_test = os.environ.get('PYTEST_CURRENT_TEST') is not None
    name = 'stripper-test' if under_test else 'stripper'
    import appdirs as ad # type: ignore[import]
    return ad.AppDirs(appname=name)


def user_config_file() -> Path:
    if "STRIPPER_CONFIG" in os.environ:
        return Path(os.environ["STRIPPER_CONFIG"])
    else:
        return Path(appdirs().user_config_dir) / 'config.py'


def default_config_path() -> Path:
    cfg = Path('config.py')
    if cfg.exists():
        return cfg.absolute()
    else:
        return user_config_file()
