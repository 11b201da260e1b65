from __future__ import annotations

import argparse
import inspect
import json
import os
from pathlib import Path
import shlex
from subprocess import run
import sys
from tempfile import gettempdir
from typing import Iterable, Iterator

from . import config
from . import rules as rules_
from .common import PathIsh, logger, user_config_file, default_config_path
from .core import Stripper, self_test
from .document import HtmlDocument
from .rules import RuleSet
from .text import strip_text


def get_rules(args: argparse.Namespace) -> RuleSet:
    rules_file: Path | None = args.rules
    if rules_file is not None:
        logger.debug('using rules from %s', rules_file)
        return rules_.load(rules_file)

    cfg: Path | None = args.config
    if cfg is not None and cfg.exists():
        logger.debug('using config %s', cfg)
        config.load_from(cfg)
        try:
            return config.get().rules
        finally:
            # mainly for tests, so we don't end up reusing the same config by accident
            config.reset()
    return rules_.default_rules()


def _input_lines(inputs: list[str]) -> Iterator[str]:
    if len(inputs) > 0:
        yield from inputs
    else:
        for line in sys.stdin:
            yield line.rstrip('\n')


def cli_url(args: argparse.Namespace) -> None:
    stripper = Stripper(get_rules(args))
    for url in _input_lines(args.urls):
        print(stripper.strip_url(url))


def cli_html(args: argparse.Namespace) -> None:
    stripper = Stripper(get_rules(args))
    doc = HtmlDocument.from_file(args.file)
    stripper.strip_links(doc)
    out: Path | None = args.output
    if out is None:
        sys.stdout.write(doc.render())
    else:
        out.write_text(doc.render())
        logger.info('written to %s', out)


def cli_text(args: argparse.Namespace) -> None:
    stripper = Stripper(get_rules(args))
    fname: Path | None = args.file
    text = sys.stdin.read() if fname is None else fname.read_text(errors='replace')
    sys.stdout.write(strip_text(text, stripper))


def cli_selftest(args: argparse.Namespace) -> None:
    stripper = Stripper(get_rules(args))
    results = self_test(stripper)
    failed = [d for d, ok in results if not ok]
    if len(failed) > 0:
        logger.error('%d/%d self tests failed', len(failed), len(results))
        sys.exit(1)
    logger.info('all %d self tests passed', len(results))


def cli_rules(args: argparse.Namespace) -> None:
    rules = get_rules(args)
    host: str | None = args.host
    if host is None:
        print(json.dumps(rules.to_table(), indent=2))
    else:
        print(json.dumps(rules.resolve(host)))


def read_example_config() -> str:
    from .misc import config_example
    return inspect.getsource(config_example)


def config_create(args: argparse.Namespace) -> None:
    cfg: Path = args.config
    if cfg.exists():
        logger.error('Config %s already exists. Aborting', cfg)
        sys.exit(1)
    else:
        stub = read_example_config()
        cfg.parent.mkdir(parents=True, exist_ok=True)
        cfg.write_text(stub)
        logger.info("Created a stub config in '%s'. Edit it to tune to your liking.", cfg)


def config_check(args: argparse.Namespace) -> None:
    cfg: Path = args.config
    errors = list(_config_check(cfg))
    if len(errors) == 0:
        logger.info('OK')
    else:
        logger.error('CHECK FAILED')
        sys.exit(1)


def _config_check(cfg: Path) -> Iterable[Exception]:
    logger.info('config: %s', cfg)

    def check(cmd: list[str | Path], **kwargs) -> Iterable[Exception]:
        logger.debug(shlex.join(map(str, cmd)))
        res = run(cmd, **kwargs)  # noqa: PLW1510
        if res.returncode > 0:
            yield RuntimeError(f'failed: {cmd}')

    logger.info('Checking syntax...')
    cmd: list[str | Path] = [sys.executable, '-m', 'compileall', cfg]
    yield from check(
        cmd,
        env={
            **os.environ,
            # if config is on read only partition, the command would fail due to generated bytecode
            # so put it in the temporary directory instead
            'PYTHONPYCACHEPREFIX': gettempdir()
        },
    )

    logger.info('Checking type safety...')
    try:
        import mypy  # noqa: F401
    except ImportError:
        logger.warning("mypy not found, can't use it to check config!")
    else:
        yield from check([
            sys.executable, '-m', 'mypy',
            '--pretty',
            '--show-error-codes',
            '--check-untyped-defs',
            cfg,
        ])

    logger.info('Checking rules...')
    try:
        config.import_config(cfg)
    except Exception as e:
        logger.exception(e)
        yield e


def main() -> None:
    def add_rules_args(parser: argparse.ArgumentParser, default_config: PathIsh | None = None) -> None:
        parser.add_argument('--config', type=Path, default=default_config, help='Config path (RULES/EXTRA_RULES are taken from it)')
        parser.add_argument('--rules', type=Path, default=None, help='JSON rules file, takes precedence over the config')

    F = lambda prog: argparse.ArgumentDefaultsHelpFormatter(prog, width=120)
    p = argparse.ArgumentParser(prog='stripper', formatter_class=F)
    subp = p.add_subparsers(dest='mode')

    up = subp.add_parser('url', help='Strip junk from URLs', formatter_class=F)
    add_rules_args(up, default_config_path())
    up.add_argument('urls', nargs='*', help='URLs to strip (read from stdin, one per line, if none given)')
    up.set_defaults(func=cli_url)

    hp = subp.add_parser('html', help='Strip junk from all links in an HTML file', formatter_class=F)
    add_rules_args(hp, default_config_path())
    hp.add_argument('file', type=Path)
    hp.add_argument('-o', '--output', type=Path, default=None, help='Where to write the result (stdout if not given)')
    hp.set_defaults(func=cli_html)

    tp = subp.add_parser('text', help='Strip junk from all URLs in a plaintext file', formatter_class=F)
    add_rules_args(tp, default_config_path())
    tp.add_argument('file', type=Path, nargs='?', default=None, help='read from stdin if not given')
    tp.set_defaults(func=cli_text)

    sp = subp.add_parser('selftest', help='Check that stripping works as expected', formatter_class=F)
    add_rules_args(sp)
    sp.set_defaults(func=cli_selftest)

    rp = subp.add_parser('rules', help='Show the active rules', formatter_class=F)
    add_rules_args(rp, default_config_path())
    rp.add_argument('--host', type=str, default=None, help='Only show the parameters that would be stripped for this host')
    rp.set_defaults(func=cli_rules)

    cp = subp.add_parser('config', help='Config management')
    cp.set_defaults(func=lambda *_args: cp.print_help())
    scp = cp.add_subparsers()
    ccp = scp.add_parser('check', help='Check config')
    ccp.set_defaults(func=config_check)
    ccp.add_argument('--config', type=Path, default=default_config_path(), help='Config path')

    icp = scp.add_parser('create', help='Create user config')
    icp.add_argument('--config', type=Path, default=user_config_file(), help='Config path')
    icp.set_defaults(func=config_create)

    args = p.parse_args()

    mode: str | None = args.mode
    if mode is None:
        print('ERROR: Please specify a mode', file=sys.stderr)
        p.print_help(sys.stderr)
        sys.exit(1)

    logger.debug('CLI args: %s', args)

    try:
        args.func(args)
    except Exception as e:
        logger.exception(e)
        sys.exit(1)


if __name__ == '__main__':
    main()
