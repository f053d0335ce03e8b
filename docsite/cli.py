from __future__ import annotations

import argparse
import sys
import time
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Optional

import watchfiles
from watchfiles import Change

from .config import ConfigError, SiteConfig, load_config, parse_config
from .content import CSS_GLOB, IMAGES_GLOB
from .pages import create_graph
from .tasks import Runner
from .utils import parse_bool, parse_int

DEFAULT_TARGET = "build"


def load_site(args: argparse.Namespace) -> SiteConfig:
    config_path = Path(args.config)
    data = dict(load_config(config_path))
    data["out"] = args.out
    data["environment"] = args.env
    data["standalone"] = args.standalone
    data["workers"] = args.workers
    return parse_config(data, config_path.resolve().parent)


def watch_patterns(config: SiteConfig) -> list[str]:
    root = config.root.resolve()
    return [
        (root / "**" / "*.md").as_posix(),
        config.template_path.resolve().as_posix(),
        (root / config.partials).as_posix(),
        (root / "**" / CSS_GLOB).as_posix(),
        (root / "**" / IMAGES_GLOB).as_posix(),
    ]


def matches(path: str, pattern: str) -> bool:
    # fnmatch's "*" already crosses "/", so "/**/" only has to cover zero directories
    return fnmatch(path, pattern) or fnmatch(path, pattern.replace("/**/", "/"))


def watch_filter(config: SiteConfig, config_path: Path) -> Callable[[Change, str], bool]:
    out = config.out.resolve()
    config_file = config_path.resolve()
    patterns = watch_patterns(config)

    def accept(change: Change, path: str) -> bool:
        candidate = Path(path).resolve()
        if candidate == config_file:
            return True
        if candidate == out or out in candidate.parents:
            return False
        return any(matches(candidate.as_posix(), pattern) for pattern in patterns)

    return accept


def run_targets(config: SiteConfig, targets: list[str], verbose: bool = True) -> None:
    graph = create_graph(config)
    runner = Runner(workers=config.worker_count, verbose=verbose)
    for name in targets:
        runner.run(graph[name])


def watch_site(args: argparse.Namespace, build: Optional[Callable[[], None]] = None) -> None:
    """Rebuild whenever a watched source changes. Stops on Ctrl-C."""
    config_path = Path(args.config)

    def rebuild() -> None:
        run_targets(load_site(args), [DEFAULT_TARGET], verbose=not args.quiet)

    build = build or rebuild
    config = load_site(args)
    paths = [config.root]
    if config_path.exists():
        paths.append(config_path)
    print(f"Watching {config.root} for changes.")
    for changes in watchfiles.watch(
        *paths,
        watch_filter=watch_filter(config, config_path),
        debounce=args.debounce,
        raise_interrupt=False,
    ):
        names = sorted({Path(path).name for _, path in changes})
        print(f"Changed: {', '.join(names)}; rebuilding.")
        start = time.perf_counter()
        try:
            build()
        except Exception as exc:
            print(f"Build failed: {exc}", file=sys.stderr)
            continue
        print(f"Build completed in {time.perf_counter() - start:.2f}s.")


def main(argv: Optional[list[str]] = None) -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    try:
        config = load_config(Path(pre_args.config))
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        sys.exit(1)

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    parser = argparse.ArgumentParser(description="Build Markdown articles and Sass stylesheets into HTML pages.")
    parser.add_argument("targets", nargs="*", default=[DEFAULT_TARGET], help="Targets to run, in order (clean, build, install, watch, or a category output path).")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--out", default=cfg_str("out", "dist"), help="Output directory for the site.")
    parser.add_argument(
        "--env",
        default=cfg_str("environment", "development"),
        help="Server environment whose settings are passed to templates.",
    )
    parser.add_argument(
        "--standalone",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("standalone", False),
        help="Also write self-contained pages with assets inlined.",
    )
    parser.add_argument(
        "--workers",
        default=cfg_int("workers", 0),
        type=int,
        help="Number of worker threads per parallel group (0 = auto).",
    )
    parser.add_argument(
        "--debounce",
        default=1600,
        type=int,
        help="Milliseconds to group file changes into one rebuild for the watch target.",
    )
    parser.add_argument("--quiet", action="store_true", help="Only report errors and the final summary.")
    parser.add_argument("--list", action="store_true", help="List the available targets and exit.")
    args = parser.parse_args(argv)

    try:
        site = load_site(args)
        names = create_graph(site).names()
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.list:
        for name in names + ["watch"]:
            print(name)
        return
    if "watch" in args.targets and args.targets != ["watch"]:
        print("The watch target must be run on its own.", file=sys.stderr)
        sys.exit(1)
    unknown = [name for name in args.targets if name not in names and name != "watch"]
    if unknown:
        print(f"Unknown target(s): {', '.join(unknown)}. Known: {', '.join(names)}", file=sys.stderr)
        sys.exit(1)

    start = time.perf_counter()
    try:
        if args.targets == ["watch"]:
            watch_site(args)
            return
        run_targets(site, args.targets, verbose=not args.quiet)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)
    except Exception as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {site.out}")
