from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

import yaml

from .utils import parse_bool, parse_int

MAX_WORKERS = 32


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ArticleConfig:
    name: str
    title: str
    wip: bool = False


@dataclass(frozen=True)
class CategoryConfig:
    name: str
    path: Optional[str] = None
    categories: Optional[tuple[CategoryConfig, ...]] = None
    files: Optional[tuple[ArticleConfig, ...]] = None


@dataclass(frozen=True)
class MarkdownConfig:
    extensions: tuple[str, ...] = ()
    figcaption: bool = True
    permalink: bool = True
    highlight: bool = True


@dataclass(frozen=True)
class SiteConfig:
    root: Path
    out: Path
    site: CategoryConfig
    standalone: bool = False
    environment: str = "development"
    server: dict = field(default_factory=dict)
    include_paths: tuple[Path, ...] = ()
    template: str = "assets/template.html"
    partials: str = "assets/partials/**/*.html"
    workers: int = 0
    markdown: MarkdownConfig = field(default_factory=MarkdownConfig)

    @property
    def template_path(self) -> Path:
        return self.root / self.template

    @property
    def partials_glob(self) -> Path:
        return self.root / self.partials

    @property
    def server_data(self) -> dict:
        data = self.server.get(self.environment)
        return dict(data) if isinstance(data, dict) else {}

    @property
    def worker_count(self) -> int:
        workers = self.workers
        if workers <= 0:
            workers = os.cpu_count() or 1
        return max(1, min(workers, MAX_WORKERS))


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return data


def _require_name(node: dict, where: str) -> str:
    name = node.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"{where} is missing a name")
    name = name.strip()
    if "/" in name or "\\" in name:
        raise ConfigError(f"{where} name must not contain path separators: {name!r}")
    return name


def _check_relative(value: object, where: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{where} path must be a string, got {type(value).__name__}")
    value = value.strip()
    if value in ("", "."):
        return None
    posix = PurePosixPath(value.replace("\\", "/"))
    if posix.is_absolute() or ".." in posix.parts:
        raise ConfigError(f"{where} path must stay inside its parent: {value!r}")
    return posix.as_posix()


def _list_of(node: dict, key: str, where: str) -> Optional[list]:
    if key not in node or node[key] is None:
        return None
    value = node[key]
    if not isinstance(value, list):
        raise ConfigError(f"{where} field {key!r} must be a list")
    for item in value:
        if not isinstance(item, dict):
            raise ConfigError(f"{where} field {key!r} must only contain mappings")
    return value


def parse_article(node: dict, where: str) -> ArticleConfig:
    name = _require_name(node, where)
    title = node.get("title")
    return ArticleConfig(
        name=name,
        title=str(title) if title is not None else name,
        wip=parse_bool(node.get("wip")),
    )


def parse_category(node: dict, where: str = "site", root: bool = False) -> CategoryConfig:
    if root:
        name = str(node.get("name") or "site")
        path = None
    else:
        name = _require_name(node, where)
        where = f"category {name!r}"
        # "root" is the key older config.json files use for the override
        path = _check_relative(node.get("path", node.get("root")), where)

    children = _list_of(node, "categories", where)
    files = _list_of(node, "files", where)
    return CategoryConfig(
        name=name,
        path=path,
        categories=None
        if children is None
        else tuple(parse_category(child, f"{where} > category #{i + 1}") for i, child in enumerate(children)),
        files=None
        if files is None
        else tuple(parse_article(item, f"{where} > article #{i + 1}") for i, item in enumerate(files)),
    )


def parse_markdown(node: object) -> MarkdownConfig:
    if node is None:
        return MarkdownConfig()
    if not isinstance(node, dict):
        raise ConfigError("markdown settings must be a mapping")
    extensions = node.get("extensions") or []
    if not isinstance(extensions, list) or not all(isinstance(item, str) for item in extensions):
        raise ConfigError("markdown.extensions must be a list of extension names")
    return MarkdownConfig(
        extensions=tuple(extensions),
        figcaption=parse_bool(node.get("figcaption", True)),
        permalink=parse_bool(node.get("permalink", True)),
        highlight=parse_bool(node.get("highlight", True)),
    )


def parse_config(data: dict, base_dir: Path = Path(".")) -> SiteConfig:
    def local(value: object, default: str) -> Path:
        path = Path(str(value) if value else default)
        return path if path.is_absolute() else base_dir / path

    server = data.get("server") or {}
    if not isinstance(server, dict):
        raise ConfigError("server must be a mapping of environment names to settings")
    include_paths = data.get("include_paths", ["node_modules"])
    if not isinstance(include_paths, list):
        raise ConfigError("include_paths must be a list")

    return SiteConfig(
        root=local(data.get("root"), "src"),
        out=local(data.get("out"), "dist"),
        site=parse_category(data, root=True),
        standalone=parse_bool(data.get("standalone")),
        environment=str(data.get("environment") or "development"),
        server=server,
        include_paths=tuple(local(item, ".") for item in include_paths),
        template=str(data.get("template") or "assets/template.html"),
        partials=str(data.get("partials") or "assets/partials/**/*.html"),
        workers=parse_int(data.get("workers"), 0),
        markdown=parse_markdown(data.get("markdown")),
    )
