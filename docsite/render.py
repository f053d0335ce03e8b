from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Optional, Sequence

import csscompressor
import markdown
import sass
from bs4 import BeautifulSoup
from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader

from .config import MarkdownConfig
from .markdown_ext import AllowedAttrListExtension, ImplicitFigureExtension
from .utils import PathLike, expand_files, glob_base

BASE_EXTENSIONS = ["footnotes", "fenced_code", "tables", "smarty", "pymdownx.magiclink"]
REMOTE_PREFIXES = ("http://", "https://", "//", "data:", "#", "mailto:")


def read_if_exists(path: Path) -> Optional[str]:
    if path.exists():
        return path.read_text(encoding="utf-8")
    return None


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def markdown_converter(options: MarkdownConfig) -> markdown.Markdown:
    names = BASE_EXTENSIONS + ["attr_list", "toc"]
    extensions: list = list(BASE_EXTENSIONS)
    extensions.append(AllowedAttrListExtension())
    extension_configs = {
        "toc": {"permalink": options.permalink},
    }
    extensions.append("toc")
    if options.highlight:
        names.append("codehilite")
        extensions.append("codehilite")
        extension_configs["codehilite"] = {"css_class": "highlight", "guess_lang": False}
    extensions.append(ImplicitFigureExtension(figcaption=options.figcaption))
    for name in options.extensions:
        if name not in names:
            names.append(name)
            extensions.append(name)
    return markdown.Markdown(extensions=extensions, extension_configs=extension_configs)


def compile_markdown(source: Path, dest_dir: Path, options: MarkdownConfig) -> Path:
    text = source.read_text(encoding="utf-8")
    md = markdown_converter(options)
    html_content = md.convert(text)
    target = dest_dir / f"{source.stem}.html"
    write_text(target, html_content)
    return target


def compile_css(source_glob: PathLike, dest_dir: Path, include_paths: Sequence[Path] = ()) -> list[Path]:
    written = []
    for path in expand_files(source_glob):
        if path.name.startswith("_"):
            continue
        css = sass.compile(
            filename=str(path),
            include_paths=[str(item) for item in include_paths],
            output_style="expanded",
        )
        target = dest_dir / f"{path.stem}.css"
        write_text(target, csscompressor.compress(css))
        written.append(target)
    return written


def load_partials(partials_glob: PathLike) -> dict[str, str]:
    base = glob_base(partials_glob)
    partials = {}
    for path in expand_files(partials_glob):
        name = path.relative_to(base).with_suffix("").as_posix()
        partials[name] = path.read_text(encoding="utf-8")
    return partials


def _finalize(value: object) -> object:
    return "" if value is None else value


def render_page(template: Path, partials_glob: PathLike, data: dict) -> str:
    env = Environment(
        loader=ChoiceLoader([DictLoader(load_partials(partials_glob)), FileSystemLoader(str(template.parent))]),
        autoescape=True,
        finalize=_finalize,
        keep_trailing_newline=True,
    )
    return env.get_template(template.name).render(**data)


def _is_local(ref: Optional[str]) -> bool:
    return bool(ref) and not ref.strip().lower().startswith(REMOTE_PREFIXES)


def _local_file(ref: str, base_dir: Path, root_dir: Path) -> Path:
    ref = ref.split("#", 1)[0].split("?", 1)[0]
    if ref.startswith("/"):
        return root_dir / ref.lstrip("/")
    return base_dir / ref


def data_uri(path: Path) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    if mime is None:
        mime = "application/octet-stream"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def inline_assets(html_text: str, base_dir: Path, root_dir: Path, svg_as_image: bool = True) -> str:
    """Embed local stylesheets, scripts and images into the page.

    Remote and data: references are left untouched. A local reference that
    does not exist raises FileNotFoundError.
    """
    soup = BeautifulSoup(html_text, "html.parser")

    for link in soup.find_all("link"):
        rel = [item.lower() for item in (link.get("rel") or [])]
        href = link.get("href")
        if "stylesheet" not in rel or not _is_local(href):
            continue
        css = _local_file(href, base_dir, root_dir).read_text(encoding="utf-8")
        style = soup.new_tag("style")
        if link.get("media"):
            style["media"] = link["media"]
        style.string = css
        link.replace_with(style)

    for script in soup.find_all("script"):
        src = script.get("src")
        if not _is_local(src):
            continue
        code = _local_file(src, base_dir, root_dir).read_text(encoding="utf-8")
        del script["src"]
        script.string = code

    for image in soup.find_all("img"):
        src = image.get("src")
        if not _is_local(src):
            continue
        path = _local_file(src, base_dir, root_dir)
        if path.suffix.lower() == ".svg" and not svg_as_image:
            markup = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
            image.replace_with(markup)
            continue
        image["src"] = data_uri(path)

    return str(soup)
