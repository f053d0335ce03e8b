from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NamedTuple, Optional

from .config import ArticleConfig, CategoryConfig, ConfigError, SiteConfig
from .utils import resolve_path, url_join

LOGO = "assets/images/logo.svg"
CSS_GLOB = "assets/css/*.s[ac]ss"
IMAGES_GLOB = "assets/images/**"


class ParentContext(NamedTuple):
    source: Optional[Path]
    output: Optional[Path]
    path: Optional[str]
    logo: Optional[str]


@dataclass(frozen=True)
class Article:
    name: str
    title: str
    wip: bool
    source: Path
    output: Path

    @property
    def raw_path(self) -> Path:
        return self.output / "raw" / f"{self.name}.html"

    @property
    def page_path(self) -> Path:
        return self.output / f"{self.name}.html"

    @property
    def standalone_path(self) -> Path:
        return self.output / "standalone" / f"{self.name}.html"

    @property
    def metadata(self) -> dict:
        return {"name": self.name, "title": self.title, "wip": self.wip}


@dataclass(frozen=True)
class Category:
    name: str
    path: str
    source: Path
    output: Path
    logo: Optional[str] = None
    categories: Optional[tuple[Category, ...]] = None
    articles: Optional[tuple[Article, ...]] = None

    @property
    def css_glob(self) -> Path:
        return self.source / CSS_GLOB

    @property
    def images_glob(self) -> Path:
        return self.source / IMAGES_GLOB

    @property
    def css_out(self) -> Path:
        return self.output / "assets" / "css"

    @property
    def images_out(self) -> Path:
        return self.output / "assets" / "images"

    @property
    def metadata(self) -> dict:
        """Template-facing view of the category, without build paths."""
        return {
            "name": self.name,
            "path": self.path,
            "logo": self.logo,
            "categories": [child.metadata for child in self.categories or ()],
            "articles": [article.metadata for article in self.articles or ()],
        }

    def walk(self) -> Iterator[Category]:
        yield self
        for child in self.categories or ():
            yield from child.walk()


def build_article(category: Category, node: ArticleConfig) -> Article:
    return Article(
        name=node.name,
        title=node.title,
        wip=node.wip,
        source=category.source / f"{node.name}.md",
        output=category.output,
    )


def build_category(parent: ParentContext, node: CategoryConfig) -> Category:
    source = resolve_path(parent.source, node.path)
    output = resolve_path(parent.output, node.path)
    if source is None or output is None:
        raise ConfigError(f"category {node.name!r} has no source or output directory")
    path = url_join(parent.path, node.path) or "."

    if (source / LOGO).exists():
        logo = url_join(path, LOGO)
    else:
        logo = parent.logo

    here = ParentContext(source, output, path, logo)
    children = None
    if node.categories is not None:
        children = tuple(build_category(here, child) for child in node.categories)

    # articles only need the resolved paths, so build them against a bare shell
    shell = Category(name=node.name, path=path, source=source, output=output, logo=logo)
    articles = None
    if node.files is not None:
        articles = tuple(build_article(shell, item) for item in node.files)

    return Category(
        name=node.name,
        path=path,
        source=source,
        output=output,
        logo=logo,
        categories=children,
        articles=articles,
    )


def article_files(article: Article) -> tuple[Path, ...]:
    return (article.raw_path, article.page_path, article.standalone_path)


def check_outputs(tree: Category) -> None:
    categories: dict[Path, Category] = {}
    files: dict[Path, tuple[Category, Article]] = {}
    for category in tree.walk():
        other = categories.get(category.output)
        if other is not None:
            raise ConfigError(
                f"categories {other.name!r} and {category.name!r} resolve to the same output path {category.output}"
            )
        categories[category.output] = category
        for article in category.articles or ():
            for path in article_files(article):
                owner = files.get(path)
                if owner is not None:
                    raise ConfigError(
                        f"articles {owner[0].name}/{owner[1].name} and {category.name}/{article.name} "
                        f"write the same file {path}"
                    )
                files[path] = (category, article)


def build_tree(config: SiteConfig) -> Category:
    tree = build_category(ParentContext(config.root, config.out, None, None), config.site)
    check_outputs(tree)
    return tree
