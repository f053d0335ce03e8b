from __future__ import annotations

from typing import Optional

from markupsafe import Markup

from .config import SiteConfig
from .content import Article, Category, build_tree
from .render import compile_css, compile_markdown, inline_assets, read_if_exists, render_page, write_text
from .tasks import Node, TaskGraph, clean, copy, parallel, series, task


def page_data(config: SiteConfig, category: Category, article: Article) -> dict:
    # the compiled fragment is trusted HTML; everything else is escaped
    content = read_if_exists(article.raw_path)
    return {
        "site": {"name": config.site.name},
        "category": category.metadata,
        "article": article.metadata,
        "server": config.server_data,
        "content": Markup(content) if content is not None else None,
    }


def inject_html(config: SiteConfig, category: Category, article: Article) -> list:
    """Render the article page, plus the inlined copy when standalone is on.

    A missing compiled fragment renders as empty content.
    """
    page = render_page(config.template_path, config.partials_glob, page_data(config, category, article))
    write_text(article.page_path, page)
    written = [article.page_path]
    if config.standalone:
        write_text(article.standalone_path, inline_assets(page, article.output, config.out))
        written.append(article.standalone_path)
    return written


def copy_images(category: Category) -> Node:
    return copy(category.images_glob, category.images_out, alt=f"img:{category.name}")


def compile_styles(config: SiteConfig, category: Category) -> Node:
    return task(
        f"compile:css:{category.name}",
        lambda: compile_css(category.css_glob, category.css_out, config.include_paths),
    )


def build_assets(config: SiteConfig, category: Category) -> Node:
    return parallel(
        copy_images(category),
        compile_styles(config, category),
        name=f"build:assets:{category.name}",
    )


def compile_article(config: SiteConfig, category: Category, article: Article) -> Node:
    return task(
        f"compile:html:{category.name}:{article.name}",
        lambda: compile_markdown(article.source, article.raw_path.parent, config.markdown),
    )


def inject_article(config: SiteConfig, category: Category, article: Article) -> Node:
    return task(
        f"build:html:{category.name}:{article.name}",
        lambda: inject_html(config, category, article),
    )


def build_article(config: SiteConfig, category: Category, article: Article) -> Node:
    return series(
        compile_article(config, category, article),
        inject_article(config, category, article),
        name=f"build:md:{category.name}:{article.name}",
    )


def build_category(config: SiteConfig, category: Category, graph: TaskGraph) -> Node:
    articles = [build_article(config, category, article) for article in category.articles or ()]
    children = []
    for child in category.categories or ():
        node = build_category(config, child, graph)
        graph.register(child.output.as_posix(), node)
        children.append(node)
    return series(
        build_assets(config, category),
        parallel(*articles, name=f"build:md:{category.name}"),
        parallel(*children, name=f"build:categories:{category.name}"),
        name=f"build:{category.name}",
    )


def create_graph(config: SiteConfig, tree: Optional[Category] = None) -> TaskGraph:
    if tree is None:
        tree = build_tree(config)
    graph = TaskGraph()
    clean_out = graph.register("clean", clean(config.out))
    # categories register themselves while "build" is assembled
    build = build_category(config, tree, graph)
    graph.register("build", build)
    graph.register("install", series(clean_out, build, name="install"))
    return graph
