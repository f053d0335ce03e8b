from pathlib import Path

import pytest

from docsite.config import ConfigError, parse_config
from docsite.content import LOGO, build_tree

from conftest import site_data, write


def nested_data() -> dict:
    return site_data(
        categories=[
            {
                "name": "Guides",
                "path": "guides",
                "files": [{"name": "intro", "title": "Intro"}],
                "categories": [
                    {
                        "name": "Deep",
                        "path": "deep",
                        "files": [{"name": "dive"}],
                        "categories": [{"name": "Deeper", "path": "deeper/still", "files": [{"name": "end"}]}],
                    },
                    {"name": "Branded", "path": "branded", "files": [{"name": "b"}]},
                ],
            }
        ]
    )


def test_articles_under_category_under_output_root(tmp_path):
    config = parse_config(nested_data(), tmp_path)
    tree = build_tree(config)
    for category in tree.walk():
        assert category.output == config.out or config.out in category.output.parents
        for article in category.articles or ():
            assert article.output == category.output
            assert category.output in article.page_path.parents


def test_nested_paths_resolve_against_parent(tmp_path):
    tree = build_tree(parse_config(nested_data(), tmp_path))
    deeper = tree.categories[0].categories[0].categories[0]
    assert deeper.source == tmp_path / "src" / "guides" / "deep" / "deeper" / "still"
    assert deeper.output == tmp_path / "dist" / "guides" / "deep" / "deeper" / "still"
    assert deeper.path == "guides/deep/deeper/still"
    assert deeper.articles[0].source == deeper.source / "end.md"


def test_logo_inherited_from_nearest_ancestor(tmp_path):
    write(tmp_path / "src" / LOGO, "<svg/>")
    write(tmp_path / "src" / "guides" / "branded" / LOGO, "<svg/>")
    tree = build_tree(parse_config(nested_data(), tmp_path))
    guides = tree.categories[0]
    deep, branded = guides.categories
    assert tree.logo == "assets/images/logo.svg"
    assert guides.logo == tree.logo
    assert deep.logo == tree.logo
    assert deep.categories[0].logo == tree.logo
    assert branded.logo == "guides/branded/assets/images/logo.svg"


def test_root_without_logo_has_none(tmp_path):
    tree = build_tree(parse_config(nested_data(), tmp_path))
    assert all(category.logo is None for category in tree.walk())


def test_intro_and_advanced_articles(site_dir):
    tree = build_tree(parse_config(site_data(), site_dir))
    guides = tree.categories[0]
    assert [(a.name, a.title, a.wip) for a in guides.articles] == [
        ("intro", "Intro", False),
        ("advanced", "Advanced", True),
    ]
    assert all(a.output == guides.output for a in guides.articles)


def test_unset_children_stay_none(tmp_path):
    tree = build_tree(parse_config({"files": [{"name": "only"}]}, tmp_path))
    assert tree.categories is None
    assert tree.path == "."
    assert tree.output == tmp_path / "dist"


def test_metadata_projection(site_dir):
    tree = build_tree(parse_config(site_data(), site_dir))
    meta = tree.metadata
    assert meta["name"] == "Docs"
    assert meta["logo"] == "assets/images/logo.svg"
    assert meta["articles"] == [{"name": "index", "title": "Home", "wip": False}]
    guides = meta["categories"][0]
    assert guides["path"] == "guides"
    assert [a["title"] for a in guides["articles"]] == ["Intro", "Advanced"]
    assert "source" not in guides and "output" not in guides


def test_sibling_categories_with_same_output_rejected(tmp_path):
    data = site_data(
        categories=[
            {"name": "A", "path": "shared", "files": [{"name": "a"}]},
            {"name": "B", "path": "shared", "files": [{"name": "b"}]},
        ]
    )
    with pytest.raises(ConfigError, match="same output path"):
        build_tree(parse_config(data, tmp_path))


def test_category_without_path_collides_with_parent(tmp_path):
    data = site_data(categories=[{"name": "Inline", "files": [{"name": "x"}]}])
    with pytest.raises(ConfigError, match="same output path"):
        build_tree(parse_config(data, tmp_path))


def test_duplicate_article_rejected(tmp_path):
    data = site_data(files=[{"name": "index"}, {"name": "index", "title": "Again"}], categories=[])
    with pytest.raises(ConfigError, match="same file"):
        build_tree(parse_config(data, tmp_path))


def test_tree_is_immutable(site_dir):
    tree = build_tree(parse_config(site_data(), site_dir))
    with pytest.raises(AttributeError):
        tree.name = "changed"
    assert isinstance(tree.categories, tuple)
    assert isinstance(tree.source, Path)


@pytest.mark.parametrize("path", ["raw", "standalone"])
def test_child_category_cannot_overwrite_parent_fragments(tmp_path, path):
    data = site_data(
        files=[{"name": "index"}],
        categories=[{"name": "Shadow", "path": path, "files": [{"name": "index"}]}],
    )
    with pytest.raises(ConfigError, match="write the same file"):
        build_tree(parse_config(data, tmp_path))


def test_child_category_named_raw_with_distinct_articles_is_fine(tmp_path):
    data = site_data(
        files=[{"name": "index"}],
        categories=[{"name": "Raw", "path": "raw", "files": [{"name": "notes"}]}],
    )
    tree = build_tree(parse_config(data, tmp_path))
    assert tree.categories[0].articles[0].page_path == tmp_path / "dist" / "raw" / "notes.html"
