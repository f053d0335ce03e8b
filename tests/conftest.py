from __future__ import annotations

from pathlib import Path

import pytest

from docsite.config import SiteConfig, parse_config

TEMPLATE = """<html><head><title>{{ article.title }}</title>
<link rel="stylesheet" href="assets/css/main.css"></head>
<body>{% include "header" %}<main>{{ content }}</main></body></html>
"""

HEADER = """<header data-env="{{ server.url }}">{{ category.name }}
{% if category.logo %}<img src="/{{ category.logo }}" alt="logo">{% endif %}</header>
"""

LOGO = '<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"></svg>\n'


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    write(src / "assets" / "template.html", TEMPLATE)
    write(src / "assets" / "partials" / "header.html", HEADER)
    write(src / "assets" / "images" / "logo.svg", LOGO)
    write(src / "assets" / "css" / "main.sass", "$c: #123456\n\nbody\n  color: $c\n")
    write(src / "index.md", "# Home\n\nWelcome.\n")
    write(src / "guides" / "assets" / "css" / "main.sass", "main\n  margin: 0\n")
    write(src / "guides" / "intro.md", "# Intro\n\nFirst steps.\n")
    write(src / "guides" / "advanced.md", "# Advanced\n\nDeeper.\n")
    return tmp_path


def site_data(**overrides) -> dict:
    data = {
        "name": "Docs",
        "root": "src",
        "out": "dist",
        "server": {"development": {"url": "http://localhost:8000"}},
        "include_paths": [],
        "workers": 2,
        "files": [{"name": "index", "title": "Home"}],
        "categories": [
            {
                "name": "Guides",
                "path": "guides",
                "files": [
                    {"name": "intro", "title": "Intro", "wip": False},
                    {"name": "advanced", "title": "Advanced", "wip": True},
                ],
            }
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def site_config(site_dir: Path) -> SiteConfig:
    return parse_config(site_data(), site_dir)
