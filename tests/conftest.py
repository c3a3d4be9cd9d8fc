"""
Pytest configuration and shared fixtures
"""

import datetime as dt
import json
from pathlib import Path

import pytest
import yaml

from postgen.config import BlogConfig

NOW = dt.datetime(2021, 6, 1, 12, 0, 0)

POST_TEMPLATE = """{% include "includes/header.html" %}
<h1>{{ post.title }}</h1>
<span class="date">{{ post.publish_date }}</span>
{% for tag in post.tags %}<span class="tag">{{ tag }}</span>{% endfor %}
{{ post.content }}
"""

POST_LIST_TEMPLATE = """{% include "includes/header.html" %}
{% for post in posts %}
<article><a href="{{ post.url }}">{{ post.title }}</a>{{ post.preview }}</article>
{% endfor %}
{% for tag in all_tags %}<span class="all-tag">{{ tag }}</span>{% endfor %}
"""

HEADER_TEMPLATE = """<title>{{ common.page_title }}</title>
"""


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def template_dir(tmp_path):
    """Minimal post, post list and include templates"""
    directory = tmp_path / "templates"
    (directory / "includes").mkdir(parents=True)
    (directory / "post.html").write_text(POST_TEMPLATE, encoding="utf-8")
    (directory / "post_list.html").write_text(POST_LIST_TEMPLATE, encoding="utf-8")
    (directory / "includes" / "header.html").write_text(HEADER_TEMPLATE, encoding="utf-8")
    return directory


@pytest.fixture
def static_dir(tmp_path):
    directory = tmp_path / "static"
    (directory / "css").mkdir(parents=True)
    (directory / "css" / "blog.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    (directory / "favicon.ico").write_bytes(b"\x00\x01")
    return directory


@pytest.fixture
def posts_dir(tmp_path):
    directory = tmp_path / "posts"
    directory.mkdir()
    return directory


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "blog"


@pytest.fixture
def make_config(posts_dir, output_dir, static_dir, template_dir):
    def _make(**overrides):
        values = {
            "posts_dir": posts_dir,
            "output_dir": output_dir,
            "static_dir": static_dir,
            "template_dir": template_dir,
            "blog_name": "Test Blog",
            "blog_description": "A blog for tests",
            "rss_link_url": "http://example.com",
            "parallelism": 4,
        }
        values.update(overrides)
        return BlogConfig(**values)

    return _make


def write_post(directory: Path, metadata=None, content=None, fmt="yaml") -> Path:
    """Create a post directory holding a metadata file and content.md"""
    directory.mkdir(parents=True, exist_ok=True)
    if metadata is not None:
        if fmt == "json":
            (directory / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
        else:
            (directory / f"metadata.{fmt}").write_text(yaml.safe_dump(metadata), encoding="utf-8")
    if content is not None:
        (directory / "content.md").write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def make_post():
    return write_post
