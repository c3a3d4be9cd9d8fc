from __future__ import annotations

import json
import os
import re
import sys
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from .utils import parse_bool

DEFAULT_CONFIG_FILE = ".postgen.yaml"
KEY_SEPARATOR_RE = re.compile(r"[-_]")

# Config keys compared without case or separators, so blogName, blog-name
# and blog_name all name the same setting.
CONFIG_KEYS = {
    "postsdir": "posts_dir",
    "outputdir": "output_dir",
    "staticdir": "static_dir",
    "templatedir": "template_dir",
    "baseurlpath": "base_url_path",
    "blogname": "blog_name",
    "blogdescription": "blog_description",
    "rsslinkurl": "rss_link_url",
    "rss": "rss",
    "futureposts": "future_posts",
    "outputcleanup": "output_cleanup",
    "parallelism": "parallelism",
}
NEGATED_CONFIG_KEYS = {
    "norss": "rss",
    "nooutputcleanup": "output_cleanup",
}


def cpu_count() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class BlogConfig:
    posts_dir: Path = Path("posts")
    output_dir: Path = Path("blog")
    static_dir: Path = Path("static")
    template_dir: Path = Path("templates")
    # Path the blog is served from, e.g. "/blog"; empty when served from the root.
    base_url_path: str = ""
    blog_name: str = "My Blog"
    blog_description: str = "My musings about the world"
    # Scheme and host prepended to post URLs in the RSS feed.
    rss_link_url: str = "http://127.0.0.1"
    rss: bool = True
    future_posts: bool = False
    output_cleanup: bool = True
    parallelism: int = field(default_factory=cpu_count)

    def resolved(self) -> "BlogConfig":
        return replace(
            self,
            posts_dir=self.posts_dir.resolve(),
            output_dir=self.output_dir.resolve(),
            static_dir=self.static_dir.resolve(),
            template_dir=self.template_dir.resolve(),
            parallelism=max(1, self.parallelism),
        )


def normalize_config(data: dict) -> dict:
    normalized = {}
    for key, value in data.items():
        compact = KEY_SEPARATOR_RE.sub("", str(key)).lower()
        if compact in NEGATED_CONFIG_KEYS:
            normalized[NEGATED_CONFIG_KEYS[compact]] = not parse_bool(value)
        elif compact in CONFIG_KEYS:
            normalized[CONFIG_KEYS[compact]] = value
        else:
            normalized[key] = value
    return normalized


def load_config(path: Path, required: bool = False) -> dict:
    return normalize_config(read_config(path, required))


def read_config(path: Path, required: bool = False) -> dict:
    if not path.exists():
        if required:
            print(f"Config file not found: {path}", file=sys.stderr)
            sys.exit(1)
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be a mapping: {path}", file=sys.stderr)
        sys.exit(1)
    return data
