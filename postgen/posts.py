from __future__ import annotations

import datetime as dt
import enum
import html
import logging
import os
import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import BlogConfig
from .content import PostMetadata, derive_link_name, is_metadata_file, parse_metadata
from .errors import BuildError, DuplicateOutputError, InvalidMetadataError, PostIOError
from .pages import build_post_page
from .render import copy_tree, render_post_markdown, strip_tags
from .templates import TemplateEngine

logger = logging.getLogger(__name__)

CONTENT_FILE = "content.md"
RESOURCE_DIR = "resources"


class PostState(enum.Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(eq=False)
class Post:
    source_dir: Path
    content_file: Path
    resource_dir: Optional[Path] = None
    metadata: Optional[PostMetadata] = None
    content: str = ""
    preview: str = ""
    title: str = ""
    link_name: str = ""
    url_path: str = ""
    output_dir: Optional[Path] = None
    state: PostState = PostState.PENDING
    error: Optional[Exception] = field(default=None, repr=False)

    @property
    def published(self) -> bool:
        return self.state is PostState.PUBLISHED

    @property
    def publish_date(self) -> dt.datetime:
        if self.metadata is None:
            raise ValueError(f"Post in '{self.source_dir}' has no metadata")
        return self.metadata.publish_date


class OutputRegistry:
    """Output directories claimed during one build, mapped to their post."""

    def __init__(self) -> None:
        self._owners: dict[Path, Post] = {}
        self._lock = threading.Lock()

    def claim(self, output_dir: Path, post: Post) -> None:
        with self._lock:
            owner = self._owners.get(output_dir)
            if owner is not None:
                raise DuplicateOutputError(output_dir, owner.source_dir)
            self._owners[output_dir] = post

    def owner(self, output_dir: Path) -> Optional[Post]:
        with self._lock:
            return self._owners.get(output_dir)

    def paths(self) -> set[Path]:
        with self._lock:
            return set(self._owners)

    def __contains__(self, output_dir: object) -> bool:
        with self._lock:
            return output_dir in self._owners

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)


def new_post(directory: Path, entries: list[Path]) -> Optional[Post]:
    has_metadata = False
    content_file = None
    resource_dir = None
    for entry in entries:
        if is_metadata_file(entry.name) and entry.is_file():
            has_metadata = True
        elif entry.name == CONTENT_FILE and entry.is_file():
            content_file = entry
        elif entry.name == RESOURCE_DIR and entry.is_dir():
            resource_dir = entry

    if not has_metadata and content_file is None:
        return None
    if not has_metadata or content_file is None:
        logger.error("Directory '%s' is missing a metadata or content file", directory)
        return None
    return Post(source_dir=directory, content_file=content_file, resource_dir=resource_dir)


def find_posts(base_dir: Path) -> list[Post]:
    logger.info("Looking for posts in '%s'", base_dir)
    to_process = deque([base_dir])
    scheduled = {os.path.realpath(base_dir)}
    posts = []

    while to_process:
        directory = to_process.popleft()
        logger.debug("Looking for posts in '%s'", directory)
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning("Could not list files in directory '%s': %s", directory, exc)
            continue

        post = new_post(directory, entries)
        if post is not None:
            logger.debug("Found post in '%s'", directory)
            posts.append(post)
            continue

        for entry in entries:
            if not entry.is_dir():
                continue
            key = os.path.realpath(entry)
            if key in scheduled:
                continue
            scheduled.add(key)
            to_process.append(entry)

    logger.info("Found %d posts in '%s'", len(posts), base_dir)
    return posts


def build_post(
    post: Post,
    output_root: Path,
    config: BlogConfig,
    templates: TemplateEngine,
    registry: OutputRegistry,
    now: dt.datetime,
) -> PostState:
    post.metadata = parse_metadata(post.source_dir, now)

    if not config.future_posts and post.metadata.publish_date > now:
        logger.info("Skipping post in '%s' published in the future", post.source_dir)
        post.state = PostState.SKIPPED
        return post.state

    try:
        source = post.content_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PostIOError(f"Failed to read '{post.content_file}': {exc}") from exc
    rendered = render_post_markdown(source)
    post.content = rendered.content
    post.preview = rendered.preview
    post.title = rendered.title

    link_name = post.metadata.link_name
    if not link_name:
        link_name = derive_link_name("", html.unescape(strip_tags(post.title)))
    if not link_name:
        raise InvalidMetadataError(f"Could not make a link name for post in '{post.source_dir}'")
    post.link_name = link_name

    year = f"{post.metadata.publish_date.year:04d}"
    month = f"{post.metadata.publish_date.month:02d}"
    post.url_path = "/".join([config.base_url_path.rstrip("/"), year, month, link_name])
    post.output_dir = output_root / year / month / link_name

    registry.claim(post.output_dir, post)

    try:
        post.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PostIOError(f"Failed to create output directory '{post.output_dir}': {exc}") from exc

    if post.resource_dir is not None:
        logger.debug("Copying post resources from '%s'", post.resource_dir)
        try:
            copy_tree(post.resource_dir, post.output_dir)
        except OSError as exc:
            logger.error(
                "Failed to copy resource files from '%s' to '%s': %s", post.resource_dir, post.output_dir, exc
            )

    build_post_page(post, config, templates)
    post.state = PostState.PUBLISHED
    return post.state


def build_post_safely(
    post: Post,
    output_root: Path,
    config: BlogConfig,
    templates: TemplateEngine,
    registry: OutputRegistry,
    now: dt.datetime,
) -> PostState:
    try:
        return build_post(post, output_root, config, templates, registry, now)
    except (BuildError, OSError) as exc:
        logger.error("Error building post in '%s': %s", post.source_dir, exc)
        return mark_failed(post, exc)
    except Exception as exc:
        logger.exception("Unexpected error building post in '%s': %s", post.source_dir, exc)
        return mark_failed(post, exc)


def mark_failed(post: Post, exc: Exception) -> PostState:
    post.state = PostState.FAILED
    post.error = exc
    return post.state
