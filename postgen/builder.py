from __future__ import annotations

import datetime as dt
import logging
import re
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import BlogConfig
from .errors import BuildError, StaticCopyError
from .pages import build_index, build_rss
from .posts import OutputRegistry, Post, PostState, build_post_safely, find_posts
from .render import copy_tree
from .templates import TemplateEngine

logger = logging.getLogger(__name__)

YEAR_RE = re.compile(r"^\d{4}$")
MONTH_RE = re.compile(r"^\d{2}$")


@dataclass
class BuildResult:
    posts: list[Post]
    published: list[Post]
    registry: OutputRegistry
    removed: list[Path] = field(default_factory=list)

    def count(self, state: PostState) -> int:
        return sum(1 for post in self.posts if post.state is state)


def prune_output(output_dir: Path, registry: OutputRegistry) -> list[Path]:
    """Delete YYYY/MM/<name> directories that no post of this build owns."""
    keep = registry.paths()
    removed = []
    for year_dir in sorted(output_dir.iterdir()):
        if not year_dir.is_dir() or not YEAR_RE.match(year_dir.name):
            continue
        for month_dir in sorted(year_dir.iterdir()):
            if not month_dir.is_dir() or not MONTH_RE.match(month_dir.name):
                continue
            for post_dir in sorted(month_dir.iterdir()):
                if post_dir.is_dir() and post_dir not in keep:
                    logger.info("Removing stale output directory '%s'", post_dir)
                    shutil.rmtree(post_dir)
                    removed.append(post_dir)
    return removed


def build_posts(input_dir: Path, output_dir: Path, config: BlogConfig, now: Optional[dt.datetime] = None) -> BuildResult:
    if now is None:
        now = dt.datetime.now()
    input_dir = input_dir.resolve()
    output_dir = output_dir.resolve()

    templates = TemplateEngine(config.template_dir)
    posts = find_posts(input_dir)
    registry = OutputRegistry()

    workers = min(max(1, config.parallelism), len(posts))
    if workers:
        logger.info("Building %d posts with %d workers", len(posts), workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            list(
                executor.map(
                    lambda post: build_post_safely(post, output_dir, config, templates, registry, now),
                    posts,
                )
            )

    logger.info("Copying static files from '%s' to '%s'", config.static_dir, output_dir)
    try:
        copy_tree(config.static_dir, output_dir)
    except OSError as exc:
        raise StaticCopyError(
            f"Failed to copy static files from '{config.static_dir}' to '{output_dir}': {exc}"
        ) from exc

    published = sorted((post for post in posts if post.published), key=lambda p: p.publish_date, reverse=True)
    result = BuildResult(posts=posts, published=published, registry=registry)

    if config.output_cleanup:
        try:
            result.removed = prune_output(output_dir, registry)
        except OSError as exc:
            logger.error("Failed to clean up removed posts from output directory: %s", exc)

    try:
        build_index(published, output_dir, config, templates)
    except (BuildError, OSError) as exc:
        logger.error("Failed to write post list: %s", exc)
    except Exception:
        logger.exception("Unexpected error writing post list")
    try:
        build_rss(published, output_dir, config, now)
    except OSError as exc:
        logger.error("Failed to write RSS feed: %s", exc)
    except Exception:
        logger.exception("Unexpected error writing RSS feed")

    logger.info(
        "Published %d posts (%d skipped, %d failed)",
        len(published),
        result.count(PostState.SKIPPED),
        result.count(PostState.FAILED),
    )
    return result


def build_site(config: BlogConfig, now: Optional[dt.datetime] = None) -> BuildResult:
    config = config.resolved()
    return build_posts(config.posts_dir, config.output_dir, config, now)
