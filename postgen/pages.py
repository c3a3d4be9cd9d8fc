from __future__ import annotations

import datetime as dt
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from markupsafe import Markup

from .config import BlogConfig
from .errors import PostIOError
from .render import write_text
from .templates import POST_LIST_TEMPLATE, POST_TEMPLATE, TemplateEngine
from .utils import display_date, join_url, rfc822_date

if TYPE_CHECKING:
    from .posts import Post

logger = logging.getLogger(__name__)

FEED_LIMIT = 10
FEED_TTL = 1800
OPENING_P_RE = re.compile(r"^\s*<p>\s*")
CLOSING_P_RE = re.compile(r"\s*</p>\s*$")


def common_data(config: BlogConfig, page_title: Optional[str] = None) -> dict[str, Any]:
    return {
        "base_url_path": config.base_url_path.rstrip("/"),
        "blog_name": config.blog_name,
        "page_title": page_title or config.blog_name,
    }


def post_data(post: Post) -> dict[str, Any]:
    metadata = post.metadata
    return {
        "title": metadata.title,
        "content": Markup(post.content),
        "preview": Markup(post.preview),
        "publish_date": display_date(metadata.publish_date),
        "url": post.url_path,
        "tags": list(metadata.tags or ()),
    }


def all_tags(posts: list[Post]) -> list[str]:
    tags = set()
    for post in posts:
        tags.update(post.metadata.tags or ())
    return sorted(tags)


def build_post_page(post: Post, config: BlogConfig, templates: TemplateEngine) -> None:
    context = {
        "common": common_data(config, post.metadata.title),
        "post": post_data(post),
    }
    index_file = post.output_dir / "index.html"
    try:
        templates.render_to_file(POST_TEMPLATE, index_file, context)
    except OSError as exc:
        raise PostIOError(f"Failed to write '{index_file}': {exc}") from exc


def build_index(posts: list[Post], output_dir: Path, config: BlogConfig, templates: TemplateEngine) -> Path:
    index_file = output_dir / "index.html"
    logger.info("Writing post list to '%s'", index_file)
    context = {
        "common": common_data(config),
        "posts": [post_data(post) for post in posts],
        "all_tags": all_tags(posts),
    }
    templates.render_to_file(POST_LIST_TEMPLATE, index_file, context)
    return index_file


def strip_paragraph(html_text: str) -> str:
    text = OPENING_P_RE.sub("", html_text, count=1)
    return CLOSING_P_RE.sub("", text, count=1)


def rss_document(posts: list[Post], config: BlogConfig, now: dt.datetime) -> str:
    feed_posts = posts[:FEED_LIMIT]
    last_build = feed_posts[0].metadata.publish_date if feed_posts else now

    rss = ET.Element("rss", version="2.0")
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = config.blog_name
    ET.SubElement(channel, "link").text = join_url(config.rss_link_url, config.base_url_path)
    ET.SubElement(channel, "description").text = config.blog_description
    ET.SubElement(channel, "lastBuildDate").text = rfc822_date(last_build)
    ET.SubElement(channel, "pubDate").text = rfc822_date(now)
    ET.SubElement(channel, "ttl").text = str(FEED_TTL)

    for post in feed_posts:
        link = join_url(config.rss_link_url, post.url_path)
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = post.metadata.title
        ET.SubElement(item, "link").text = link
        ET.SubElement(item, "description").text = strip_paragraph(post.preview)
        ET.SubElement(item, "guid").text = link
        ET.SubElement(item, "pubDate").text = rfc822_date(post.metadata.publish_date)

    ET.indent(rss, space="  ")
    xml_str = ET.tostring(rss, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{xml_str}\n'


def build_rss(posts: list[Post], output_dir: Path, config: BlogConfig, now: dt.datetime) -> Optional[Path]:
    if not config.rss:
        logger.info("Not generating RSS feed as it is disabled in the config")
        return None
    rss_file = output_dir / "rss.xml"
    logger.info("Writing RSS feed to '%s'", rss_file)
    write_text(rss_file, rss_document(posts, config, now))
    return rss_file
