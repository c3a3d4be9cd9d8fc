from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .builder import build_site
from .config import DEFAULT_CONFIG_FILE, BlogConfig, cpu_count, load_config
from .errors import BuildError
from .utils import parse_bool, parse_int

logger = logging.getLogger(__name__)

CONFIG_FLAGS = ("--config", "--configFile", "-configFile")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(*CONFIG_FLAGS, dest="config", default=DEFAULT_CONFIG_FILE)
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config), required=pre_args.config != DEFAULT_CONFIG_FILE)

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        return str(cfg_value(key, default))

    def cfg_bool(key: str, default: bool) -> bool:
        return parse_bool(cfg_value(key, default))

    def cfg_int(key: str, default: int) -> int:
        return parse_int(cfg_value(key, default), default)

    parser = argparse.ArgumentParser(prog="postgen", description="Static blog generator for directories of posts.")
    parser.add_argument(
        *CONFIG_FLAGS,
        dest="config",
        default=pre_args.config,
        help="Path to config file (YAML/JSON/TOML). Command line flags override its values.",
    )
    parser.add_argument("--posts-dir", default=cfg_str("posts_dir", "posts"), help="Directory containing posts.")
    parser.add_argument("--output-dir", default=cfg_str("output_dir", "blog"), help="Output directory for the blog.")
    parser.add_argument(
        "--static-dir", default=cfg_str("static_dir", "static"), help="Directory of static files copied to the output."
    )
    parser.add_argument("--template-dir", default=cfg_str("template_dir", "templates"), help="Template directory.")
    parser.add_argument(
        "--base-url-path",
        default=cfg_str("base_url_path", ""),
        help="Path the blog is served from, e.g. /blog. Leave empty for the site root.",
    )
    parser.add_argument("--blog-name", default=cfg_str("blog_name", "My Blog"), help="Blog name.")
    parser.add_argument(
        "--blog-description",
        default=cfg_str("blog_description", "My musings about the world"),
        help="Blog description.",
    )
    parser.add_argument(
        "--rss-link-url",
        default=cfg_str("rss_link_url", "http://127.0.0.1"),
        help="Scheme and host used to build absolute links in the RSS feed.",
    )
    parser.add_argument(
        "--rss",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("rss", True),
        help="Generate rss.xml.",
    )
    parser.add_argument(
        "--future-posts",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("future_posts", False),
        help="Publish posts with a publish date in the future.",
    )
    parser.add_argument(
        "--output-cleanup",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("output_cleanup", True),
        help="Remove output directories of posts that no longer exist.",
    )
    parser.add_argument(
        "--parallelism",
        default=cfg_int("parallelism", cpu_count()),
        type=int,
        help="Maximum number of posts built in parallel.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> BlogConfig:
    return BlogConfig(
        posts_dir=Path(args.posts_dir),
        output_dir=Path(args.output_dir),
        static_dir=Path(args.static_dir),
        template_dir=Path(args.template_dir),
        base_url_path=args.base_url_path,
        blog_name=args.blog_name,
        blog_description=args.blog_description,
        rss_link_url=args.rss_link_url,
        rss=args.rss,
        future_posts=args.future_posts,
        output_cleanup=args.output_cleanup,
        parallelism=args.parallelism,
    ).resolved()


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)
    config = config_from_args(args)
    start = time.perf_counter()
    try:
        result = build_site(config)
    except BuildError as exc:
        logger.critical("Build failed: %s", exc)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Blog with {len(result.published)} posts generated in: {config.output_dir}")
