from __future__ import annotations

import datetime as dt
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import AmbiguousMetadataError, InvalidDateError, InvalidMetadataError, MetadataNotFoundError

logger = logging.getLogger(__name__)

DATE_FMT = "%Y-%m-%d"
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
LINK_NAME_MAX_LENGTH = 50
METADATA_FILE_RE = re.compile(r"^metadata\.(?i:json|ya?ml)$")
LINK_NAME_UNSAFE_RE = re.compile(r"[/?.:=%#\t\n]")
KEY_SEPARATOR_RE = re.compile(r"[-_]")


class MetadataLoader(yaml.SafeLoader):
    pass


# Dates are parsed with DATE_FMT whatever the file format, so YAML timestamps stay text.
MetadataLoader.add_constructor("tag:yaml.org,2002:timestamp", MetadataLoader.construct_yaml_str)


@dataclass(frozen=True)
class PostMetadata:
    link_name: str
    title: str
    publish_date: dt.datetime
    tags: Optional[tuple[str, ...]] = None


def is_metadata_file(name: str) -> bool:
    return METADATA_FILE_RE.match(name) is not None


def find_metadata_file(directory: Path) -> Path:
    matches = sorted(path for path in directory.iterdir() if path.is_file() and is_metadata_file(path.name))
    if not matches:
        raise MetadataNotFoundError(f"No metadata file found in '{directory}'")
    if len(matches) > 1:
        names = ", ".join(path.name for path in matches)
        raise AmbiguousMetadataError(f"Found multiple metadata files in '{directory}': {names}")
    return matches[0]


def strip_unsafe(text: str) -> str:
    return LINK_NAME_UNSAFE_RE.sub("", text)


def normalize_link_name(text: str) -> str:
    return strip_unsafe(text).replace(" ", "-").lower()


def derive_link_name(explicit: str, title: str) -> str:
    """Build the URL/filesystem name of a post.

    An explicit link name is only normalised. Without one the title is
    cleaned and cut to LINK_NAME_MAX_LENGTH code points first.
    """
    if explicit:
        return normalize_link_name(explicit)
    return normalize_link_name(strip_unsafe(title)[:LINK_NAME_MAX_LENGTH])


def load_metadata_file(path: Path) -> dict:
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidMetadataError(f"Metadata file '{path}' is not valid UTF-8: {exc}") from exc
    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidMetadataError(f"Invalid JSON in metadata file '{path}': {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.load(text, Loader=MetadataLoader)
        except yaml.YAMLError as exc:
            raise InvalidMetadataError(f"Invalid YAML in metadata file '{path}': {exc}") from exc
    else:
        raise RuntimeError(f"Unknown metadata file extension '{suffix}'")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidMetadataError(f"Metadata must be a mapping: '{path}'")
    return {KEY_SEPARATOR_RE.sub("", str(key)).lower(): value for key, value in data.items()}


def parse_publish_date(value: object, now: dt.datetime) -> dt.datetime:
    # Undated posts are published at build time, so their output path can
    # move between builds.
    if value is None or value == "":
        return now
    if not isinstance(value, str):
        raise InvalidDateError(f"Could not parse publish date '{value}'")
    value = value.strip()
    # strptime alone accepts unpadded months and days.
    if not DATE_RE.match(value):
        raise InvalidDateError(f"Could not parse publish date '{value}': expected YYYY-MM-DD")
    try:
        return dt.datetime.strptime(value, DATE_FMT)
    except ValueError as exc:
        raise InvalidDateError(f"Could not parse publish date '{value}': {exc}") from exc


def parse_tags(value: object) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise InvalidMetadataError(f"Tags must be a list, got '{value}'")
    return tuple(sorted(str(tag) for tag in value))


def process_metadata(data: dict, now: dt.datetime) -> PostMetadata:
    title = data.get("title")
    title = "" if title is None else str(title).strip()
    if not title:
        raise InvalidMetadataError("No title given for post")
    publish_date = parse_publish_date(data.get("publishdate"), now)
    link_name = data.get("linkname")
    link_name = "" if link_name is None else str(link_name)
    return PostMetadata(
        link_name=derive_link_name(link_name, title),
        title=title,
        publish_date=publish_date,
        tags=parse_tags(data.get("tags")),
    )


def parse_metadata(directory: Path, now: Optional[dt.datetime] = None) -> PostMetadata:
    if now is None:
        now = dt.datetime.now()
    path = find_metadata_file(directory)
    logger.debug("Parsing metadata from '%s'", path)
    data = load_metadata_file(path)
    try:
        return process_metadata(data, now)
    except (InvalidMetadataError, InvalidDateError) as exc:
        raise type(exc)(f"Failed to parse metadata '{path}': {exc}") from exc
