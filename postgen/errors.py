from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    pass


class MetadataError(BuildError):
    pass


class MetadataNotFoundError(MetadataError):
    pass


class AmbiguousMetadataError(MetadataError):
    pass


class InvalidMetadataError(MetadataError):
    pass


class InvalidDateError(MetadataError):
    pass


class DuplicateOutputError(BuildError):
    def __init__(self, output_dir: Path, owner_dir: Path) -> None:
        super().__init__(f"Same output directory '{output_dir}' as post in '{owner_dir}'")
        self.output_dir = output_dir
        self.owner_dir = owner_dir


class PostIOError(BuildError):
    pass


class TemplateRenderError(BuildError):
    pass


class StaticCopyError(BuildError):
    pass
