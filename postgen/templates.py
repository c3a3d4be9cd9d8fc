from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from .errors import TemplateRenderError
from .render import write_text

logger = logging.getLogger(__name__)

POST_TEMPLATE = "post.html"
POST_LIST_TEMPLATE = "post_list.html"


class TemplateEngine:
    """Jinja2 environment loaded once from a template directory.

    Page templates live at the top of the directory and shared fragments
    under ``includes/``. Every template is compiled up front; rendering is
    read-only afterwards and may run from several worker threads.
    """

    def __init__(self, template_dir: Path) -> None:
        self.template_dir = template_dir
        if not template_dir.is_dir():
            raise TemplateRenderError(f"Templates directory not found: {template_dir}")
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.templates = {}
        names = sorted(self.env.list_templates(filter_func=lambda name: name.endswith(".html")))
        try:
            for name in names:
                self.templates[name] = self.env.get_template(name)
        except TemplateError as exc:
            raise TemplateRenderError(f"Failed to parse templates in '{template_dir}': {exc}") from exc
        for required in (POST_TEMPLATE, POST_LIST_TEMPLATE):
            if required not in self.templates:
                raise TemplateRenderError(f"Missing template '{required}' in '{template_dir}'")
        logger.debug("Loaded %d templates from '%s'", len(self.templates), template_dir)

    def render(self, name: str, context: dict[str, Any]) -> str:
        template = self.templates.get(name)
        if template is None:
            raise TemplateRenderError(f"Unknown template '{name}'")
        try:
            return template.render(**context)
        except (TemplateError, TypeError, ValueError, AttributeError, LookupError, ArithmeticError) as exc:
            # Template expressions can raise plain Python errors at render time.
            raise TemplateRenderError(f"Failed to render template '{name}': {exc}") from exc

    def render_to_file(self, name: str, path: Path, context: dict[str, Any]) -> None:
        html_doc = self.render(name, context)
        logger.debug("Writing template '%s' to '%s'", name, path)
        write_text(path, html_doc)
