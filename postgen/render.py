from __future__ import annotations

import copy
import enum
import re
import shutil
import xml.etree.ElementTree as etree
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

TAG_RE = re.compile(r"<[^>]+>")
HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]


class RenderMode(enum.Enum):
    POST = "post"
    PREVIEW = "preview"
    TITLE = "title"


class CaptureState(enum.Enum):
    SEEKING_TITLE = "seeking_title"
    CAPTURING_TITLE = "capturing_title"
    SEEKING_BODY = "seeking_body"
    CAPTURING_BODY = "capturing_body"
    DONE = "done"


@dataclass(frozen=True)
class RenderedMarkdown:
    content: str
    preview: str
    title: str

    def for_mode(self, mode: RenderMode) -> str:
        if mode is RenderMode.POST:
            return self.content
        if mode is RenderMode.PREVIEW:
            return self.preview
        return self.title


class PostCaptureProcessor(Treeprocessor):
    """Single walk over the parsed document.

    The first heading of any level becomes the title and is taken out of the
    body; later headings stay. The first paragraph is kept aside, tags
    included, as the preview.
    """

    def __init__(self, md: Optional[markdown.Markdown] = None) -> None:
        super().__init__(md)
        self.title: Optional[etree.Element] = None
        self.preview: Optional[etree.Element] = None

    def run(self, root: etree.Element) -> None:
        self.title = None
        self.preview = None
        title_state = CaptureState.SEEKING_TITLE
        body_state = CaptureState.SEEKING_BODY
        title_parent: Optional[etree.Element] = None
        title_nodes: set[int] = set()
        preview_nodes: set[int] = set()

        for parent, element in _walk(root):
            if title_state is CaptureState.CAPTURING_TITLE and id(element) not in title_nodes:
                title_state = CaptureState.DONE
            if body_state is CaptureState.CAPTURING_BODY and id(element) not in preview_nodes:
                body_state = CaptureState.DONE

            if title_state is CaptureState.SEEKING_TITLE and element.tag in HEADING_TAGS:
                self.title = element
                title_parent = parent
                title_nodes = {id(node) for node in element.iter()}
                title_state = CaptureState.CAPTURING_TITLE
            elif body_state is CaptureState.SEEKING_BODY and element.tag == "p":
                self.preview = copy.deepcopy(element)
                self.preview.tail = None
                preview_nodes = {id(node) for node in element.iter()}
                body_state = CaptureState.CAPTURING_BODY

            if title_state is CaptureState.DONE and body_state is CaptureState.DONE:
                break

        if self.title is not None and title_parent is not None:
            _remove_keeping_tail(title_parent, self.title)


class PostCaptureExtension(Extension):
    def extendMarkdown(self, md: markdown.Markdown) -> None:
        self.processor = PostCaptureProcessor(md)
        # After inline patterns and unescaping so captured nodes are final.
        md.treeprocessors.register(self.processor, "post_capture", -10)


def _walk(root: etree.Element):
    stack = [(root, child) for child in reversed(list(root))]
    while stack:
        parent, element = stack.pop()
        yield parent, element
        stack.extend((element, child) for child in reversed(list(element)))


def _remove_keeping_tail(parent: etree.Element, element: etree.Element) -> None:
    tail = (element.tail or "").strip()
    if tail:
        siblings = list(parent)
        index = siblings.index(element)
        if index > 0:
            previous = siblings[index - 1]
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def _serialize(md: markdown.Markdown, element: etree.Element, inner: bool = False) -> str:
    if inner:
        wrapper = etree.Element(md.doc_tag)
        wrapper.text = element.text
        for child in element:
            wrapper.append(copy.deepcopy(child))
        element = wrapper
    output = md.serializer(element)
    if inner:
        start = output.find(f"<{md.doc_tag}>")
        end = output.rfind(f"</{md.doc_tag}>")
        if start != -1 and end != -1:
            output = output[start + len(md.doc_tag) + 2 : end]
    for processor in md.postprocessors:
        output = processor.run(output)
    return output.strip()


def render_post_markdown(source: Union[str, bytes]) -> RenderedMarkdown:
    if isinstance(source, bytes):
        source = source.decode("utf-8")
    capture = PostCaptureExtension()
    md = markdown.Markdown(extensions=[*MARKDOWN_EXTENSIONS, capture])
    content = md.convert(source)
    processor = capture.processor
    title = _serialize(md, processor.title, inner=True) if processor.title is not None else ""
    preview = _serialize(md, processor.preview) if processor.preview is not None else ""
    md.reset()
    return RenderedMarkdown(content=content, preview=preview, title=title)


def render_markdown(source: Union[str, bytes], mode: RenderMode) -> str:
    return render_post_markdown(source).for_mode(mode)


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_tree(source: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, dirs_exist_ok=True)
