"""Tests for the three markdown render modes."""

import pytest

from postgen.render import RenderMode, copy_tree, render_markdown, render_post_markdown, strip_tags

POST = """# The Title

First paragraph with *emphasis*.

## A Section

Second paragraph.

# Another Top Heading

Third paragraph.
"""


class TestRenderPostMarkdown:

    def test_title_is_first_heading(self):
        assert render_post_markdown(POST).title == "The Title"

    def test_content_skips_only_first_heading(self):
        content = render_post_markdown(POST).content
        assert "The Title" not in content
        assert "<h2>A Section</h2>" in content
        assert "<h1>Another Top Heading</h1>" in content
        assert content.startswith("<p>First paragraph with <em>emphasis</em>.</p>")
        assert "<p>Third paragraph.</p>" in content

    def test_preview_is_first_paragraph(self):
        preview = render_post_markdown(POST).preview
        assert preview == "<p>First paragraph with <em>emphasis</em>.</p>"

    def test_title_keeps_inline_markup_without_heading_tags(self):
        rendered = render_post_markdown("## Notes on *Markdown*\n\nBody.\n")
        assert rendered.title == "Notes on <em>Markdown</em>"
        assert strip_tags(rendered.title) == "Notes on Markdown"

    def test_first_heading_of_any_level_is_title(self):
        rendered = render_post_markdown("Intro paragraph.\n\n### Small Heading\n\n# Big Heading\n")
        assert rendered.title == "Small Heading"
        assert "<h1>Big Heading</h1>" in rendered.content
        assert "Small Heading" not in rendered.content
        assert rendered.preview == "<p>Intro paragraph.</p>"

    def test_no_heading(self):
        rendered = render_post_markdown("Just a paragraph.\n\nAnd another.\n")
        assert rendered.title == ""
        assert rendered.content == "<p>Just a paragraph.</p>\n<p>And another.</p>"
        assert rendered.preview == "<p>Just a paragraph.</p>"

    def test_no_paragraph(self):
        rendered = render_post_markdown("# Only a Title\n")
        assert rendered.title == "Only a Title"
        assert rendered.preview == ""
        assert rendered.content == ""

    def test_empty_source(self):
        rendered = render_post_markdown("")
        assert rendered.title == rendered.preview == rendered.content == ""

    def test_preview_inside_list_item(self):
        rendered = render_post_markdown("# T\n\n- item one\n\n- item two\n")
        assert rendered.preview == "<p>item one</p>"

    def test_bytes_source(self):
        assert render_post_markdown("# Café\n\nBody.".encode("utf-8")).title == "Café"

    def test_escaped_characters(self):
        rendered = render_post_markdown("# Q&A \\*not emphasis\\*\n\nA < B\n")
        assert rendered.title == "Q&amp;A *not emphasis*"
        assert rendered.preview == "<p>A &lt; B</p>"

    def test_fenced_code_and_tables(self):
        source = "# T\n\n```\ncode\n```\n\n| a | b |\n|---|---|\n| 1 | 2 |\n"
        content = render_post_markdown(source).content
        assert "<pre><code>code\n</code></pre>" in content
        assert "<table>" in content


class TestRenderMarkdown:

    @pytest.mark.parametrize(
        "mode, expected",
        [
            (RenderMode.TITLE, "The Title"),
            (RenderMode.PREVIEW, "<p>First paragraph with <em>emphasis</em>.</p>"),
        ],
    )
    def test_modes(self, mode, expected):
        assert render_markdown(POST, mode) == expected

    def test_post_mode_matches_full_render(self):
        assert render_markdown(POST, RenderMode.POST) == render_post_markdown(POST).content


class TestCopyTree:

    def test_copies_into_existing_directory(self, tmp_path):
        source = tmp_path / "src"
        (source / "nested").mkdir(parents=True)
        (source / "a.txt").write_text("a", encoding="utf-8")
        (source / "nested" / "b.txt").write_text("b", encoding="utf-8")
        destination = tmp_path / "dest"
        destination.mkdir()
        (destination / "keep.txt").write_text("keep", encoding="utf-8")

        copy_tree(source, destination)

        assert (destination / "a.txt").read_text(encoding="utf-8") == "a"
        assert (destination / "nested" / "b.txt").read_text(encoding="utf-8") == "b"
        assert (destination / "keep.txt").exists()

    def test_missing_source(self, tmp_path):
        with pytest.raises(OSError):
            copy_tree(tmp_path / "missing", tmp_path / "dest")
