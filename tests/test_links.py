"""Tests for markdown link scanning."""

from __future__ import annotations

import pytest

from bookgraph.links import extract_links, is_external_url


def targets(text: str) -> list[str]:
    return [link.target for link in extract_links(text)]


class TestExtractLinks:
    """Tests for extract_links."""

    def test_inline_links_in_order_with_lines(self) -> None:
        text = (
            "See [intro](intro.md) and [params](params.md#query).\n"
            "\n"
            "Also <https://example.com>.\n"
        )

        links = extract_links(text)

        assert [(l.target, l.line) for l in links] == [
            ("intro.md", 1),
            ("params.md#query", 1),
            ("https://example.com", 3),
        ]

    def test_images_are_skipped(self) -> None:
        assert targets("![diagram](img/flow.png) and [next](next.md)\n") == ["next.md"]

    def test_badge_inside_link(self) -> None:
        assert targets("[![build](badge.svg)](https://ci.example.com)\n") == [
            "https://ci.example.com"
        ]

    def test_fenced_code_is_skipped(self) -> None:
        text = "```markdown\n[no](skip.md)\n```\n[yes](keep.md)\n"

        links = extract_links(text)

        assert [(l.target, l.line) for l in links] == [("keep.md", 4)]

    def test_tilde_fence_is_skipped(self) -> None:
        assert targets("~~~\n[no](skip.md)\n~~~\n[yes](keep.md)\n") == ["keep.md"]

    def test_inline_code_is_skipped(self) -> None:
        assert targets("Write `[no](skip.md)` like [yes](keep.md).\n") == ["keep.md"]

    def test_html_comments_are_skipped(self) -> None:
        links = extract_links("<!--\n[no](skip.md)\n-->\n[yes](keep.md)\n")

        assert [(l.target, l.line) for l in links] == [("keep.md", 4)]

    def test_reference_definitions(self) -> None:
        text = "Read the [API][api].\n\n[api]: reference/api.md\n[^1]: a footnote\n"

        assert targets(text) == ["reference/api.md"]

    def test_link_titles_and_angle_brackets(self) -> None:
        text = '[a](a.md "Title") [b](<my file.md>) [c](c.md \'T\')\n'

        assert targets(text) == ["a.md", "my file.md", "c.md"]

    def test_empty_target_is_reported(self) -> None:
        assert targets("[todo]()\n") == [""]

    def test_anchor_only_target(self) -> None:
        assert targets("[up](#top)\n") == ["#top"]

    def test_no_links(self) -> None:
        assert extract_links("Plain prose with [brackets] and (parens).\n") == []


class TestIsExternalUrl:
    """Tests for is_external_url."""

    @pytest.mark.parametrize(
        "target",
        ["https://example.com", "http://x.org/a.md", "mailto:docs@example.com", "//cdn.example.com/x"],
    )
    def test_external(self, target: str) -> None:
        assert is_external_url(target)

    @pytest.mark.parametrize(
        "target",
        ["intro.md", "params/md", "#anchor", "../up.md", "/abs/path.md", "C:\\docs\\a.md"],
    )
    def test_internal(self, target: str) -> None:
        assert not is_external_url(target)
