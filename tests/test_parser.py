"""Tests for markdown/parser.py -- unit splitting and serialization."""

import pytest

from mdait_sync.errors import FrontMatterError
from mdait_sync.markdown.marker import Marker
from mdait_sync.markdown.parser import (
    has_real_content,
    parse_body,
    parse_document,
    serialize_document,
)
from mdait_sync.markdown.unit import Document, Unit

# ---------------------------------------------------------------------------
# has_real_content
# ---------------------------------------------------------------------------


class TestHasRealContent:
    def test_blank(self):
        assert not has_real_content("")
        assert not has_real_content("\n  \n")

    def test_comments_only(self):
        assert not has_real_content("<!-- a -->\n\n<!-- b\nmultiline -->\n")

    def test_paragraph(self):
        assert has_real_content("Some text")

    def test_heading(self):
        assert has_real_content("## Heading")

    def test_other_html(self):
        assert has_real_content("<div>x</div>")


# ---------------------------------------------------------------------------
# Unit splitting
# ---------------------------------------------------------------------------


class TestParseBody:
    def test_splits_on_level_two(self):
        _, units = parse_body("## A\n\nBody A\n\n## B\n\nBody B\n")
        assert [u.title for u in units] == ["A", "B"]
        assert units[0].content == "## A\n\nBody A"
        assert units[1].content == "## B\n\nBody B"
        assert all(u.heading_level == 2 for u in units)

    def test_deeper_headings_stay_inside(self):
        _, units = parse_body("## A\n\n### A.1\n\nText\n\n## B\n")
        assert [u.title for u in units] == ["A", "B"]
        assert "### A.1" in units[0].content

    def test_level_three_splits_deeper(self):
        _, units = parse_body("## A\n\nIntro\n\n### A.1\n\nText\n", level=3)
        assert [u.title for u in units] == ["A", "A.1"]

    def test_heading_run_coalesces(self):
        """A heading directly followed by a deeper heading forms one unit."""
        _, units = parse_body("# Doc\n\n## Intro\n\nText\n\n## Next\n\nMore\n")
        assert len(units) == 2
        assert units[0].title == "Doc"
        assert units[0].heading_level == 1
        assert units[0].content == "# Doc\n\n## Intro\n\nText"
        assert units[1].title == "Next"

    def test_same_level_headings_do_not_coalesce(self):
        _, units = parse_body("## A\n\n## B\n\nText\n")
        assert [u.content for u in units] == ["## A", "## B\n\nText"]

    def test_heading_after_content_starts_unit(self):
        _, units = parse_body("# Doc\n\nIntro\n\n## A\n\nText\n")
        assert [u.title for u in units] == ["Doc", "A"]

    def test_closing_hashes_removed_from_title(self):
        _, units = parse_body("## Title ##\n\nText\n")
        assert units[0].title == "Title"

    def test_heading_in_fence_ignored(self):
        body = "## A\n\n```md\n## Not a heading\n<!-- mdait abcdef01 -->\n```\n\n## B\n"
        _, units = parse_body(body)
        assert [u.title for u in units] == ["A", "B"]
        assert "## Not a heading" in units[0].content

    def test_heading_in_comment_ignored(self):
        _, units = parse_body("## A\n\n<!--\n## hidden\n-->\n\n## B\n")
        assert [u.title for u in units] == ["A", "B"]

    def test_marker_starts_unit(self):
        body = "<!-- mdait abcdef01 -->\n## A\n\nText\n\n<!-- mdait 12345678 from:abcdef01 -->\nLoose paragraph\n"
        _, units = parse_body(body)
        assert len(units) == 2
        assert units[0].marker == Marker("abcdef01")
        assert units[0].content == "## A\n\nText"
        assert units[1].marker == Marker("12345678", "abcdef01")
        assert units[1].title == ""
        assert units[1].content == "Loose paragraph"

    def test_first_heading_after_marker_names_unit_at_any_level(self):
        _, units = parse_body("<!-- mdait abcdef01 -->\n#### Deep\n\nText\n")
        assert units[0].title == "Deep"
        assert units[0].heading_level == 4

    def test_preamble_with_content_becomes_unit(self):
        preamble, units = parse_body("Intro paragraph\n\n## A\n\nText\n")
        assert preamble == ""
        assert units[0].title == ""
        assert units[0].heading_level == 0
        assert units[0].content == "Intro paragraph"

    def test_comment_preamble_kept_verbatim(self):
        preamble, units = parse_body("<!-- license -->\n\n## A\n\nText\n")
        assert preamble == "<!-- license -->"
        assert len(units) == 1

    def test_empty_document(self):
        assert parse_body("") == ("", [])

    def test_marker_without_content(self):
        _, units = parse_body("<!-- mdait abcdef01 -->\n")
        assert units == [Unit(content="", marker=Marker("abcdef01"))]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestParseDocument:
    def test_front_matter_extracted(self):
        doc = parse_document("---\ntitle: T\n---\n## A\n\nText\n")
        assert doc.front_matter.get("title") == "T"
        assert [u.title for u in doc.units] == ["A"]

    def test_sync_level_override(self):
        text = "---\nmdait:\n  sync:\n    level: 3\n---\n## A\n\nx\n\n### B\n\ny\n"
        doc = parse_document(text, level=2)
        assert [u.title for u in doc.units] == ["A", "B"]

    def test_crlf_input(self):
        doc = parse_document("## A\r\n\r\nText\r\n")
        assert doc.units[0].content == "## A\n\nText"

    def test_invalid_front_matter_propagates(self):
        with pytest.raises(FrontMatterError):
            parse_document("---\ntitle: [unclosed\n---\n## A\n")


class TestSerializeDocument:
    @pytest.mark.parametrize(
        "text",
        [
            "## A\n\nText\n",
            "# Doc\n\nIntro\n\n## A\n\nText\n\n## B\n\n- item\n- item\n",
            "<!-- license -->\n\n## A\n\nText\n",
            "---\ntitle: T\n---\n## A\n\nText\n",
            "<!-- mdait abcdef01 from:12345678 need:translate -->\n## A\n\nText\n",
            "Intro\n\n## A\n\n```\n## code\n```\n",
        ],
    )
    def test_roundtrip(self, text):
        assert serialize_document(parse_document(text)) == text

    def test_units_separated_by_blank_line(self):
        doc = Document(units=[Unit("## A\n\nx"), Unit("## B\n\ny", marker=Marker("abcdef01"))])
        assert serialize_document(doc) == "## A\n\nx\n\n<!-- mdait abcdef01 -->\n## B\n\ny\n"

    def test_extra_blank_lines_normalized(self):
        assert serialize_document(parse_document("## A\n\n\n\nx\n\n\n\n## B\n")) == (
            "## A\n\n\n\nx\n\n## B\n"
        )

    def test_empty_document(self):
        assert serialize_document(Document()) == ""

    def test_front_matter_only(self):
        doc = parse_document("---\ntitle: T\n---\n")
        assert serialize_document(doc) == "---\ntitle: T\n---\n"
