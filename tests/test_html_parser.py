"""Unit tests for parsers.html_parser."""

import pytest

from parsers import parse_document


class TestParseDocument:
    """Tests for parse_document."""

    def test_title_and_sections(self, sample_document):
        model = parse_document(sample_document)

        assert model.title == "Purchase Process"
        assert [section.title for section in model.sections] == ["Steps", "Roles"]
        assert model.warnings == ["empty_table:2"]

    def test_title_row_is_not_a_data_row(self, sample_document):
        section = parse_document(sample_document).sections[0]

        assert len(section.rows) == 3
        assert [cell.plain_text for cell in section.rows[0].cells] == ["Step", "Activity", "Time"]
        assert section.rows[0].cells[0].is_header
        assert section.rows[0].row_index_in_table == 1

    def test_cell_keeps_markup_and_plain_text(self, sample_document):
        cell = parse_document(sample_document).sections[0].rows[2].cells[1]

        assert cell.inner_markup == "Review <b>application</b>"
        assert cell.plain_text == "Review application"
        assert not cell.is_header

    @pytest.mark.parametrize(
        "html, title",
        [
            ('<table><tr><td colspan="2">Budget</td></tr><tr><td>a</td><td>b</td></tr></table>', "Budget"),
            ("<table><tr><td>a</td></tr></table>", "Section 1"),
            ("<h3>Approvals</h3><table><tr><td>a</td></tr></table>", "Approvals"),
        ],
    )
    def test_section_title_fallbacks(self, html, title):
        model = parse_document(html)

        assert model.sections[0].title == title
        assert len(model.sections[0].rows) == 1

    def test_text_blocks_outside_tables(self, sample_document):
        model = parse_document(sample_document)

        paragraphs = model.paragraphs()
        assert [p.plain_text for p in paragraphs] == ["This document describes purchasing."]
        lists = model.lists()
        assert lists[0].kind == "ul"
        assert [item.plain_text for item in lists[0].items] == ["Keep receipts", "File copies"]

    def test_paragraph_inside_table_is_not_a_text_block(self):
        model = parse_document("<table><tr><td><p>inside</p></td></tr></table><p>outside</p>")

        assert [block.plain_text for block in model.text_blocks] == ["outside"]

    def test_nested_table_rows_stay_with_their_table(self):
        html = "<table><tr><td>outer<table><tr><td>inner</td></tr></table></td></tr></table>"

        model = parse_document(html)

        assert len(model.sections) == 2
        assert len(model.sections[0].rows) == 1
        assert model.sections[1].rows[0].cells[0].plain_text == "inner"

    @pytest.mark.parametrize("html", ["", "   ", None])
    def test_empty_document(self, html):
        model = parse_document(html)

        assert model.sections == []
        assert model.warnings == ["empty_document"]

    def test_to_dict(self, sample_document):
        result = parse_document(sample_document).to_dict()

        assert result["title"] == "Purchase Process"
        assert result["sections"][1]["rows"][0]["cells"][0] == {
            "content": "Clerk",
            "textContent": "Clerk",
            "isHeader": False,
            "colSpan": 1,
            "rowSpan": 1,
        }
        assert result["textualContent"][0]["type"] == "paragraph"
