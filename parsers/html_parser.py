"""Parse semi-structured HTML process documents into sections of table rows.

Each ``<table>`` becomes a :class:`Section` (tables with no data rows are
skipped), and paragraphs and lists outside tables become :class:`TextBlock`
entries. Indices recorded in the model are handles back into the tree
returned by :func:`load_tree` for the same source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

DEFAULT_HTML_PARSER = "html.parser"
DEFAULT_DOCUMENT_TITLE = "Process Document"
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
LIST_TAGS = ["ul", "ol"]


@dataclass
class Cell:
    inner_markup: str
    plain_text: str
    is_header: bool = False
    col_span: int = 1
    row_span: int = 1

    def to_dict(self) -> Dict[str, object]:
        return {
            "content": self.inner_markup,
            "textContent": self.plain_text,
            "isHeader": self.is_header,
            "colSpan": self.col_span,
            "rowSpan": self.row_span,
        }


@dataclass
class Row:
    cells: List[Cell] = field(default_factory=list)
    row_index_in_table: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {"cells": [cell.to_dict() for cell in self.cells], "rowIndex": self.row_index_in_table}


@dataclass
class Section:
    title: str
    table_index: int
    rows: List[Row] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "tableIndex": self.table_index,
            "rows": [row.to_dict() for row in self.rows],
        }


@dataclass
class ListItem:
    inner_markup: str
    plain_text: str

    def to_dict(self) -> Dict[str, object]:
        return {"content": self.inner_markup, "textContent": self.plain_text}


@dataclass
class TextBlock:
    """A paragraph or list outside any table.

    ``index`` counts paragraphs (or lists) in document order, empty ones
    included, so it addresses the same element the editor will modify.
    """

    kind: str
    index: int
    inner_markup: str
    plain_text: str
    items: List[ListItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        result: Dict[str, object] = {
            "type": self.kind,
            "index": self.index,
            "content": self.inner_markup,
            "textContent": self.plain_text,
        }
        if self.kind != "paragraph":
            result["items"] = [item.to_dict() for item in self.items]
        return result


@dataclass
class DocumentModel:
    title: str = DEFAULT_DOCUMENT_TITLE
    sections: List[Section] = field(default_factory=list)
    text_blocks: List[TextBlock] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def paragraphs(self) -> List[TextBlock]:
        return [block for block in self.text_blocks if block.kind == "paragraph"]

    def lists(self) -> List[TextBlock]:
        return [block for block in self.text_blocks if block.kind != "paragraph"]

    def to_dict(self) -> Dict[str, object]:
        result: Dict[str, object] = {
            "title": self.title,
            "sections": [section.to_dict() for section in self.sections],
        }
        if self.text_blocks:
            result["textualContent"] = [block.to_dict() for block in self.text_blocks]
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


def load_tree(html: Optional[str], parser: str = DEFAULT_HTML_PARSER) -> BeautifulSoup:
    return BeautifulSoup(html or "", parser)


def plain_text(element: Tag) -> str:
    return " ".join(element.get_text().split())


def find_tables(soup: BeautifulSoup) -> List[Tag]:
    return soup.find_all("table")


def table_rows(table: Tag) -> List[Tag]:
    """Rows belonging to ``table`` itself, not to tables nested inside it."""

    return [row for row in table.find_all("tr") if row.find_parent("table") is table]


def row_cells(row: Tag) -> List[Tag]:
    return row.find_all(["th", "td"], recursive=False)


def find_paragraphs(soup: BeautifulSoup) -> List[Tag]:
    return [p for p in soup.find_all("p") if p.find_parent("table") is None]


def find_lists(soup: BeautifulSoup) -> List[Tag]:
    return [node for node in soup.find_all(LIST_TAGS) if node.find_parent("table") is None]


def list_items(list_tag: Tag) -> List[Tag]:
    return list_tag.find_all("li", recursive=False)


def _span(cell: Tag, attribute: str) -> int:
    try:
        return max(1, int(cell.get(attribute, 1)))
    except (TypeError, ValueError):
        return 1


def _is_title_row(row: Tag) -> bool:
    cells = row_cells(row)
    return bool(cells) and _span(cells[0], "colspan") > 1


def _section_title(table: Tag, rows: List[Tag], table_index: int) -> str:
    caption = table.find("caption")
    if caption is not None and plain_text(caption):
        return plain_text(caption)
    heading = table.find_previous_sibling(HEADING_TAGS)
    if heading is not None and plain_text(heading):
        return plain_text(heading)
    if rows and _is_title_row(rows[0]):
        return plain_text(row_cells(rows[0])[0])
    return f"Section {table_index + 1}"


def _build_cell(cell: Tag) -> Cell:
    return Cell(
        inner_markup=cell.decode_contents(),
        plain_text=plain_text(cell),
        is_header=cell.name == "th",
        col_span=_span(cell, "colspan"),
        row_span=_span(cell, "rowspan"),
    )


def _build_section(table: Tag, table_index: int) -> Section:
    rows = table_rows(table)
    section = Section(title=_section_title(table, rows, table_index), table_index=table_index)
    for row_index, row in enumerate(rows):
        if row_index == 0 and _is_title_row(row):
            continue
        cells = row_cells(row)
        if not cells:
            continue
        section.rows.append(Row(cells=[_build_cell(cell) for cell in cells], row_index_in_table=row_index))
    return section


def _collect_text_blocks(soup: BeautifulSoup) -> List[TextBlock]:
    blocks: List[TextBlock] = []
    for index, paragraph in enumerate(find_paragraphs(soup)):
        text = plain_text(paragraph)
        if text:
            blocks.append(TextBlock("paragraph", index, paragraph.decode_contents(), text))
    for index, list_tag in enumerate(find_lists(soup)):
        text = plain_text(list_tag)
        if not text:
            continue
        items = [ListItem(item.decode_contents(), plain_text(item)) for item in list_items(list_tag)]
        blocks.append(TextBlock(list_tag.name, index, list_tag.decode_contents(), text, items))
    return blocks


def build_document_model(soup: BeautifulSoup) -> DocumentModel:
    model = DocumentModel()
    heading = soup.find(["h1", "h2"])
    if heading is not None and plain_text(heading):
        model.title = plain_text(heading)

    for table_index, table in enumerate(find_tables(soup)):
        section = _build_section(table, table_index)
        if section.rows:
            model.sections.append(section)
        else:
            model.warnings.append(f"empty_table:{table_index}")
    model.text_blocks = _collect_text_blocks(soup)
    return model


def parse_document(html: Optional[str], parser: str = DEFAULT_HTML_PARSER) -> DocumentModel:
    """Parse an HTML document into a :class:`DocumentModel`.

    Args:
        html: Document source; ``None`` or blank text yields an empty model.
        parser: BeautifulSoup tree builder name.
    """

    if not html or not html.strip():
        logger.debug("Empty document source; returning an empty model")
        return DocumentModel(warnings=["empty_document"])
    model = build_document_model(load_tree(html, parser))
    logger.debug(
        "Parsed document: %d sections, %d text blocks",
        len(model.sections),
        len(model.text_blocks),
    )
    return model
