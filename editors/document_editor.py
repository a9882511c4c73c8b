"""Coordinate-addressed edits on HTML process documents.

Each operation parses the source once, checks every coordinate against the
model built from that tree, applies a single change and serialises the
whole tree. An out-of-range coordinate raises :class:`InvalidIndexError`
before the tree is touched.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from parsers.html_parser import (
    DEFAULT_HTML_PARSER,
    DocumentModel,
    Section,
    build_document_model,
    find_lists,
    find_paragraphs,
    find_tables,
    list_items,
    load_tree,
    row_cells,
    table_rows,
)

from .errors import DocumentEditError, InvalidIndexError, UnsupportedTextTypeError

logger = logging.getLogger(__name__)

TEXT_TYPES = ("paragraph", "listItem")
RowPosition = Union[str, int]


def _check_index(kind: str, index: object, limit: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < limit:
        raise InvalidIndexError(kind, index, limit)
    return index


def _load(html: str, parser: str) -> Tuple[BeautifulSoup, DocumentModel]:
    soup = load_tree(html, parser)
    return soup, build_document_model(soup)


def _section(model: DocumentModel, section_index: int) -> Section:
    return model.sections[_check_index("section", section_index, len(model.sections))]


def _row_tag(soup: BeautifulSoup, section: Section, row_index: int) -> Tag:
    row = section.rows[row_index]
    return table_rows(find_tables(soup)[section.table_index])[row.row_index_in_table]


def _replace_contents(tag: Tag, markup: str, parser: str) -> None:
    tag.clear()
    fragment = BeautifulSoup(markup or "", parser)
    for child in list(fragment.contents):
        tag.append(child.extract())


def update_document_cell(
    html: str,
    section_index: int,
    row_index: int,
    cell_index: int,
    content: str,
    parser: str = DEFAULT_HTML_PARSER,
) -> str:
    """Replace the inner markup of one cell."""

    soup, model = _load(html, parser)
    section = _section(model, section_index)
    _check_index("row", row_index, len(section.rows))
    _check_index("cell", cell_index, len(section.rows[row_index].cells))

    cell = row_cells(_row_tag(soup, section, row_index))[cell_index]
    _replace_contents(cell, content, parser)
    logger.debug("Updated cell %d/%d/%d", section_index, row_index, cell_index)
    return str(soup)


def update_document_text(
    html: str,
    text_type: str,
    index: int,
    content: str,
    item_index: Optional[int] = None,
    parser: str = DEFAULT_HTML_PARSER,
) -> str:
    """Replace a paragraph (``"paragraph"``) or one list item (``"listItem"``)."""

    if text_type not in TEXT_TYPES:
        raise UnsupportedTextTypeError(text_type)
    soup = load_tree(html, parser)

    if text_type == "paragraph":
        paragraphs = find_paragraphs(soup)
        target = paragraphs[_check_index("paragraph", index, len(paragraphs))]
    else:
        lists = find_lists(soup)
        items = list_items(lists[_check_index("list", index, len(lists))])
        target = items[_check_index("list item", item_index, len(items))]

    _replace_contents(target, content, parser)
    return str(soup)


def add_document_row(
    html: str,
    section_index: int,
    cell_contents: Sequence[str],
    position: RowPosition = "append",
    parser: str = DEFAULT_HTML_PARSER,
) -> str:
    """Insert a row of ``<td>`` cells into a section.

    ``position`` is ``"prepend"``, ``"append"`` (``-1`` is accepted as an
    alias) or a row index within the section; the new row is placed before
    the row currently at that index, or after the last row when the index
    equals the row count.
    """

    soup, model = _load(html, parser)
    section = _section(model, section_index)
    if not cell_contents:
        raise DocumentEditError("A new row needs at least one cell")

    row_count = len(section.rows)
    if position == "prepend":
        target = 0
    elif position == "append" or position == -1:
        target = row_count
    elif isinstance(position, int) and not isinstance(position, bool):
        target = _check_index("position", position, row_count + 1)
    else:
        raise InvalidIndexError("position", position)

    new_row = soup.new_tag("tr")
    for markup in cell_contents:
        cell = soup.new_tag("td")
        _replace_contents(cell, markup, parser)
        new_row.append(cell)

    if target < row_count:
        _row_tag(soup, section, target).insert_before(new_row)
    else:
        _row_tag(soup, section, row_count - 1).insert_after(new_row)
    logger.debug("Added row to section %d at position %d", section_index, target)
    return str(soup)


def remove_document_row(
    html: str,
    section_index: int,
    row_index: int,
    parser: str = DEFAULT_HTML_PARSER,
) -> str:
    soup, model = _load(html, parser)
    section = _section(model, section_index)
    _check_index("row", row_index, len(section.rows))
    _row_tag(soup, section, row_index).decompose()
    return str(soup)
