"""Repair pass for Mermaid flowchart text.

``validate_mermaid_syntax`` never rejects input: it returns the best-effort
corrected text. Only lines that need a fix are rewritten, so valid text comes
back byte-identical, and the output is a fixed point of the function.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Set, Tuple

from parsers.mermaid_parser import (
    CLOSER_KEYWORD,
    DIRECTIVE_PATTERN,
    directive_direction,
    is_closer,
    is_group_open,
    scan_statement,
)
from parsers.utils import extract_mermaid_block

logger = logging.getLogger(__name__)

DEFAULT_DIRECTION = "TD"
SAFE_END_NAME = "endProcess"
EMPTY_DIAGRAM_PLACEHOLDER = '    A["No diagram available"]'

CORRUPTED_CLOSERS = {"endnode", "endsubgraph", "end subgraph", "end_subgraph", "end-subgraph"}
_CASE_VARIANT_CLOSERS = {"End", "END"}

_SMART_DOUBLE_QUOTES = re.compile("[“”„‟″«»]")
_SMART_SINGLE_QUOTES = re.compile("[‘’‚‛′]")
_LINE_BREAK_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)
_MARKUP_TAG = re.compile(r"</?[A-Za-z][^<>]*>")
_PROTECTED_PATTERN = re.compile(r'"[^"\n]*"|\|[^|\n]*\|')

_SINGLE_QUOTED_SHAPES = (
    (re.compile(r"\(\[\s*'([^'\"]*)'\s*\]\)"), r'(["\1"])'),
    (re.compile(r"\[\s*'([^'\"]*)'\s*\]"), r'["\1"]'),
    (re.compile(r"\{\s*'([^'\"]*)'\s*\}"), r'{"\1"}'),
    (re.compile(r"\|\s*'([^'\"|]*)'\s*\|"), r'|"\1"|'),
)
_ARROW_VARIANTS = re.compile(r"(?<![-<])(?:-{3,}>|-\.+->|={2,}>|->|-{3,}(?![->]))")
_UNQUOTED_PIPE_LABEL = re.compile(r'(-->\s*)\|(?!\s*")\s*([^|"\n]*[^|"\s][^|"\n]*?)\s*\|')
_UNQUOTED_SHAPES = (
    (re.compile(r"(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\(\[\s*([^\"\[\]()]*[^\"\[\]()\s][^\"\[\]()]*?)\s*\]\)"), r'\1(["\2"])'),
    (re.compile(r"(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\[\s*([^\"\[\]]*[^\"\[\]\s][^\"\[\]]*?)\s*\]"), r'\1["\2"]'),
    (re.compile(r"(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\{\s*([^\"{}]*[^\"{}\s][^\"{}]*?)\s*\}"), r'\1{"\2"}'),
)
_TRAILING_COMMA = re.compile(r",\s*(?=\])")
_DECLARATION_SPACING = (
    (re.compile(r'(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\(\[\s*"([^"]+)"\s*\]\)'), r'\1(["\2"])'),
    (re.compile(r'(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\[\s*"([^"]+)"\s*\]'), r'\1["\2"]'),
    (re.compile(r'(?<![A-Za-z0-9_])([A-Za-z0-9_]+)\s*\{\s*"([^"]+)"\s*\}'), r'\1{"\2"}'),
)
_DUPLICATE_DECLARATION = re.compile(r'^(\s*)([A-Za-z0-9_]+\["[^"]+"\])\s*\2\s*$')
_END_IDENTIFIER = re.compile(r"(?<![A-Za-z0-9_])end(?![A-Za-z0-9_])")
_END_NODE_CLOSER = re.compile(r"^\s*endNode\s*;?\s*$")
_END_NODE_IDENTIFIER = re.compile(r"(?<![A-Za-z0-9_])endNode(?![A-Za-z0-9_])")
_END_SHAPE_IDENTIFIER = re.compile(r"(?<![A-Za-z0-9_])end(?=\s*[\[{(])")


def _map_code_segments(line: str, transform: Callable[[str], str]) -> str:
    """Apply ``transform`` to the parts of ``line`` outside quotes and pipe labels."""

    parts: List[str] = []
    pos = 0
    for match in _PROTECTED_PATTERN.finditer(line):
        parts.append(transform(line[pos : match.start()]))
        parts.append(match.group(0))
        pos = match.end()
    parts.append(transform(line[pos:]))
    return "".join(parts)


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def rename_reserved_identifiers(line: str, safe_name: str = SAFE_END_NAME) -> str:
    """Rename ``end`` used as a node identifier on a statement line."""

    stripped = line.strip()
    if not stripped or stripped.startswith("%%") or is_closer(stripped) or is_group_open(stripped):
        return line
    if _closer_token(stripped).lower() in CORRUPTED_CLOSERS:
        return line
    return _map_code_segments(line, lambda segment: _END_IDENTIFIER.sub(safe_name, segment))


def _fix_line_text(line: str, safe_end_name: str, fixes: Set[str]) -> str:
    stripped = line.strip()
    if not stripped or stripped.startswith("%%"):
        return line

    def record(kind: str, before: str, after: str) -> str:
        if before != after:
            fixes.add(kind)
        return after

    fixed = line
    fixed = record("quotes_normalized", fixed, _SMART_SINGLE_QUOTES.sub("'", _SMART_DOUBLE_QUOTES.sub('"', fixed)))
    fixed = record("markup_stripped", fixed, _MARKUP_TAG.sub("", _LINE_BREAK_TAG.sub(" ", fixed)))

    def requote(segment: str) -> str:
        for pattern, replacement in _SINGLE_QUOTED_SHAPES:
            segment = pattern.sub(replacement, segment)
        return segment

    fixed = record("quotes_normalized", fixed, _map_code_segments(fixed, requote))
    if not is_group_open(stripped) and set(stripped) != {"-"}:
        fixed = record("arrows_normalized", fixed, _map_code_segments(fixed, lambda s: _ARROW_VARIANTS.sub("-->", s)))
    fixed = record("labels_quoted", fixed, _UNQUOTED_PIPE_LABEL.sub(r'\1|"\2"|', fixed))

    def quote_labels(segment: str) -> str:
        for pattern, replacement in _UNQUOTED_SHAPES:
            segment = pattern.sub(replacement, segment)
        return segment

    fixed = record("labels_quoted", fixed, _map_code_segments(fixed, quote_labels))
    fixed = record("trailing_comma_removed", fixed, _map_code_segments(fixed, lambda s: _TRAILING_COMMA.sub("", s)))
    for pattern, replacement in _DECLARATION_SPACING:
        fixed = record("declaration_spacing", fixed, pattern.sub(replacement, fixed))
    fixed = record("duplicate_declaration_collapsed", fixed, _DUPLICATE_DECLARATION.sub(r"\1\2", fixed))
    fixed = record("reserved_identifier_renamed", fixed, rename_reserved_identifiers(fixed, safe_end_name))
    return fixed


def _statement_ids(lines: List[str]) -> Set[str]:
    ids: Set[str] = set()
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("%%") or is_group_open(stripped) or is_closer(stripped):
            continue
        statement = scan_statement(line)
        if statement is not None and statement.kind != "reference":
            ids.update(endpoint.node_id for endpoint in statement.endpoints)
    return ids


def _closer_token(stripped: str) -> str:
    return stripped.rstrip(";").strip()


def _is_corrupted_closer(stripped: str, known_ids: Set[str]) -> bool:
    token = _closer_token(stripped)
    if token in known_ids:
        return False
    return token.lower() in CORRUPTED_CLOSERS or token in _CASE_VARIANT_CLOSERS


def _first_statement_index(lines: List[str]) -> Optional[int]:
    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped and not stripped.startswith("%%"):
            return index
    return None


def _ensure_directive(lines: List[str], default_direction: str, fixes: Set[str]) -> List[str]:
    first = _first_statement_index(lines)
    if first is not None:
        directive = DIRECTIVE_PATTERN.match(lines[first].strip())
        if directive:
            direction = directive_direction(directive, default_direction)
            canonical = f"{_indent_of(lines[first])}{directive.group('keyword')} {direction}"
            if (directive.group("direction") or "").upper() != direction or directive.group("direction") is None:
                lines[first] = canonical
                fixes.add("directive_direction_fixed")
            return lines

    direction = default_direction
    kept: List[str] = []
    for line in lines:
        directive = DIRECTIVE_PATTERN.match(line.strip())
        if directive:
            direction = directive_direction(directive, default_direction)
            fixes.add("misplaced_directive_removed")
            continue
        kept.append(line)
    fixes.add("directive_added")
    return [f"graph {direction}"] + kept


def _balance_groups(lines: List[str], fixes: Set[str]) -> List[str]:
    known_ids = _statement_ids(lines)

    outside_declared: Set[str] = set()
    depth = 0
    for line in lines:
        stripped = line.strip()
        if is_group_open(stripped):
            depth += 1
        elif depth and (is_closer(stripped) or _is_corrupted_closer(stripped, known_ids)):
            depth -= 1
        elif depth == 0:
            statement = scan_statement(line) if stripped and not stripped.startswith("%%") else None
            if statement is not None and statement.kind == "declaration":
                outside_declared.add(statement.endpoints[0].node_id)

    result: List[str] = []
    open_indents: List[str] = []
    for line in lines:
        stripped = line.strip()
        if is_group_open(stripped):
            open_indents.append(_indent_of(line))
            result.append(line)
            continue
        if is_closer(stripped):
            if open_indents:
                open_indents.pop()
                result.append(line)
            else:
                fixes.add("stray_closer_removed")
            continue
        if open_indents and _is_corrupted_closer(stripped, known_ids):
            open_indents.pop()
            result.append(f"{_indent_of(line)}{CLOSER_KEYWORD}")
            fixes.add("corrupted_closer_normalized")
            continue
        if open_indents and stripped and not stripped.startswith("%%"):
            statement = scan_statement(line)
            if statement is not None and statement.kind == "declaration":
                node_id = statement.endpoints[0].node_id
                if node_id in outside_declared:
                    result.append(f"{_indent_of(line)}{node_id}")
                    fixes.add("subgraph_redeclaration_reduced")
                    continue
        result.append(line)

    if open_indents:
        trailing: List[str] = []
        while result and not result[-1].strip():
            trailing.insert(0, result.pop())
        while open_indents:
            result.append(f"{open_indents.pop()}{CLOSER_KEYWORD}")
        result.extend(trailing)
        fixes.add("unclosed_subgraphs_closed")
    return result


def repair_mermaid_syntax(
    code: Optional[str],
    default_direction: str = DEFAULT_DIRECTION,
    safe_end_name: str = SAFE_END_NAME,
) -> Tuple[str, List[str]]:
    """Repair diagram text and report which kinds of fixes were applied.

    Args:
        code: Mermaid flowchart text, possibly malformed.
        default_direction: Direction used when the directive is missing or invalid.
        safe_end_name: Replacement identifier for nodes named ``end``.

    Returns:
        ``(fixed_code, fixes)`` where ``fixes`` lists fix kinds, sorted.
    """

    if not code or not code.strip():
        return f"graph {default_direction}\n{EMPTY_DIAGRAM_PLACEHOLDER}", ["empty_diagram"]

    fixes: Set[str] = set()
    lines = [_fix_line_text(line, safe_end_name, fixes) for line in code.split("\n")]
    lines = _ensure_directive(lines, default_direction, fixes)
    lines = _balance_groups(lines, fixes)

    for kind in sorted(fixes):
        logger.debug("Applied diagram fix: %s", kind)
    return "\n".join(lines), sorted(fixes)


def validate_mermaid_syntax(
    code: Optional[str],
    default_direction: str = DEFAULT_DIRECTION,
    safe_end_name: str = SAFE_END_NAME,
) -> str:
    """Return a syntactically consistent version of ``code``."""

    fixed, _ = repair_mermaid_syntax(code, default_direction=default_direction, safe_end_name=safe_end_name)
    return fixed


def auto_fix_mermaid_syntax(code: str, safe_end_name: str = SAFE_END_NAME) -> str:
    """Light pass for freshly generated text: smart quotes and ``endNode`` misuse."""

    def rename(segment: str) -> str:
        return _END_SHAPE_IDENTIFIER.sub(safe_end_name, _END_NODE_IDENTIFIER.sub(safe_end_name, segment))

    lines: List[str] = []
    for line in _SMART_DOUBLE_QUOTES.sub('"', code).split("\n"):
        if _END_NODE_CLOSER.match(line):
            lines.append(f"{_indent_of(line)}{CLOSER_KEYWORD}")
        else:
            lines.append(_map_code_segments(line, rename))
    return "\n".join(lines)


def prepare_generated_diagram(
    text: Optional[str],
    default_direction: str = DEFAULT_DIRECTION,
    safe_end_name: str = SAFE_END_NAME,
) -> str:
    """Extract a diagram from a model response and repair it."""

    code = auto_fix_mermaid_syntax(extract_mermaid_block(text), safe_end_name=safe_end_name)
    return validate_mermaid_syntax(code, default_direction=default_direction, safe_end_name=safe_end_name)
