"""CLI entry point for dumping a parsed diagram or document as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from editors import repair_mermaid_syntax
from generators import generate_mermaid
from metrics import extract_metrics_from_document, extract_metrics_from_workflow
from parsers import parse_document, parse_mermaid_diagram

DescribeFn = Callable[[str], Dict[str, object]]

SUFFIX_TO_FORMAT = {
    ".mmd": "mermaid",
    ".mermaid": "mermaid",
    ".txt": "mermaid",
    ".html": "html",
    ".htm": "html",
}


def describe_mermaid(code: str) -> Dict[str, object]:
    return parse_mermaid_diagram(code).to_dict()


def describe_html(html: str) -> Dict[str, object]:
    return parse_document(html).to_dict()


FORMAT_TO_DESCRIBER: Dict[str, DescribeFn] = {
    "mermaid": describe_mermaid,
    "html": describe_html,
}


def detect_format(text: str, path: Path) -> str:
    fmt = SUFFIX_TO_FORMAT.get(path.suffix.lower())
    if fmt:
        return fmt
    return "html" if text.lstrip().startswith("<") else "mermaid"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Describe a process diagram or document as JSON.")
    parser.add_argument("--in", dest="input_path", required=True, help="Path to the diagram or HTML file")
    parser.add_argument(
        "--fmt",
        dest="format",
        default=None,
        choices=sorted(FORMAT_TO_DESCRIBER),
        help="Input format (detected from the file when omitted)",
    )
    parser.add_argument("--metrics", action="store_true", help="Include derived process metrics")
    parser.add_argument(
        "--repair",
        action="store_true",
        help="Mermaid only: print the repaired diagram and the fixes applied",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Mermaid only: print the diagram regenerated in canonical form",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    input_path = Path(args.input_path)
    text = input_path.read_text(encoding="utf-8")
    fmt = args.format or detect_format(text, input_path)

    if fmt == "mermaid" and args.repair:
        fixed, fixes = repair_mermaid_syntax(text)
        print(json.dumps({"code": fixed, "fixes": fixes}, ensure_ascii=False, indent=2))
        return
    if fmt == "mermaid" and args.render:
        print(generate_mermaid(parse_mermaid_diagram(text)), end="")
        return

    result = FORMAT_TO_DESCRIBER[fmt](text)
    if args.metrics:
        extractor = extract_metrics_from_workflow if fmt == "mermaid" else extract_metrics_from_document
        result["metrics"] = extractor(text).to_dict()
    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
