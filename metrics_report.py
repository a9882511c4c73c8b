#!/usr/bin/env python3
"""
Process metrics report.

Computes step/time metrics for a workflow diagram, optionally merges them
with the metrics of the matching process document, and compares against an
optimized diagram to report time savings.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from metrics import (
    calculate_time_savings,
    extract_metrics_from_document,
    extract_metrics_from_workflow,
    merge_metrics,
)

DIAGRAM_SUFFIXES = ['.mmd', '.mermaid', '.txt']
DOCUMENT_SUFFIXES = ['.html', '.htm']

logger = logging.getLogger("metrics_report")


def find_companion(diagram_path: Path, suffixes) -> Optional[Path]:
    """Return the file next to ``diagram_path`` with the same stem and one of ``suffixes``."""
    for suffix in suffixes:
        candidate = diagram_path.with_suffix(suffix)
        if candidate.is_file():
            return candidate
    return None


def build_report(
    diagram_path: Path,
    document_path: Optional[Path] = None,
    optimized_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Build the metrics report for one diagram.

    Args:
        diagram_path: Mermaid workflow diagram
        document_path: Matching HTML process document, if any
        optimized_path: Optimized Mermaid diagram to compare against, if any

    Returns:
        Report dictionary with workflow, document, merged and savings entries
    """
    workflow = extract_metrics_from_workflow(diagram_path.read_text(encoding='utf-8'))
    report: Dict[str, Any] = {"id": diagram_path.stem, "workflow": workflow.to_dict()}
    baseline = workflow

    if document_path:
        document = extract_metrics_from_document(document_path.read_text(encoding='utf-8'))
        baseline = merge_metrics(workflow, document)
        report["document"] = document.to_dict()
        report["merged"] = baseline.to_dict()

    if optimized_path:
        optimized = extract_metrics_from_workflow(optimized_path.read_text(encoding='utf-8'))
        optimized.source = "optimized"
        report["optimized"] = optimized.to_dict()
        report["savings"] = calculate_time_savings(baseline, optimized).to_dict()

    return report


def batch_report(input_dir: Path, output_dir: Path) -> Dict[str, Any]:
    """
    Build reports for every diagram in a directory.

    A diagram ``X.mmd`` is paired with ``X.html`` when present and with
    ``X.optimized.mmd`` as its optimized version.

    Returns:
        Summary statistics
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    diagrams = sorted(
        path for path in input_dir.iterdir()
        if path.suffix.lower() in DIAGRAM_SUFFIXES and not path.stem.endswith('.optimized')
    )
    if not diagrams:
        print(f"No diagram files found in {input_dir}")
        return {"stats": {"total": 0, "success": 0, "failed": 0, "empty": 0}, "results": []}

    stats = {"total": 0, "success": 0, "failed": 0, "empty": 0}
    results = []

    print(f"Found {len(diagrams)} diagram files")
    print("=" * 70)

    for diagram in diagrams:
        stats["total"] += 1
        print(f"\n[{stats['total']}] Processing: {diagram.stem}")

        try:
            document = find_companion(diagram, DOCUMENT_SUFFIXES)
            optimized = diagram.with_name(f"{diagram.stem}.optimized{diagram.suffix}")
            report = build_report(diagram, document, optimized if optimized.is_file() else None)

            (output_dir / f"{diagram.stem}.metrics.json").write_text(
                json.dumps(report, ensure_ascii=False, indent=2), encoding='utf-8'
            )

            final = report.get("merged") or report["workflow"]
            if final["totalSteps"] == 0:
                status = "⊘ Empty"
                stats["empty"] += 1
            else:
                status = "✓ Success"
                stats["success"] += 1

            print(f"  Steps: {final['totalSteps']}, Time: {final['totalTime']}")
            if document:
                print(f"  Document: {document.name}")
            if "savings" in report:
                savings = report["savings"]
                print(f"  Saved: {savings['formatted']} ({savings['percentageFormatted']})")
            print(f"  {status}")

            results.append({
                "id": diagram.stem,
                "steps": final["totalSteps"],
                "time": final["totalTime"],
                "minutes": final["totalTimeMinutes"],
                "document": bool(document),
            })

        except (OSError, UnicodeDecodeError) as e:
            logger.exception("Failed to build report for %s", diagram)
            print(f"  ✗ Failed: {e}")
            stats["failed"] += 1

    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Total: {stats['total']}, Success: {stats['success']}, Failed: {stats['failed']}, Empty: {stats['empty']}")

    summary = {"stats": stats, "results": results}
    summary_file = output_dir / "metrics_summary.json"
    summary_file.write_text(json.dumps(summary, ensure_ascii=False, indent=2), encoding='utf-8')

    print(f"\nOutput: {output_dir}")
    print(f"Summary: {summary_file}")

    return summary


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Compute process metrics for workflow diagrams',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Metrics for one diagram
  python metrics_report.py process.mmd

  # Merge with the process document and compare with an optimized diagram
  python metrics_report.py process.mmd --document process.html --optimized optimized.mmd

  # Batch mode
  python metrics_report.py --batch samples/ -o reports/
        '''
    )

    parser.add_argument('input', type=Path, help='Input diagram or directory')
    parser.add_argument('-o', '--output', type=Path, help='Output file or directory')
    parser.add_argument('-d', '--document', type=Path, help='HTML process document to merge')
    parser.add_argument('--optimized', type=Path, help='Optimized diagram to compare against')
    parser.add_argument('-b', '--batch', action='store_true',
                        help='Report on every diagram in the input directory')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.batch:
            if not args.input.is_dir():
                print(f"Error: {args.input} is not a directory")
                sys.exit(1)
            batch_report(args.input, args.output or (PROJECT_ROOT / "output"))
        else:
            if not args.input.is_file():
                print(f"Error: {args.input} is not a file")
                sys.exit(1)

            report = build_report(args.input, args.document, args.optimized)
            text = json.dumps(report, ensure_ascii=False, indent=2)
            if args.output:
                args.output.write_text(text, encoding='utf-8')
                final = report.get("merged") or report["workflow"]
                print(f"\n✓ Report for {args.input}")
                print(f"  Steps: {final['totalSteps']}")
                print(f"  Time: {final['totalTime']}")
                print(f"  Output: {args.output}")
            else:
                print(text)

    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
