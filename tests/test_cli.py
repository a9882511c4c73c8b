"""Tests for the command line entry points."""

import json
import sys

import pytest

import metrics_report
from cli import describe, edit


def _run(monkeypatch, module, argv):
    monkeypatch.setattr(sys, "argv", [module.__name__] + argv)
    module.main()


class TestEditCli:
    """cli.edit."""

    def test_set_label_prints_result(self, tmp_path, monkeypatch, capsys, sample_diagram):
        source = tmp_path / "flow.mmd"
        source.write_text(sample_diagram, encoding="utf-8")

        _run(monkeypatch, edit, ["--in", str(source), "set-label", "B", "Gather forms"])

        out = capsys.readouterr().out
        assert '    B["Gather forms (2 hours)"]' in out.split("\n")

    def test_add_row_writes_output_file(self, tmp_path, monkeypatch, sample_document):
        source = tmp_path / "doc.html"
        target = tmp_path / "out.html"
        source.write_text(sample_document, encoding="utf-8")

        _run(
            monkeypatch,
            edit,
            ["--in", str(source), "--out", str(target), "add-row", "0", "Step 3", "Archive", "--position", "prepend"],
        )

        assert "<td>Archive</td>" in target.read_text(encoding="utf-8")

    def test_edit_error_exits_nonzero(self, tmp_path, monkeypatch, capsys, sample_diagram):
        source = tmp_path / "flow.mmd"
        source.write_text(sample_diagram, encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            _run(monkeypatch, edit, ["--in", str(source), "remove-node", "Z"])

        assert excinfo.value.code == 1
        assert "Node Z not found in workflow" in capsys.readouterr().err


class TestDescribeCli:
    """cli.describe."""

    def test_mermaid_with_metrics(self, tmp_path, monkeypatch, capsys, sample_diagram):
        source = tmp_path / "flow.mmd"
        source.write_text(sample_diagram, encoding="utf-8")

        _run(monkeypatch, describe, ["--in", str(source), "--metrics"])

        result = json.loads(capsys.readouterr().out)
        assert result["direction"] == "TD"
        assert result["metrics"]["totalSteps"] == 2

    def test_html_detected_from_content(self, tmp_path, monkeypatch, capsys, sample_document):
        source = tmp_path / "document"
        source.write_text(sample_document, encoding="utf-8")

        _run(monkeypatch, describe, ["--in", str(source)])

        result = json.loads(capsys.readouterr().out)
        assert [section["title"] for section in result["sections"]] == ["Steps", "Roles"]

    def test_repair(self, tmp_path, monkeypatch, capsys):
        source = tmp_path / "flow.mmd"
        source.write_text("A -> B", encoding="utf-8")

        _run(monkeypatch, describe, ["--in", str(source), "--repair"])

        result = json.loads(capsys.readouterr().out)
        assert result["code"] == "graph TD\nA --> B"
        assert result["fixes"] == ["arrows_normalized", "directive_added"]


class TestMetricsReport:
    """metrics_report."""

    def test_build_report_with_document_and_optimized(self, tmp_path, sample_diagram, sample_document):
        diagram = tmp_path / "purchase.mmd"
        document = tmp_path / "purchase.html"
        optimized = tmp_path / "purchase.optimized.mmd"
        diagram.write_text(sample_diagram, encoding="utf-8")
        document.write_text(sample_document.replace("30 minutes", "1 hour"), encoding="utf-8")
        optimized.write_text('graph TD\n    B["Collect forms (1 hour)"]', encoding="utf-8")

        report = metrics_report.build_report(diagram, document, optimized)

        assert report["id"] == "purchase"
        assert report["merged"]["totalTimeMinutes"] == 180
        assert report["optimized"]["source"] == "optimized"
        assert report["savings"]["minutes"] == 120
        assert report["savings"]["percentageFormatted"] == "67%"

    def test_batch_report(self, tmp_path, sample_diagram, sample_document):
        samples = tmp_path / "samples"
        samples.mkdir()
        (samples / "purchase.mmd").write_text(sample_diagram, encoding="utf-8")
        (samples / "purchase.html").write_text(sample_document, encoding="utf-8")
        (samples / "empty.mmd").write_text("", encoding="utf-8")
        output = tmp_path / "reports"

        summary = metrics_report.batch_report(samples, output)

        assert summary["stats"] == {"total": 2, "success": 1, "failed": 0, "empty": 1}
        assert (output / "purchase.metrics.json").is_file()
        assert (output / "metrics_summary.json").is_file()
