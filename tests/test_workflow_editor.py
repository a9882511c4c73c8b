"""Unit tests for editors.workflow_editor."""

import logging
import string

import pytest

from editors import (
    ConnectionNotFoundError,
    DiagramEditError,
    DuplicateNodeError,
    InvalidNodeIdError,
    NodeCountError,
    NodeNotFoundError,
    add_connection,
    add_node,
    remove_connection,
    remove_node,
    update_connection_label,
    update_node_label,
    update_node_time_estimate,
)
from editors.workflow_editor import next_node_id
from parsers import parse_mermaid_diagram
from parsers.utils import NODE_DECISION, DiagramModel, DiagramNode


def _changed_lines(before: str, after: str):
    old, new = before.split("\n"), after.split("\n")
    assert len(old) == len(new)
    return [index for index, (a, b) in enumerate(zip(old, new)) if a != b]


class TestNodeLabels:
    """Label and time-estimate updates."""

    def test_label_update_touches_one_line(self, sample_diagram):
        result = update_node_label(sample_diagram, "B", "Gather forms")

        assert _changed_lines(sample_diagram, result) == [2]
        assert result.split("\n")[2] == '    B["Gather forms (2 hours)"]'

    def test_label_update_keeps_suffix_spacing(self):
        result = update_node_label('graph TD\n    A["Plan  (1 day)"]', "A", "Draft")

        assert result == 'graph TD\n    A["Draft  (1 day)"]'

    def test_label_is_sanitised(self, sample_diagram):
        result = update_node_label(sample_diagram, "B", 'Say "hi"\n now')

        assert result.split("\n")[2] == "    B[\"Say 'hi' now (2 hours)\"]"

    @pytest.mark.parametrize(
        "node_id, estimate, expected",
        [
            ("B", "3 hours", '    B["Collect forms (3 hours)"]'),
            ("B", "(45 min)", '    B["Collect forms (45 min)"]'),
            ("C", "5 minutes", '    C{"Complete? (5 minutes)"}'),
            ("D", "", '    D["Review application"]'),
        ],
    )
    def test_time_estimate(self, sample_diagram, node_id, estimate, expected):
        result = update_node_time_estimate(sample_diagram, node_id, estimate)

        line = int(ord(node_id) - ord("A")) + 1
        assert _changed_lines(sample_diagram, result) == [line]
        assert result.split("\n")[line] == expected

    def test_time_only_label(self):
        source = 'graph TD\n    A["(2h)"]'

        assert update_node_time_estimate(source, "A", "3h") == 'graph TD\n    A["(3h)"]'
        assert update_node_time_estimate(source, "A", "") == 'graph TD\n    A["A"]'

    def test_implicit_node_is_materialised(self):
        result = update_node_time_estimate("graph TD\nA-->B", "B", "10 min")

        assert result == 'graph TD\nB["B (10 min)"]\nA-->B'
        node = parse_mermaid_diagram(result).nodes["B"]
        assert node.time_estimate == "10 min"
        assert not node.is_implicit

    def test_bare_reference_becomes_declaration(self, grouped_diagram):
        result = update_node_label(grouped_diagram, "D", "Dispatch goods")

        assert _changed_lines(grouped_diagram, result) == [7]
        assert result.split("\n")[7] == '        D["Dispatch goods"]'
        assert parse_mermaid_diagram(result).nodes["D"].groups == ["Ops"]

    def test_unknown_node(self, sample_diagram):
        with pytest.raises(NodeNotFoundError, match="Node Z not found in workflow"):
            update_node_label(sample_diagram, "Z", "Anything")


class TestConnectionLabels:
    """update_connection_label."""

    @pytest.mark.parametrize(
        "from_id, to_id, label, line, expected",
        [
            ("C", "D", "Approved", 8, '    C -->|"Approved"| D'),
            ("A", "B", "Start now", 6, '    A -->|"Start now"| B'),
            ("C", "D", "", 8, "    C --> D"),
        ],
    )
    def test_label_forms(self, sample_diagram, from_id, to_id, label, line, expected):
        result = update_connection_label(sample_diagram, from_id, to_id, label)

        assert _changed_lines(sample_diagram, result) == [line]
        assert result.split("\n")[line] == expected

    def test_missing_connection(self, sample_diagram):
        with pytest.raises(ConnectionNotFoundError):
            update_connection_label(sample_diagram, "A", "E", "Skip")

    def test_pipe_in_label_keeps_the_edge(self, sample_diagram):
        result = update_connection_label(sample_diagram, "A", "B", "yes|no")

        assert result.split("\n")[6] == '    A -->|"yes/no"| B'
        model = parse_mermaid_diagram(result)
        assert [conn.label for conn in model.find_connections("A", "B")] == ["yes/no"]
        assert "no" not in model.nodes


class TestAddNode:
    """add_node."""

    def test_adds_declaration_and_edges(self, sample_diagram):
        result = add_node(
            sample_diagram,
            "Archive",
            time_estimate="15 minutes",
            connect_from="D",
            connect_to="E",
            connection_label="Done",
        )

        lines = result.split("\n")
        assert lines[6:9] == [
            '    F["Archive (15 minutes)"]',
            '    D -->|"Done"| F',
            "    F --> E",
        ]
        model = parse_mermaid_diagram(result)
        assert model.nodes["F"].time_estimate == "15 minutes"
        assert model.find_connections("D", "F")[0].label == "Done"

    def test_decision_kind(self, sample_diagram):
        result = add_node(sample_diagram, "Urgent?", kind=NODE_DECISION, node_id="Q1")

        assert parse_mermaid_diagram(result).nodes["Q1"].kind == NODE_DECISION

    def test_reserved_id_gets_suffix(self, sample_diagram):
        result = add_node(sample_diagram, "Wrap up", node_id="end")

        assert '    endNode["Wrap up"]' in result.split("\n")
        assert "endNode" in parse_mermaid_diagram(result).nodes

    def test_duplicate_id(self, sample_diagram):
        with pytest.raises(DuplicateNodeError):
            add_node(sample_diagram, "Again", node_id="B")

    def test_invalid_id(self, sample_diagram):
        with pytest.raises(InvalidNodeIdError):
            add_node(sample_diagram, "Spaced", node_id="bad id")

    def test_unknown_kind(self, sample_diagram):
        with pytest.raises(DiagramEditError, match="Unsupported node kind"):
            add_node(sample_diagram, "Round", kind="circle")

    def test_unknown_endpoint(self, sample_diagram):
        with pytest.raises(NodeNotFoundError):
            add_node(sample_diagram, "Orphan", connect_from="Q")

    def test_next_node_id_after_alphabet(self):
        model = DiagramModel(nodes={letter: DiagramNode(letter) for letter in string.ascii_uppercase})

        assert next_node_id(model) == "N1"
        model.nodes["N1"] = DiagramNode("N1")
        assert next_node_id(model) == "N2"


class TestRemoveNode:
    """remove_node."""

    def test_removes_declaration_and_edges(self, sample_diagram):
        result = remove_node(sample_diagram, "D")

        assert result == "\n".join(
            [
                "graph TD",
                '    A(["Start"])',
                '    B["Collect forms (2 hours)"]',
                '    C{"Complete?"}',
                '    E(["Finish"])',
                "    A --> B",
                "    B --> C",
                '    C -->|"No"| B',
            ]
        )

    def test_node_count_floor(self):
        with pytest.raises(NodeCountError):
            remove_node("graph TD\n    A --> B", "A")

    def test_unknown_node(self, sample_diagram):
        with pytest.raises(NodeNotFoundError):
            remove_node(sample_diagram, "Z")

    def test_chain_keeps_inline_declarations(self):
        result = remove_node('graph TD\n    A["Draft"] --> B["Review"] --> C["Send"]', "B")

        assert result == 'graph TD\n    A["Draft"]\n    C["Send"]'

    def test_chain_keeps_surviving_run(self):
        result = remove_node("graph TD\n    A --> B --> C --> D", "D")

        assert result == "graph TD\n    A --> B --> C"

    def test_removing_end_keeps_group_closer(self):
        code = "\n".join(
            [
                "graph TD",
                '    A["Start"] --> end',
                '    B["Other"] --> end',
                "    subgraph S",
                "        B",
                "    end",
            ]
        )

        result = remove_node(code, "end")

        assert result == 'graph TD\n    A["Start"]\n    B["Other"]\n    subgraph S\n        B\n    end'


class TestConnections:
    """add_connection and remove_connection."""

    def test_remove_pipe_labelled_edge(self, sample_diagram):
        result = remove_connection(sample_diagram, "C", "D")

        lines = sample_diagram.split("\n")
        del lines[8]
        assert result == "\n".join(lines)

    def test_remove_text_labelled_edge_keeps_endpoint(self):
        result = remove_connection("graph TD\n    A -- maybe --> B\n    B --> C", "A", "B")

        assert result == "graph TD\n    A\n    B --> C"

    def test_remove_keeps_inline_declarations(self):
        result = remove_connection('graph TD\n    A["Draft"] --> B["Review"]', "A", "B")

        assert result == 'graph TD\n    A["Draft"]\n    B["Review"]'

    def test_remove_missing_edge_warns(self, sample_diagram, caplog):
        with caplog.at_level(logging.WARNING, logger="editors.workflow_editor"):
            result = remove_connection(sample_diagram, "A", "E")

        assert result == sample_diagram
        assert "No connection from A to E to remove" in caplog.text

    def test_add_after_last_edge(self, sample_diagram):
        result = add_connection(sample_diagram, "B", "E", "Skip")

        assert result == sample_diagram + '\n    B -->|"Skip"| E'

    def test_add_with_pipe_in_label(self, sample_diagram):
        result = add_connection(sample_diagram, "B", "A", "a|b")

        assert result == sample_diagram + '\n    B -->|"a/b"| A'
        assert [conn.label for conn in parse_mermaid_diagram(result).find_connections("B", "A")] == ["a/b"]

    def test_add_to_unknown_node(self, sample_diagram):
        with pytest.raises(NodeNotFoundError):
            add_connection(sample_diagram, "A", "Z")
