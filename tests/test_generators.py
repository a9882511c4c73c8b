"""Unit tests for the Mermaid generator."""

import pytest

from generators import generate_mermaid, render_connection, render_node_declaration
from parsers import parse_mermaid_diagram
from parsers.utils import NODE_DECISION, NODE_PROCESS, NODE_START_END


class TestRenderers:
    """Single-statement renderers."""

    @pytest.mark.parametrize(
        "args, expected",
        [
            (("A", "Review", NODE_PROCESS, "2 hours"), 'A["Review (2 hours)"]'),
            (("Q", "Ok?", NODE_DECISION), 'Q{"Ok?"}'),
            (("S", "Start", NODE_START_END), 'S(["Start"])'),
            (("B", 'Say "hi"'), "B[\"Say 'hi'\"]"),
            (("C", "Wait", NODE_PROCESS, "(1 day)"), 'C["Wait (1 day)"]'),
        ],
    )
    def test_render_node_declaration(self, args, expected):
        assert render_node_declaration(*args) == expected

    def test_render_connection(self):
        assert render_connection("A", "B", "Yes") == 'A -->|"Yes"| B'
        assert render_connection("A", "B") == "A --> B"
        assert render_connection("A", "B", "  ") == "A --> B"

    def test_render_connection_replaces_pipe_in_label(self):
        assert render_connection("A", "B", "yes|no") == 'A -->|"yes/no"| B'


class TestGenerateMermaid:
    """generate_mermaid."""

    def test_grouped_diagram(self, grouped_diagram):
        result = generate_mermaid(parse_mermaid_diagram(grouped_diagram))

        assert result == "\n".join(
            [
                "graph TD",
                '    A["Submit request (1 day)"]',
                '    subgraph "Finance"',
                '        B["Approve budget (2-3 days)"]',
                '        C["Issue PO"]',
                "    end",
                '    subgraph "Ops"',
                '        D["D"]',
                "    end",
                "    A --> B",
                "    B --> C",
                "    C --> D",
                "",
            ]
        )

    def test_output_parses_back_to_the_same_graph(self, sample_diagram):
        original = parse_mermaid_diagram(sample_diagram)

        regenerated = parse_mermaid_diagram(generate_mermaid(original))

        assert {n: (v.kind, v.label, v.time_estimate) for n, v in regenerated.nodes.items()} == {
            n: (v.kind, v.label, v.time_estimate) for n, v in original.nodes.items()
        }
        assert [(c.from_id, c.to_id, c.label) for c in regenerated.connections] == [
            (c.from_id, c.to_id, c.label) for c in original.connections
        ]

    def test_empty_model(self):
        assert generate_mermaid(parse_mermaid_diagram("")) == "graph TD\n"
