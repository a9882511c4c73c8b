"""Shared sample sources for the test suite."""

import pytest

SAMPLE_DIAGRAM = "\n".join(
    [
        "graph TD",
        '    A(["Start"])',
        '    B["Collect forms (2 hours)"]',
        '    C{"Complete?"}',
        '    D["Review application (30 minutes)"]',
        '    E(["Finish"])',
        "    A --> B",
        "    B --> C",
        '    C -->|"Yes"| D',
        '    C -->|"No"| B',
        "    D --> E",
    ]
)

GROUPED_DIAGRAM = "\n".join(
    [
        "graph TD",
        '    A["Submit request (1 day)"]',
        '    subgraph "Finance"',
        '        B["Approve budget (2-3 days)"]',
        '        C["Issue PO"]',
        "    end",
        '    subgraph "Ops"',
        "        D",
        "    end",
        "    A --> B",
        "    B --> C",
        "    C --> D",
    ]
)

SAMPLE_DOCUMENT = """<h1>Purchase Process</h1>
<p>This document describes purchasing.</p>
<h2>Steps</h2>
<table>
  <tr><th colspan="3">Procedure</th></tr>
  <tr><th>Step</th><th>Activity</th><th>Time</th></tr>
  <tr><td>Step 1</td><td>Collect forms</td><td>2 hours</td></tr>
  <tr><td>Step 2</td><td>Review <b>application</b></td><td>30 minutes</td></tr>
</table>
<table>
  <caption>Roles</caption>
  <tr><td>Clerk</td><td>Collects forms</td></tr>
</table>
<table></table>
<ul><li>Keep receipts</li><li>File copies</li></ul>
"""


def assert_groups_balanced(code: str) -> None:
    depth = 0
    for line in code.split("\n"):
        stripped = line.strip()
        if stripped.startswith("subgraph"):
            depth += 1
        elif stripped.rstrip(";").strip() == "end":
            assert depth > 0, f"closer without an open subgraph in:\n{code}"
            depth -= 1
    assert depth == 0, f"unclosed subgraph in:\n{code}"


@pytest.fixture
def sample_diagram() -> str:
    return SAMPLE_DIAGRAM


@pytest.fixture
def grouped_diagram() -> str:
    return GROUPED_DIAGRAM


@pytest.fixture
def sample_document() -> str:
    return SAMPLE_DOCUMENT
