import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


SCENARIO_B = """\
## A
<!-- USER -->
X
## B
<!-- ASSISTANT -->
Y
"""


@pytest.fixture
def scenario_b():
    return SCENARIO_B


@pytest.fixture
def content_dir(tmp_path):
    day_one = tmp_path / "2024-05-01"
    day_two = tmp_path / "2024-05-02"
    day_one.mkdir()
    day_two.mkdir()
    (day_one / "alpha.md").write_text(
        "# Alpha Chat\n\n## Setup\n<!-- USER -->\nhello\n<!-- ASSISTANT -->\nhi\n",
        encoding="utf-8",
    )
    (day_one / "beta.md").write_text(
        "## Only Section\n<!-- USER -->\nno title here\n",
        encoding="utf-8",
    )
    (day_two / "gamma.md").write_text(
        "# Gamma\n### Deep Dive\n<!-- ASSISTANT -->\n**bold** answer\n",
        encoding="utf-8",
    )
    return tmp_path
