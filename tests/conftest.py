from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from tagged_union.internals.report import Reporter
from tests.helpers import MESSAGE_SRC, analyze_source


@pytest.fixture
def message_src() -> str:
    return MESSAGE_SRC


@pytest.fixture
def message_bundle():
    return analyze_source(MESSAGE_SRC, "Message")


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(source="", filename="test.rs")
