from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def network_plan() -> dict[str, Any]:
    return json.loads((FIXTURES / "network_plan.json").read_text(encoding="utf-8"))
