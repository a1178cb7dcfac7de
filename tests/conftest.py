from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from generic_tests.order_contract import OrderPolicy, order_policy


@pytest.fixture(autouse=True)
def _strict_order_policy():
    # Canonical sort sites still sort; caller-ordered sites raise on regression.
    with order_policy(OrderPolicy.ENFORCE):
        yield
