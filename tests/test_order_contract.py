from __future__ import annotations

import pytest

from generic_tests.order_contract import (
    OrderPolicy,
    OrderViolation,
    order_policy,
    ordered_or_sorted,
    sort_once,
)


def test_sort_once_always_sorts() -> None:
    with order_policy(OrderPolicy.TRUST):
        assert sort_once([3, 1, 2], source="test") == [1, 2, 3]


def test_check_policy_sorts_only_on_regression() -> None:
    values = [1, 2, 3]
    assert ordered_or_sorted(values, source="test", policy="check") == values
    assert ordered_or_sorted([2, 1], source="test", policy="check") == [1, 2]


def test_trust_policy_keeps_caller_order() -> None:
    assert ordered_or_sorted([2, 1], source="test", policy=OrderPolicy.TRUST) == [2, 1]


def test_enforce_policy_raises_with_source() -> None:
    with pytest.raises(OrderViolation) as excinfo:
        ordered_or_sorted(
            ["b", "a"], source="carriers", key=str.upper, policy=OrderPolicy.ENFORCE
        )
    assert excinfo.value.source == "carriers"
    assert "'B' > 'A'" in str(excinfo.value)


def test_reverse_order_is_respected() -> None:
    assert ordered_or_sorted([3, 2, 1], source="test", reverse=True, policy="enforce") == [
        3,
        2,
        1,
    ]


def test_context_policy_overrides_environment(monkeypatch) -> None:
    monkeypatch.setenv("GENERIC_TESTS_ORDER_POLICY", "trust")
    with order_policy("sort"):
        assert ordered_or_sorted([2, 1], source="test") == [1, 2]


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        ordered_or_sorted([1], source="test", policy="shuffle")
