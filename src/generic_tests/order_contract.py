from __future__ import annotations

import os
from contextlib import contextmanager
from contextvars import ContextVar, Token
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, TypeVar


T = TypeVar("T")

_ORDER_POLICY_ENV = "GENERIC_TESTS_ORDER_POLICY"
_ORDER_POLICY_CONTEXT: ContextVar["OrderPolicy | None"] = ContextVar(
    "generic_tests_order_policy",
    default=None,
)


class OrderPolicy(str, Enum):
    SORT = "sort"
    CHECK = "check"
    TRUST = "trust"
    ENFORCE = "enforce"


class OrderViolation(AssertionError):
    def __init__(self, source: str, previous: Any, current: Any) -> None:
        super().__init__(
            f"caller-ordered invariant violated in {source}: {previous!r} > {current!r}"
        )
        self.source = source


def ordered_or_sorted(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
    policy: OrderPolicy | str | None = None,
) -> list[T]:
    """Return deterministic order with configurable caller-order policy.

    - `OrderPolicy.SORT`: always apply sorting.
    - `OrderPolicy.CHECK`: validate caller order, then sort only on regression.
    - `OrderPolicy.TRUST`: trust caller order without validation or sorting.
    - `OrderPolicy.ENFORCE`: require caller-monotonic order, raise on regression.

    Policy resolution precedence: explicit `policy`, then the context policy
    (`order_policy(...)`), then `GENERIC_TESTS_ORDER_POLICY`, then `SORT`.
    """
    items = list(values)
    resolved = _resolve_policy(policy)
    if resolved is OrderPolicy.SORT:
        return sorted(items, key=key, reverse=reverse)
    if resolved is OrderPolicy.TRUST:
        return items
    violation = _first_order_violation(items, key=key, reverse=reverse)
    if violation is None:
        return items
    if resolved is OrderPolicy.CHECK:
        return sorted(items, key=key, reverse=reverse)
    raise OrderViolation(source, violation[0], violation[1])


def sort_once(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
) -> list[T]:
    """Sort at the single site that establishes a canonical order."""
    return ordered_or_sorted(
        values, source=source, key=key, reverse=reverse, policy=OrderPolicy.SORT
    )


def _resolve_policy(policy: OrderPolicy | str | None) -> OrderPolicy:
    if policy is not None:
        return _normalize_policy(policy)
    context_policy = _ORDER_POLICY_CONTEXT.get()
    if context_policy is not None:
        return context_policy
    raw = os.environ.get(_ORDER_POLICY_ENV, "").strip()
    if raw:
        return _normalize_policy(raw)
    return OrderPolicy.SORT


def _normalize_policy(policy: OrderPolicy | str) -> OrderPolicy:
    if isinstance(policy, OrderPolicy):
        return policy
    normalized = policy.strip().lower()
    for candidate in OrderPolicy:
        if candidate.value == normalized:
            return candidate
    raise ValueError(
        f"unknown order policy {policy!r}; "
        f"expected one of {[candidate.value for candidate in OrderPolicy]}"
    )


def set_order_policy(policy: OrderPolicy | str) -> Token[OrderPolicy | None]:
    return _ORDER_POLICY_CONTEXT.set(_normalize_policy(policy))


def reset_order_policy(token: Token[OrderPolicy | None]) -> None:
    _ORDER_POLICY_CONTEXT.reset(token)


@contextmanager
def order_policy(policy: OrderPolicy | str) -> Iterator[None]:
    token = set_order_policy(policy)
    try:
        yield
    finally:
        reset_order_policy(token)


def _first_order_violation(
    values: list[T],
    *,
    key: Callable[[T], Any] | None,
    reverse: bool,
) -> tuple[Any, Any] | None:
    previous: Any = None
    for index, value in enumerate(values):
        marker = key(value) if key is not None else value
        if index:
            out_of_order = previous < marker if reverse else previous > marker
            if out_of_order:
                return previous, marker
        previous = marker
    return None
