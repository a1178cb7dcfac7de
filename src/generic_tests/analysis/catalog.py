from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from generic_tests.analysis.signature import InputSignature, ReturnSignature
from generic_tests.order_contract import ordered_or_sorted
from generic_tests.syntax.model import (
    AngleArguments,
    Lifetime,
    PathSegment,
    VerbatimItem,
)
from generic_tests.syntax.printer import INDENT, render_type

CALL_SIGS_MODULE = "_generic_tests_call_sigs"
ARGS_CARRIER_PREFIX = "_generic_tests_args_"
RETURN_CARRIER_PREFIX = "_generic_tests_ret_"


@dataclass(frozen=True)
class CarrierHandle:
    ident: str
    lifetimes: tuple[Lifetime, ...] = ()
    ordinal: int = field(default=0, compare=False)

    def lifetime_generics(self) -> str:
        if not self.lifetimes:
            return ""
        return "<" + ", ".join(str(lifetime) for lifetime in self.lifetimes) + ">"

    def path_segment(self) -> PathSegment:
        if not self.lifetimes:
            return PathSegment(self.ident)
        return PathSegment(self.ident, AngleArguments(self.lifetimes))


Descriptor = Union[InputSignature, ReturnSignature]


@dataclass
class _CarrierTable:
    prefix: str
    entries: dict[Descriptor, CarrierHandle] = field(default_factory=dict)

    def intern(self, descriptor: Descriptor) -> CarrierHandle:
        handle = self.entries.get(descriptor)
        if handle is None:
            handle = CarrierHandle(
                f"{self.prefix}{len(self.entries)}", descriptor.lifetimes, len(self.entries)
            )
            self.entries[descriptor] = handle
        return handle


def _by_ordinal(table: _CarrierTable, *, source: str) -> list:
    return ordered_or_sorted(
        [(handle, descriptor) for descriptor, handle in table.entries.items()],
        source=source,
        key=lambda entry: entry[0].ordinal,
    )


class SignatureCatalog:
    """One carrier declaration per distinct signature shape in a unit.

    Handles are numbered in first-registration order and enumerated in
    that order.
    """

    def __init__(self) -> None:
        self._inputs = _CarrierTable(ARGS_CARRIER_PREFIX)
        self._returns = _CarrierTable(RETURN_CARRIER_PREFIX)

    def intern_inputs(self, signature: InputSignature) -> CarrierHandle:
        return self._inputs.intern(signature)

    def intern_return(self, signature: ReturnSignature) -> CarrierHandle:
        return self._returns.intern(signature)

    def input_carriers(self) -> list[tuple[CarrierHandle, InputSignature]]:
        return _by_ordinal(self._inputs, source="SignatureCatalog.input_carriers")

    def return_carriers(self) -> list[tuple[CarrierHandle, ReturnSignature]]:
        return _by_ordinal(self._returns, source="SignatureCatalog.return_carriers")

    def __len__(self) -> int:
        return len(self._inputs.entries) + len(self._returns.entries)

    def declarations(self) -> list[VerbatimItem]:
        items = [
            VerbatimItem(render_args_carrier(handle, sig))
            for handle, sig in self.input_carriers()
        ]
        items.extend(
            VerbatimItem(render_return_carrier(handle, sig))
            for handle, sig in self.return_carriers()
        )
        return items


def render_args_carrier(handle: CarrierHandle, signature: InputSignature) -> str:
    lines = [f"pub(super) struct {handle.ident}{handle.lifetime_generics()} {{"]
    lines.extend(
        f"{INDENT}pub {arg.ident}: {render_type(arg.ty)}," for arg in signature.args
    )
    lines.append("}")
    return "\n".join(lines)


def render_return_carrier(handle: CarrierHandle, signature: ReturnSignature) -> str:
    return (
        f"pub(super) type {handle.ident}{handle.lifetime_generics()} = "
        f"{render_type(signature.ty)};"
    )
