"""Diagnostics and error aggregation for test instantiation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator

if TYPE_CHECKING:
    from generic_tests.syntax.model import Span


@dataclass(frozen=True)
class Diagnostic:
    message: str
    span: Span | None = None

    def render(self, origin: str = "") -> str:
        location = origin
        if self.span is not None:
            location = f"{origin}:{self.span}" if origin else str(self.span)
        if location:
            return f"{location}: error: {self.message}"
        return f"error: {self.message}"


class GenericTestsError(Exception):
    """Raised when a processing unit fails.

    Carries every diagnostic collected during the pass, in the order they
    were recorded.
    """

    def __init__(self, diagnostics: Iterable[Diagnostic]):
        self.diagnostics: tuple[Diagnostic, ...] = tuple(diagnostics)
        if not self.diagnostics:
            raise ValueError("GenericTestsError requires at least one diagnostic")
        super().__init__("; ".join(d.message for d in self.diagnostics))

    @classmethod
    def single(cls, message: str, span: Span | None = None) -> "GenericTestsError":
        return cls([Diagnostic(message, span)])


class SyntaxProblem(ValueError):
    """Malformed Rust syntax in a type expression or attribute argument."""

    def __init__(self, message: str, text: str, offset: int):
        super().__init__(f"{message} at offset {offset} in `{text}`")
        self.reason = message
        self.text = text
        self.offset = offset


@dataclass
class ErrorRecord:
    """Accumulates independent diagnostics; nothing recorded is ever dropped."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    def add(self, message: str, span: Span | None = None) -> None:
        self.diagnostics.append(Diagnostic(message, span))

    def add_error(self, error: GenericTestsError) -> None:
        self.diagnostics.extend(error.diagnostics)

    def combine(self, other: "ErrorRecord") -> None:
        self.diagnostics.extend(other.diagnostics)

    def __bool__(self) -> bool:
        return bool(self.diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    def check(self) -> None:
        if self.diagnostics:
            raise GenericTestsError(self.diagnostics)
