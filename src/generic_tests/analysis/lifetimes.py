"""Lifetime resolution for test function signatures.

A signature's lifetimes become the generic parameters of its carrier, so
every elided or placeholder lifetime has to be given a name first.  The
resolver walks a type in one of four modes:

- ``INPUT``: elided reference lifetimes and ``'_`` get fresh synthetic names;
- ``OUTPUT(L)``: elided reference lifetimes and ``'_`` become ``L``;
- ``FAIL``: any elided or placeholder lifetime is an ambiguity error;
- ``DISABLED``: nothing is minted or substituted.

Named lifetimes other than ``'static`` are recorded in every mode unless a
``for<...>`` binder in scope declares them.  Function pointer types and
``Fn(..)`` sugar form their own inference context and are walked with the
resolver disabled.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Collection, Iterator, Optional

from generic_tests.exceptions import ErrorRecord
from generic_tests.order_contract import sort_once
from generic_tests.syntax.model import (
    AngleArguments,
    ArrayType,
    AssocBinding,
    BareFnArg,
    BareFnType,
    BoundLifetimes,
    ConstArg,
    GenericArgument,
    ImplTraitType,
    Lifetime,
    LifetimeBound,
    ParenthesizedArguments,
    ParenType,
    PathSegment,
    PathType,
    PointerType,
    QualifiedPathType,
    ReferenceType,
    SliceType,
    Span,
    TraitBound,
    TraitObjectType,
    TupleType,
    Type,
    TypeParamBound,
    TypePath,
)

SYNTHETIC_LIFETIME_PREFIX = "_generic_tests_"


class ModeKind(StrEnum):
    INPUT = "input"
    OUTPUT = "output"
    FAIL = "fail"
    DISABLED = "disabled"


@dataclass(frozen=True)
class SubstMode:
    kind: ModeKind
    lifetime: Optional[Lifetime] = None

    @classmethod
    def output(cls, lifetime: Lifetime) -> "SubstMode":
        return cls(ModeKind.OUTPUT, lifetime)


INPUT = SubstMode(ModeKind.INPUT)
FAIL = SubstMode(ModeKind.FAIL)
DISABLED = SubstMode(ModeKind.DISABLED)


def return_mode(input_lifetimes: Collection[Lifetime]) -> SubstMode:
    """OUTPUT with the only input lifetime, FAIL when there are none or several."""
    if len(input_lifetimes) == 1:
        return SubstMode.output(next(iter(input_lifetimes)))
    return FAIL


def sorted_lifetimes(lifetimes: Collection[Lifetime]) -> tuple[Lifetime, ...]:
    return tuple(sort_once(lifetimes, source="lifetimes.sorted_lifetimes"))


def is_reserved(lifetime: Lifetime) -> bool:
    return lifetime.name.startswith(SYNTHETIC_LIFETIME_PREFIX)


class LifetimeResolver:
    def __init__(self, mode: SubstMode, span: Span | None = None) -> None:
        self.mode = mode
        self.span = span
        self.lifetimes: set[Lifetime] = set()
        self.bound_lifetimes: frozenset[Lifetime] = frozenset()
        self.errors = ErrorRecord()
        self._counter = 0

    # Scope guards. Both restore the previous state on exit, including when
    # the walk below them raises.

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        outer = self.mode
        self.mode = DISABLED
        try:
            yield
        finally:
            self.mode = outer

    @contextmanager
    def binding_scope(self, binder: BoundLifetimes | None) -> Iterator[None]:
        if binder is None:
            yield
            return
        outer = self.bound_lifetimes
        self.bound_lifetimes = outer | frozenset(binder.lifetimes)
        try:
            yield
        finally:
            self.bound_lifetimes = outer

    def mint(self) -> Lifetime:
        while True:
            lifetime = Lifetime(f"{SYNTHETIC_LIFETIME_PREFIX}{self._counter}")
            self._counter += 1
            if lifetime not in self.lifetimes:
                break
        self.lifetimes.add(lifetime)
        return lifetime

    def finish(self) -> tuple[Lifetime, ...]:
        """Raise every recorded problem, or return the collected set sorted."""
        self.errors.check()
        return sorted_lifetimes(self.lifetimes)

    def _substitute(self, elided: bool) -> Optional[Lifetime]:
        kind = self.mode.kind
        if kind is ModeKind.INPUT:
            return self.mint()
        if kind is ModeKind.OUTPUT:
            assert self.mode.lifetime is not None
            self.lifetimes.add(self.mode.lifetime)
            return self.mode.lifetime
        if elided:
            self.errors.add("elided reference lifetime needs to be disambiguated", self.span)
        else:
            self.errors.add("lifetime needs to be disambiguated", self.span)
        return None

    def lifetime(self, lifetime: Lifetime) -> Lifetime:
        if lifetime.is_static:
            return lifetime
        if lifetime.is_placeholder:
            if self.mode.kind is ModeKind.DISABLED:
                return lifetime
            if self.bound_lifetimes:
                self.errors.add(
                    "can't determine the lifetime this placeholder refers to "
                    "in presence of bound lifetime parameters",
                    self.span,
                )
                return lifetime
            return self._substitute(elided=False) or lifetime
        if lifetime in self.bound_lifetimes:
            return lifetime
        if is_reserved(lifetime):
            self.errors.add(
                f"lifetime `{lifetime}` is reserved; "
                f"`'{SYNTHETIC_LIFETIME_PREFIX}*` lifetimes are used by generated code",
                self.span,
            )
            return lifetime
        self.lifetimes.add(lifetime)
        return lifetime

    def resolve(self, ty: Type) -> Type:
        if isinstance(ty, ReferenceType):
            if ty.lifetime is not None:
                lifetime = self.lifetime(ty.lifetime)
            elif self.mode.kind is ModeKind.DISABLED:
                lifetime = None
            else:
                lifetime = self._substitute(elided=True)
                if lifetime is None:
                    return ty
            return replace(ty, lifetime=lifetime, elem=self.resolve(ty.elem))
        if isinstance(ty, PathType):
            return PathType(self.type_path(ty.path))
        if isinstance(ty, (PointerType, SliceType, ArrayType, ParenType)):
            return replace(ty, elem=self.resolve(ty.elem))
        if isinstance(ty, TupleType):
            return TupleType(tuple(self.resolve(elem) for elem in ty.elems))
        if isinstance(ty, BareFnType):
            with self.suppressed(), self.binding_scope(ty.lifetimes):
                return replace(
                    ty,
                    inputs=tuple(
                        BareFnArg(self.resolve(arg.ty), arg.name) for arg in ty.inputs
                    ),
                    output=None if ty.output is None else self.resolve(ty.output),
                )
        if isinstance(ty, (TraitObjectType, ImplTraitType)):
            return replace(ty, bounds=self.bounds(ty.bounds))
        if isinstance(ty, QualifiedPathType):
            return QualifiedPathType(
                self.resolve(ty.qself),
                None if ty.trait_path is None else self.type_path(ty.trait_path),
                self.type_path(TypePath(ty.segments)).segments,
            )
        # Never, infer and verbatim types carry no lifetimes we can see.
        return ty

    def type_path(self, path: TypePath) -> TypePath:
        segments = []
        for segment in path.segments:
            arguments = segment.arguments
            if isinstance(arguments, AngleArguments):
                arguments = replace(
                    arguments,
                    args=tuple(self.generic_argument(arg) for arg in arguments.args),
                )
            elif isinstance(arguments, ParenthesizedArguments):
                with self.suppressed():
                    arguments = ParenthesizedArguments(
                        tuple(self.resolve(ty) for ty in arguments.inputs),
                        None if arguments.output is None else self.resolve(arguments.output),
                    )
            segments.append(PathSegment(segment.ident, arguments))
        return TypePath(tuple(segments), path.leading_colon)

    def generic_argument(self, arg: GenericArgument) -> GenericArgument:
        if isinstance(arg, Lifetime):
            return self.lifetime(arg)
        if isinstance(arg, AssocBinding):
            return AssocBinding(arg.ident, self.resolve(arg.ty))
        if isinstance(arg, ConstArg):
            return arg
        return self.resolve(arg)

    def bounds(self, bounds: tuple[TypeParamBound, ...]) -> tuple[TypeParamBound, ...]:
        resolved: list[TypeParamBound] = []
        for bound in bounds:
            if isinstance(bound, LifetimeBound):
                resolved.append(LifetimeBound(self.lifetime(bound.lifetime)))
                continue
            assert isinstance(bound, TraitBound)
            with self.binding_scope(bound.lifetimes):
                resolved.append(replace(bound, path=self.type_path(bound.path)))
        return tuple(resolved)
