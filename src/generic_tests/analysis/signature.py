from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from generic_tests.analysis.lifetimes import INPUT, LifetimeResolver, return_mode
from generic_tests.exceptions import ErrorRecord, GenericTestsError
from generic_tests.syntax.model import (
    AngleArguments,
    ArrayType,
    AssocBinding,
    Attribute,
    BareFnType,
    ConstArg,
    FnArg,
    Function,
    IdentPattern,
    ImplTraitType,
    Lifetime,
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
    TypePath,
    VerbatimType,
)

# Lint attributes are the only ones a forwarding parameter can echo.
LINT_ATTRS = frozenset({"allow", "warn", "deny", "forbid", "expect"})

_IDENT_RE = re.compile(r"(?<![A-Za-z0-9_'])(?:r#)?([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class SignatureArg:
    ident: str
    ty: Type


@dataclass(frozen=True)
class InputSignature:
    """Parameter list shape with every lifetime named."""

    args: tuple[SignatureArg, ...]
    lifetimes: tuple[Lifetime, ...] = ()


@dataclass(frozen=True)
class ReturnSignature:
    ty: Type
    lifetimes: tuple[Lifetime, ...] = ()


@dataclass(frozen=True)
class TestFnSignature:
    __test__ = False

    # None when there are no parameters or no return type.
    inputs: Optional[InputSignature] = None
    output: Optional[ReturnSignature] = None


def is_lint_attr(attr: Attribute) -> bool:
    segments = attr.path.segments
    return len(segments) == 1 and segments[0] in LINT_ATTRS


class GenericParamCatcher:
    """Reports uses of a function's own type and const parameters."""

    def __init__(self, params: frozenset[str], span: Span | None = None) -> None:
        self.params = params
        self.span = span
        self.errors = ErrorRecord()

    def _report(self, ident: str) -> None:
        self.errors.add(
            f"use of generic parameter `{ident}` in test function signatures "
            "is not supported",
            self.span,
        )

    def scan_text(self, text: str) -> None:
        for match in _IDENT_RE.finditer(text):
            if match.group(1) in self.params:
                self._report(match.group(1))

    def path(self, path: TypePath) -> None:
        if not path.leading_colon:
            head = path.segments[0].ident
            if head in self.params:
                self._report(head)
                return
        self.segments(path.segments)

    def segments(self, segments: tuple[PathSegment, ...]) -> None:
        for segment in segments:
            arguments = segment.arguments
            if isinstance(arguments, AngleArguments):
                for arg in arguments.args:
                    if isinstance(arg, Lifetime):
                        continue
                    if isinstance(arg, ConstArg):
                        self.scan_text(arg.text)
                    elif isinstance(arg, AssocBinding):
                        self.type(arg.ty)
                    else:
                        self.type(arg)
            elif isinstance(arguments, ParenthesizedArguments):
                for ty in arguments.inputs:
                    self.type(ty)
                if arguments.output is not None:
                    self.type(arguments.output)

    def bounds(self, bounds) -> None:
        for bound in bounds:
            if isinstance(bound, TraitBound):
                self.path(bound.path)

    def type(self, ty: Type) -> None:
        if isinstance(ty, PathType):
            self.path(ty.path)
        elif isinstance(ty, (ReferenceType, PointerType, SliceType, ParenType)):
            self.type(ty.elem)
        elif isinstance(ty, ArrayType):
            self.type(ty.elem)
            self.scan_text(ty.length)
        elif isinstance(ty, TupleType):
            for elem in ty.elems:
                self.type(elem)
        elif isinstance(ty, BareFnType):
            for arg in ty.inputs:
                self.type(arg.ty)
            if ty.output is not None:
                self.type(ty.output)
        elif isinstance(ty, (TraitObjectType, ImplTraitType)):
            self.bounds(ty.bounds)
        elif isinstance(ty, QualifiedPathType):
            self.type(ty.qself)
            if ty.trait_path is not None:
                self.path(ty.trait_path)
            self.segments(ty.segments)
        elif isinstance(ty, VerbatimType):
            self.scan_text(ty.text)


def check_qualifiers(fn: Function, errors: ErrorRecord) -> None:
    sig = fn.sig
    if sig.constness:
        errors.add("const test functions are not supported", fn.span)
    if sig.abi is not None:
        errors.add(
            "test functions with a foreign calling convention are not supported", fn.span
        )
    if sig.variadic:
        errors.add("variadic test functions are not supported", fn.span)


def check_generic_leakage(fn: Function, errors: ErrorRecord) -> None:
    params = frozenset(param.ident for param in fn.sig.generics.type_and_const_params())
    if not params:
        return
    for arg in fn.sig.inputs:
        if isinstance(arg, FnArg):
            catcher = GenericParamCatcher(params, arg.span)
            catcher.type(arg.ty)
            errors.combine(catcher.errors)
    if fn.sig.output is not None:
        catcher = GenericParamCatcher(params, fn.span)
        catcher.type(fn.sig.output)
        errors.combine(catcher.errors)


def build_input_signature(fn: Function) -> Optional[InputSignature]:
    """Validate the parameter list and resolve its lifetimes."""
    if not fn.sig.inputs:
        return None
    errors = ErrorRecord()
    resolver = LifetimeResolver(INPUT)
    args: list[SignatureArg] = []
    for arg in fn.sig.inputs:
        if not isinstance(arg, FnArg):
            errors.add("unexpected receiver argument in a test function", arg.span)
            continue
        pattern = arg.pattern
        if (
            not isinstance(pattern, IdentPattern)
            or pattern.by_ref
            or pattern.subpattern is not None
        ):
            errors.add("unsupported argument pattern in test function input", arg.span)
            continue
        for attr in arg.attrs:
            if not is_lint_attr(attr):
                errors.add(
                    f"unsupported attribute `{attr.path}` on test function parameter",
                    attr.span,
                )
        resolver.span = arg.span
        args.append(SignatureArg(pattern.ident, resolver.resolve(arg.ty)))
    errors.combine(resolver.errors)
    errors.check()
    return InputSignature(tuple(args), resolver.finish())


def build_return_signature(
    fn: Function, input_lifetimes: tuple[Lifetime, ...]
) -> Optional[ReturnSignature]:
    if fn.sig.output is None:
        return None
    resolver = LifetimeResolver(return_mode(input_lifetimes), fn.span)
    ty = resolver.resolve(fn.sig.output)
    return ReturnSignature(ty, resolver.finish())


def extract_signature(fn: Function) -> TestFnSignature:
    """Build the signature descriptors of a test function.

    Every problem found in the function is raised together as one
    GenericTestsError.
    """
    errors = ErrorRecord()
    check_qualifiers(fn, errors)
    check_generic_leakage(fn, errors)
    try:
        inputs = build_input_signature(fn)
    except GenericTestsError as exc:
        # The return lifetime cannot be chosen without the input set.
        errors.add_error(exc)
        raise GenericTestsError(errors.diagnostics) from exc
    try:
        output = build_return_signature(fn, inputs.lifetimes if inputs else ())
    except GenericTestsError as exc:
        errors.add_error(exc)
        output = None
    errors.check()
    return TestFnSignature(inputs, output)
