from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from generic_tests.analysis.catalog import CarrierHandle, SignatureCatalog
from generic_tests.analysis.classify import classify_function
from generic_tests.analysis.lifetimes import sorted_lifetimes
from generic_tests.analysis.options import ClassificationConfig
from generic_tests.analysis.signature import TestFnSignature, extract_signature
from generic_tests.exceptions import ErrorRecord, GenericTestsError
from generic_tests.syntax.model import (
    Attribute,
    ConstParam,
    FnArg,
    Function,
    Generics,
    Lifetime,
    LifetimeParam,
    Module,
    Span,
    Type,
)


@dataclass(frozen=True)
class TestFn:
    __test__ = False

    ident: str
    forwarded_attrs: tuple[Attribute, ...]
    lifetime_params: tuple[LifetimeParam, ...]
    inputs: tuple[FnArg, ...]
    output: Optional[Type]
    signature: TestFnSignature
    generic_kinds: tuple[str, ...]
    asyncness: bool = False
    unsafety: bool = False
    args_carrier: Optional[CarrierHandle] = None
    return_carrier: Optional[CarrierHandle] = None
    span: Span = field(default_factory=Span, compare=False)

    @property
    def generic_arity(self) -> int:
        return len(self.generic_kinds)

    @property
    def carrier_lifetimes(self) -> tuple[Lifetime, ...]:
        lifetimes: set[Lifetime] = set()
        for carrier in (self.args_carrier, self.return_carrier):
            if carrier is not None:
                lifetimes.update(carrier.lifetimes)
        return sorted_lifetimes(lifetimes)


@dataclass
class Tests:
    __test__ = False

    test_fns: list[TestFn] = field(default_factory=list)
    catalog: SignatureCatalog = field(default_factory=SignatureCatalog)


def generic_kinds(generics: Generics) -> tuple[str, ...]:
    return tuple(
        "const" if isinstance(param, ConstParam) else "type"
        for param in generics.type_and_const_params()
    )


def _check_generics(
    fn: Function, kinds: tuple[str, ...], expected: tuple[str, ...]
) -> Optional[str]:
    if len(kinds) != len(expected):
        return (
            f"test function `{fn.ident}` has {len(kinds)} generic parameters "
            f"while others in the same module have {len(expected)}"
        )
    for position, (kind, other) in enumerate(zip(kinds, expected), start=1):
        if kind != other:
            return (
                f"test function `{fn.ident}` has a {kind} generic parameter at "
                f"position {position} while others in the same module have a "
                f"{other} parameter"
            )
    return None


def _test_fn(
    fn: Function,
    forwarded: tuple[Attribute, ...],
    signature: TestFnSignature,
    kinds: tuple[str, ...],
    catalog: SignatureCatalog,
) -> TestFn:
    sig = fn.sig
    args_carrier = None
    if signature.inputs is not None:
        args_carrier = catalog.intern_inputs(signature.inputs)
    return_carrier = None
    if signature.output is not None:
        return_carrier = catalog.intern_return(signature.output)
    return TestFn(
        ident=sig.ident,
        forwarded_attrs=forwarded,
        lifetime_params=sig.generics.lifetime_params(),
        inputs=tuple(arg for arg in sig.inputs if isinstance(arg, FnArg)),
        output=sig.output,
        signature=signature,
        generic_kinds=kinds,
        asyncness=sig.asyncness,
        unsafety=sig.unsafety,
        args_carrier=args_carrier,
        return_carrier=return_carrier,
        span=fn.span,
    )


def extract_tests(module: Module, config: ClassificationConfig) -> tuple[Tests, ErrorRecord]:
    """Collect the test functions directly inside `module`.

    Functions that fail validation are left out and their diagnostics
    returned; carriers are interned only for functions that are kept.
    """
    if module.content is None:
        raise GenericTestsError.single("only inline modules are supported", module.span)
    tests = Tests()
    errors = ErrorRecord()
    unit_kinds: Optional[tuple[str, ...]] = None
    for item in module.content:
        if not isinstance(item, Function):
            continue
        try:
            classification = classify_function(item, config)
            if not classification.is_test_case:
                continue
            signature = extract_signature(item)
        except GenericTestsError as exc:
            errors.add_error(exc)
            continue
        kinds = generic_kinds(item.sig.generics)
        if unit_kinds is None:
            unit_kinds = kinds
        else:
            problem = _check_generics(item, kinds, unit_kinds)
            if problem is not None:
                errors.add(problem, item.span)
                continue
        tests.test_fns.append(
            _test_fn(item, classification.forwarded_attrs, signature, kinds, tests.catalog)
        )
    return tests, errors
