"""Instantiate generic test functions into marker modules.

The root module's test functions stay where they are.  Every module marked
with ``#[instantiate_tests(<args>)]`` receives one forwarding function per
test function, calling the original through a small ``shim`` module with
the marker's arguments:

    #[test]
    fn name(x: &str) {
        mod shim {
            #[allow(unused_imports)]
            use super::super::*;
            pub(super) fn shim<'a>(_args: super::super::_generic_tests_call_sigs::Args<'a>) {
                super::super::name::<String>(_args.x)
            }
        }
        let args = _generic_tests_call_sigs::Args { x };
        shim::shim(args)
    }

Parameter lists and return types are passed through carrier types declared
once per distinct shape in the ``_generic_tests_call_sigs`` module appended
to the root.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Mapping, Optional

from generic_tests.analysis.catalog import CALL_SIGS_MODULE, CarrierHandle
from generic_tests.analysis.extract import TestFn, Tests, extract_tests
from generic_tests.analysis.options import ClassificationConfig, parse_unit_options
from generic_tests.exceptions import ErrorRecord, GenericTestsError, SyntaxProblem
from generic_tests.syntax.codec import decode_document
from generic_tests.syntax.model import (
    AngleArguments,
    AttrStyle,
    Attribute,
    Block,
    FnArg,
    Function,
    Generics,
    IdentPattern,
    LifetimeParam,
    Module,
    Path,
    PathSegment,
    PathType,
    Signature,
    TypePath,
    UNIT_TYPE,
    VerbatimItem,
)
from generic_tests.syntax.parser import attribute_list_body, parse_generic_arguments
from generic_tests.syntax.printer import render_generic_arguments

INSTANTIATE_ATTR = "instantiate_tests"
SHIM_MODULE = "shim"
SHIM_FN = "shim"

_UNUSED_IMPORTS = "#[allow(unused_imports)]"


@dataclass(frozen=True)
class MarkerRecord:
    path: tuple[str, ...]
    depth: int
    arguments: str


@dataclass
class Expansion:
    """Everything one pass over a unit produced."""

    module: Module
    tests: Tests = field(default_factory=Tests)
    markers: list[MarkerRecord] = field(default_factory=list)
    errors: ErrorRecord = field(default_factory=ErrorRecord)


def _super_path(count: int) -> str:
    return "::".join(["super"] * count)


def extract_inst_arguments(module: Module) -> Optional[AngleArguments]:
    """Remove the module's `instantiate_tests` attribute and parse its arguments."""
    positions = [
        index
        for index, attr in enumerate(module.attrs)
        if attr.path.is_ident(INSTANTIATE_ATTR)
    ]
    if not positions:
        return None
    attr = module.attrs[positions[0]]
    if attr.style is AttrStyle.INNER:
        raise GenericTestsError.single("cannot be an inner attribute", attr.span)
    if len(positions) > 1:
        raise GenericTestsError.single(
            f"duplicate `{INSTANTIATE_ATTR}` attribute", module.attrs[positions[1]].span
        )
    body = attribute_list_body(attr.args)
    if body is None:
        raise GenericTestsError.single(
            "expected generic arguments in angle brackets, e.g. "
            f"`#[{INSTANTIATE_ATTR}(<String>)]`",
            attr.span,
        )
    try:
        arguments = parse_generic_arguments(body)
    except SyntaxProblem as exc:
        raise GenericTestsError.single(
            f"malformed `{INSTANTIATE_ATTR}` arguments: {exc.reason}", attr.span
        ) from exc
    del module.attrs[positions[0]]
    return arguments


class Instantiator:
    def __init__(self, tests: Tests) -> None:
        self.tests = tests
        self.depth = 1
        self.errors = ErrorRecord()
        self.markers: list[MarkerRecord] = []
        self._stack: list[str] = []

    def visit_items(self, items: list) -> None:
        for item in items:
            if isinstance(item, Module):
                self.visit_module(item)

    def visit_module(self, module: Module) -> None:
        assert self.depth > 0
        try:
            arguments = extract_inst_arguments(module)
        except GenericTestsError as exc:
            self.errors.add_error(exc)
            return
        if arguments is None:
            self.depth += 1
            self._stack.append(module.ident)
            try:
                self.visit_items(module.content or [])
            finally:
                self._stack.pop()
                self.depth -= 1
            return
        if module.content is None:
            self.errors.add("module to instantiate tests into must be inline", module.span)
            return
        if module.content:
            self.errors.add("module to instantiate tests into must be empty", module.span)
            return
        self.markers.append(
            MarkerRecord(
                path=tuple(self._stack) + (module.ident,),
                depth=self.depth,
                arguments=f"<{render_generic_arguments(arguments.args)}>",
            )
        )
        self.instantiate_tests(arguments, module.content)

    def root_path(self) -> str:
        return _super_path(self.depth)

    def instantiate_tests(self, arguments: AngleArguments, content: list) -> None:
        content.append(VerbatimItem(f"{_UNUSED_IMPORTS}\nuse {self.root_path()}::*;"))
        for test in self.tests.test_fns:
            content.append(self.forwarding_fn(test, arguments))

    def forwarding_fn(self, test: TestFn, arguments: AngleArguments) -> Function:
        inputs = tuple(
            FnArg(IdentPattern(arg.pattern.ident), arg.ty, arg.attrs, arg.span)
            for arg in test.inputs
        )
        sig = Signature(
            ident=test.ident,
            inputs=inputs,
            output=test.output,
            generics=Generics(test.lifetime_params),
            asyncness=test.asyncness,
            unsafety=test.unsafety,
        )
        call = f"{SHIM_MODULE}::{SHIM_FN}(args)"
        if test.unsafety:
            call = f"unsafe {{ {call} }}"
        if test.asyncness:
            call += ".await"
        body = Block(
            [
                self.shim_module(test, arguments),
                f"let args = {self.args_init(test)};",
                call,
            ]
        )
        return Function(sig=sig, attrs=list(test.forwarded_attrs), body=body, span=test.span)

    def _carrier_type(self, handle: CarrierHandle, root_path: str) -> PathType:
        segments = [PathSegment(part) for part in root_path.split("::")]
        segments.append(PathSegment(CALL_SIGS_MODULE))
        segments.append(handle.path_segment())
        return PathType(TypePath(tuple(segments)))

    def shim_module(self, test: TestFn, arguments: AngleArguments) -> Module:
        # One level deeper than the marker: the shim sits in the function body.
        root_path = _super_path(self.depth + 1)
        if test.args_carrier is None:
            args_type = UNIT_TYPE
            fields: list[str] = []
        else:
            args_type = self._carrier_type(test.args_carrier, root_path)
            fields = [f"_args.{arg.ident}" for arg in test.signature.inputs.args]
        ret_type = None
        if test.return_carrier is not None:
            ret_type = self._carrier_type(test.return_carrier, root_path)
        call = (
            f"{root_path}::{test.ident}::<{render_generic_arguments(arguments.args)}>"
            f"({', '.join(fields)})"
        )
        if test.unsafety:
            call = f"unsafe {{ {call} }}"
        if test.asyncness:
            call += ".await"
        shim = Function(
            sig=Signature(
                ident=SHIM_FN,
                inputs=(FnArg(IdentPattern("_args"), args_type),),
                output=ret_type,
                generics=Generics(
                    tuple(LifetimeParam(lifetime) for lifetime in test.carrier_lifetimes)
                ),
                asyncness=test.asyncness,
                unsafety=test.unsafety,
            ),
            vis="pub(super)",
            body=Block([call]),
        )
        return Module(
            ident=SHIM_MODULE,
            content=[VerbatimItem(f"{_UNUSED_IMPORTS}\nuse super::super::*;"), shim],
        )

    def args_init(self, test: TestFn) -> str:
        if test.args_carrier is None:
            return "()"
        fields = ", ".join(arg.ident for arg in test.signature.inputs.args)
        return f"{CALL_SIGS_MODULE}::{test.args_carrier.ident} {{ {fields} }}"


def call_sigs_module(tests: Tests) -> Module:
    return Module(
        ident=CALL_SIGS_MODULE,
        attrs=[
            Attribute(
                path=Path.from_str("allow"),
                args="(non_camel_case_types)",
                style=AttrStyle.INNER,
            )
        ],
        content=[
            VerbatimItem(f"{_UNUSED_IMPORTS}\nuse super::*;"),
            *tests.catalog.declarations(),
        ],
    )


def run_expansion(
    module: Module,
    options: Optional[str] = None,
    *,
    config: ClassificationConfig | None = None,
) -> Expansion:
    """Run one pass over a copy of `module`, collecting every diagnostic.

    Raises GenericTestsError only when nothing can be classified: the root
    is not inline or the option list is malformed.
    """
    if module.content is None:
        raise GenericTestsError.single("only inline modules are supported", module.span)
    effective = parse_unit_options(options, config, span=module.span)
    unit = copy.deepcopy(module)
    tests, errors = extract_tests(unit, effective)
    instantiator = Instantiator(tests)
    instantiator.visit_items(unit.content)
    errors.combine(instantiator.errors)
    if not errors and len(tests.catalog):
        unit.content.append(call_sigs_module(tests))
    return Expansion(unit, tests, instantiator.markers, errors)


def expand_module(
    module: Module,
    options: Optional[str] = None,
    *,
    config: ClassificationConfig | None = None,
) -> Module:
    """Return the expanded copy of `module`; the input tree is not modified.

    Raises GenericTestsError carrying every diagnostic of the unit.
    """
    expansion = run_expansion(module, options, config=config)
    expansion.errors.check()
    return expansion.module


def expand_document(
    payload: Mapping[str, object], *, config: ClassificationConfig | None = None
) -> Module:
    """Decode a JSON unit document and expand it."""
    document = decode_document(payload)
    return expand_module(document.module, document.options, config=config)
