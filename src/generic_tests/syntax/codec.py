"""JSON document <-> syntax model conversion.

Items arrive structured; type expressions, bounds, patterns and attribute
arguments arrive as Rust source text and go through the type parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional

from pydantic import ValidationError

from generic_tests.exceptions import ErrorRecord, GenericTestsError, SyntaxProblem
from generic_tests.schema import (
    ArgDTO,
    AttributeDTO,
    ConstParamDTO,
    DocumentDTO,
    FunctionDTO,
    LifetimeParamDTO,
    ModuleDTO,
    SpanDTO,
    TypeParamDTO,
    VerbatimItemDTO,
)
from generic_tests.syntax.model import (
    AttrStyle,
    Attribute,
    Block,
    ConstParam,
    FnArg,
    Function,
    Generics,
    IdentPattern,
    LifetimeParam,
    Module,
    Path,
    Pattern,
    Receiver,
    Signature,
    Span,
    Type,
    TypeParam,
    VerbatimItem,
    VerbatimPattern,
    VerbatimType,
    WildcardPattern,
)
from generic_tests.syntax.parser import parse_bounds, parse_lifetime, parse_path, parse_type
from generic_tests.syntax.printer import (
    render_block_text,
    render_bounds,
    render_pattern,
    render_type,
)

_IDENT_PATTERN_RE = re.compile(
    r"^(?P<ref>ref\s+)?(?P<mut>mut\s+)?(?P<ident>(?:r#)?[A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\s*@\s*(?P<sub>.+))?$",
    re.DOTALL,
)


@dataclass
class UnitDocument:
    module: Module
    options: Optional[str] = None


def parse_pattern(text: str) -> Pattern:
    stripped = text.strip()
    if stripped == "_":
        return WildcardPattern()
    match = _IDENT_PATTERN_RE.match(stripped)
    if match is None or match.group("ident") == "_":
        return VerbatimPattern(stripped)
    return IdentPattern(
        ident=match.group("ident"),
        mutable=match.group("mut") is not None,
        by_ref=match.group("ref") is not None,
        subpattern=(match.group("sub") or "").strip() or None,
    )


def _span(dto: Optional[SpanDTO]) -> Span:
    if dto is None:
        return Span()
    return Span(dto.line, dto.column)


class _Decoder:
    def __init__(self) -> None:
        self.errors = ErrorRecord()

    def type_(self, text: str, span: Span, what: str) -> Type:
        try:
            return parse_type(text)
        except SyntaxProblem as exc:
            self.errors.add(f"malformed {what} `{text}`: {exc.reason}", span)
            return VerbatimType(text)

    def attribute(self, dto: AttributeDTO, fallback: Span) -> Attribute:
        span = _span(dto.span) if dto.span is not None else fallback
        try:
            path = parse_path(dto.path)
        except SyntaxProblem as exc:
            self.errors.add(f"malformed attribute path `{dto.path}`: {exc.reason}", span)
            path = Path.from_str(dto.path)
        return Attribute(path=path, args=dto.args, style=AttrStyle(dto.style), span=span)

    def generics(self, fn: FunctionDTO, span: Span) -> Generics:
        params = []
        for param in fn.generics:
            if isinstance(param, LifetimeParamDTO):
                try:
                    lifetime = parse_lifetime(param.name)
                    bounds = tuple(parse_lifetime(bound) for bound in param.bounds)
                except SyntaxProblem as exc:
                    self.errors.add(f"malformed lifetime parameter: {exc.reason}", span)
                    continue
                params.append(LifetimeParam(lifetime, bounds))
            elif isinstance(param, TypeParamDTO):
                bounds = ()
                if param.bounds:
                    try:
                        bounds = parse_bounds(param.bounds)
                    except SyntaxProblem as exc:
                        self.errors.add(
                            f"malformed bounds of `{param.ident}`: {exc.reason}", span
                        )
                default = None
                if param.default is not None:
                    default = self.type_(param.default, span, "type parameter default")
                params.append(TypeParam(param.ident, bounds, default))
            elif isinstance(param, ConstParamDTO):
                ty = self.type_(param.ty, span, "const parameter type")
                params.append(ConstParam(param.ident, ty, param.default))
        return Generics(tuple(params), fn.where_clause)

    def function(self, dto: FunctionDTO) -> Function:
        span = _span(dto.span)
        inputs = []
        for item in dto.inputs:
            item_span = _span(item.span) if item.span is not None else span
            if isinstance(item, ArgDTO):
                inputs.append(
                    FnArg(
                        pattern=parse_pattern(item.pattern),
                        ty=self.type_(item.ty, item_span, "parameter type"),
                        attrs=tuple(self.attribute(attr, item_span) for attr in item.attrs),
                        span=item_span,
                    )
                )
            else:
                inputs.append(Receiver(item.text, item_span))
        output = None
        if dto.output is not None:
            output = self.type_(dto.output, span, "return type")
        sig = Signature(
            ident=dto.ident,
            inputs=tuple(inputs),
            output=output,
            generics=self.generics(dto, span),
            constness=dto.constness,
            asyncness=dto.asyncness,
            unsafety=dto.unsafety,
            abi=dto.abi,
            variadic=dto.variadic,
        )
        body = Block([dto.body] if dto.body.strip() else [])
        return Function(
            sig=sig,
            attrs=[self.attribute(attr, span) for attr in dto.attrs],
            vis=dto.vis,
            body=body,
            span=span,
        )

    def module(self, dto: ModuleDTO) -> Module:
        span = _span(dto.span)
        content = None
        if dto.content is not None:
            content = [self.item(item) for item in dto.content]
        return Module(
            ident=dto.ident,
            content=content,
            attrs=[self.attribute(attr, span) for attr in dto.attrs],
            vis=dto.vis,
            span=span,
        )

    def item(self, dto):
        if isinstance(dto, ModuleDTO):
            return self.module(dto)
        if isinstance(dto, FunctionDTO):
            return self.function(dto)
        if isinstance(dto, VerbatimItemDTO):
            return VerbatimItem(dto.text, _span(dto.span))
        raise TypeError(f"unexpected item payload: {dto!r}")


def _validation_diagnostics(exc: ValidationError, errors: ErrorRecord) -> None:
    for entry in exc.errors():
        location = ".".join(str(part) for part in entry.get("loc", ()))
        errors.add(f"invalid document at `{location}`: {entry.get('msg', '')}")


def decode_document(payload: Mapping[str, object]) -> UnitDocument:
    """Validate and convert a JSON document; raises GenericTestsError."""
    errors = ErrorRecord()
    try:
        dto = DocumentDTO.model_validate(payload)
    except ValidationError as exc:
        _validation_diagnostics(exc, errors)
        raise GenericTestsError(errors.diagnostics) from exc
    decoder = _Decoder()
    module = decoder.module(dto.module)
    decoder.errors.check()
    return UnitDocument(module=module, options=dto.options)


def decode_module(payload: Mapping[str, object]) -> Module:
    errors = ErrorRecord()
    try:
        dto = ModuleDTO.model_validate(payload)
    except ValidationError as exc:
        _validation_diagnostics(exc, errors)
        raise GenericTestsError(errors.diagnostics) from exc
    decoder = _Decoder()
    module = decoder.module(dto)
    decoder.errors.check()
    return module


def _encode_span(span: Span) -> dict[str, int] | None:
    if span == Span():
        return None
    return {"line": span.line, "column": span.column}


def _encode_attribute(attr: Attribute) -> dict[str, object]:
    payload: dict[str, object] = {"path": str(attr.path), "style": attr.style.value}
    if attr.args is not None:
        payload["args"] = attr.args
    return payload


def _encode_generics(generics: Generics) -> list[dict[str, object]]:
    params: list[dict[str, object]] = []
    for param in generics.params:
        if isinstance(param, LifetimeParam):
            params.append(
                {
                    "kind": "lifetime",
                    "name": str(param.lifetime),
                    "bounds": [str(bound) for bound in param.bounds],
                }
            )
        elif isinstance(param, TypeParam):
            entry: dict[str, object] = {"kind": "type", "ident": param.ident}
            if param.bounds:
                entry["bounds"] = render_bounds(param.bounds)
            if param.default is not None:
                entry["default"] = render_type(param.default)
            params.append(entry)
        else:
            entry = {"kind": "const", "ident": param.ident, "ty": render_type(param.ty)}
            if param.default is not None:
                entry["default"] = param.default
            params.append(entry)
    return params


def encode_item(item) -> dict[str, object]:
    if isinstance(item, VerbatimItem):
        return {"kind": "verbatim", "text": item.text}
    if isinstance(item, Module):
        payload: dict[str, object] = {
            "kind": "mod",
            "ident": item.ident,
            "attrs": [_encode_attribute(attr) for attr in item.attrs],
            "vis": item.vis,
            "content": None
            if item.content is None
            else [encode_item(child) for child in item.content],
        }
    else:
        sig = item.sig
        inputs: list[dict[str, object]] = []
        for arg in sig.inputs:
            if isinstance(arg, Receiver):
                inputs.append({"kind": "receiver", "text": arg.text})
            else:
                inputs.append(
                    {
                        "kind": "arg",
                        "pattern": render_pattern(arg.pattern),
                        "ty": render_type(arg.ty),
                        "attrs": [_encode_attribute(attr) for attr in arg.attrs],
                    }
                )
        payload = {
            "kind": "fn",
            "ident": sig.ident,
            "attrs": [_encode_attribute(attr) for attr in item.attrs],
            "vis": item.vis,
            "constness": sig.constness,
            "asyncness": sig.asyncness,
            "unsafety": sig.unsafety,
            "abi": sig.abi,
            "generics": _encode_generics(sig.generics),
            "where_clause": sig.generics.where_clause,
            "inputs": inputs,
            "variadic": sig.variadic,
            "output": None if sig.output is None else render_type(sig.output),
            "body": render_block_text(item.body),
        }
    span = _encode_span(item.span)
    if span is not None:
        payload["span"] = span
    return payload
