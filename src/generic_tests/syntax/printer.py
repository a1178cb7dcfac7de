"""Deterministic Rust source rendering for the syntax model."""

from __future__ import annotations

from typing import Iterable

from generic_tests.syntax.model import (
    AngleArguments,
    ArrayType,
    AssocBinding,
    AttrStyle,
    Attribute,
    BareFnType,
    Block,
    ConstArg,
    ConstParam,
    FnArg,
    Function,
    GenericArgument,
    Generics,
    IdentPattern,
    ImplTraitType,
    InferType,
    Item,
    Lifetime,
    LifetimeBound,
    LifetimeParam,
    Module,
    NeverType,
    ParenthesizedArguments,
    ParenType,
    PathSegment,
    PathType,
    Pattern,
    PointerType,
    QualifiedPathType,
    Receiver,
    ReferenceType,
    Signature,
    SliceType,
    TraitObjectType,
    TupleType,
    Type,
    TypeParam,
    TypeParamBound,
    TypePath,
    VerbatimItem,
    VerbatimPattern,
    VerbatimType,
    WildcardPattern,
)
from generic_tests.syntax.tokens import literal_line_starts

INDENT = "    "


def render_path_segment(segment: PathSegment) -> str:
    text = segment.ident
    arguments = segment.arguments
    if isinstance(arguments, AngleArguments):
        text += render_angle_arguments(arguments)
    elif isinstance(arguments, ParenthesizedArguments):
        text += "(" + ", ".join(render_type(ty) for ty in arguments.inputs) + ")"
        if arguments.output is not None:
            text += " -> " + render_type(arguments.output)
    return text


def render_type_path(path: TypePath) -> str:
    rendered = "::".join(render_path_segment(segment) for segment in path.segments)
    return "::" + rendered if path.leading_colon else rendered


def render_angle_arguments(arguments: AngleArguments) -> str:
    prefix = "::" if arguments.turbofish else ""
    return prefix + "<" + render_generic_arguments(arguments.args) + ">"


def render_generic_arguments(args: Iterable[GenericArgument]) -> str:
    return ", ".join(render_generic_argument(arg) for arg in args)


def render_generic_argument(arg: GenericArgument) -> str:
    if isinstance(arg, Lifetime):
        return str(arg)
    if isinstance(arg, ConstArg):
        return arg.text
    if isinstance(arg, AssocBinding):
        return f"{arg.ident} = {render_type(arg.ty)}"
    return render_type(arg)


def render_bound(bound: TypeParamBound) -> str:
    if isinstance(bound, LifetimeBound):
        return str(bound.lifetime)
    text = render_type_path(bound.path)
    if bound.lifetimes is not None:
        text = render_binder(bound.lifetimes.lifetimes) + " " + text
    if bound.maybe:
        text = "?" + text
    if bound.parenthesized:
        text = f"({text})"
    return text


def render_bounds(bounds: Iterable[TypeParamBound]) -> str:
    return " + ".join(render_bound(bound) for bound in bounds)


def render_binder(lifetimes: Iterable[Lifetime]) -> str:
    return "for<" + ", ".join(str(lifetime) for lifetime in lifetimes) + ">"


def render_type(ty: Type) -> str:
    if isinstance(ty, PathType):
        return render_type_path(ty.path)
    if isinstance(ty, ReferenceType):
        text = "&"
        if ty.lifetime is not None:
            text += f"{ty.lifetime} "
        if ty.mutable:
            text += "mut "
        return text + render_type(ty.elem)
    if isinstance(ty, PointerType):
        return ("*mut " if ty.mutable else "*const ") + render_type(ty.elem)
    if isinstance(ty, SliceType):
        return f"[{render_type(ty.elem)}]"
    if isinstance(ty, ArrayType):
        return f"[{render_type(ty.elem)}; {ty.length}]"
    if isinstance(ty, TupleType):
        if len(ty.elems) == 1:
            return f"({render_type(ty.elems[0])},)"
        return "(" + ", ".join(render_type(elem) for elem in ty.elems) + ")"
    if isinstance(ty, ParenType):
        return f"({render_type(ty.elem)})"
    if isinstance(ty, BareFnType):
        return _render_bare_fn(ty)
    if isinstance(ty, TraitObjectType):
        return ("dyn " if ty.dyn else "") + render_bounds(ty.bounds)
    if isinstance(ty, ImplTraitType):
        return "impl " + render_bounds(ty.bounds)
    if isinstance(ty, QualifiedPathType):
        qself = render_type(ty.qself)
        if ty.trait_path is not None:
            qself += " as " + render_type_path(ty.trait_path)
        return f"<{qself}>::" + "::".join(render_path_segment(s) for s in ty.segments)
    if isinstance(ty, NeverType):
        return "!"
    if isinstance(ty, InferType):
        return "_"
    if isinstance(ty, VerbatimType):
        return ty.text
    raise TypeError(f"not a type node: {ty!r}")


def _render_bare_fn(ty: BareFnType) -> str:
    prefix = ""
    if ty.lifetimes is not None:
        prefix += render_binder(ty.lifetimes.lifetimes) + " "
    if ty.unsafety:
        prefix += "unsafe "
    if ty.abi is not None:
        prefix += f"extern {ty.abi} " if ty.abi else "extern "
    args = [
        f"{arg.name}: {render_type(arg.ty)}" if arg.name else render_type(arg.ty)
        for arg in ty.inputs
    ]
    if ty.variadic:
        args.append("...")
    text = prefix + "fn(" + ", ".join(args) + ")"
    if ty.output is not None:
        text += " -> " + render_type(ty.output)
    return text


def render_attribute(attr: Attribute) -> str:
    opener = "#![" if attr.style is AttrStyle.INNER else "#["
    text = str(attr.path)
    if attr.args:
        args = attr.args.strip()
        text += args if args.startswith("(") else " " + args
    return f"{opener}{text}]"


def render_generics(generics: Generics) -> str:
    if not generics.params:
        return ""
    params = []
    for param in generics.params:
        if isinstance(param, LifetimeParam):
            text = str(param.lifetime)
            if param.bounds:
                text += ": " + " + ".join(str(bound) for bound in param.bounds)
        elif isinstance(param, TypeParam):
            text = param.ident
            if param.bounds:
                text += ": " + render_bounds(param.bounds)
            if param.default is not None:
                text += " = " + render_type(param.default)
        elif isinstance(param, ConstParam):
            text = f"const {param.ident}: {render_type(param.ty)}"
            if param.default is not None:
                text += f" = {param.default}"
        else:
            raise TypeError(f"not a generic parameter: {param!r}")
        params.append(text)
    return "<" + ", ".join(params) + ">"


def render_pattern(pattern: Pattern) -> str:
    if isinstance(pattern, IdentPattern):
        text = ""
        if pattern.by_ref:
            text += "ref "
        if pattern.mutable:
            text += "mut "
        text += pattern.ident
        if pattern.subpattern:
            text += f" @ {pattern.subpattern}"
        return text
    if isinstance(pattern, WildcardPattern):
        return "_"
    if isinstance(pattern, VerbatimPattern):
        return pattern.text
    raise TypeError(f"not a pattern: {pattern!r}")


def render_fn_input(arg: FnArg | Receiver) -> str:
    if isinstance(arg, Receiver):
        return arg.text
    attrs = "".join(render_attribute(attr) + " " for attr in arg.attrs)
    return f"{attrs}{render_pattern(arg.pattern)}: {render_type(arg.ty)}"


def render_signature(sig: Signature) -> str:
    text = ""
    if sig.constness:
        text += "const "
    if sig.asyncness:
        text += "async "
    if sig.unsafety:
        text += "unsafe "
    if sig.abi is not None:
        text += f"extern {sig.abi} " if sig.abi else "extern "
    inputs = [render_fn_input(arg) for arg in sig.inputs]
    if sig.variadic:
        inputs.append("...")
    text += f"fn {sig.ident}{render_generics(sig.generics)}(" + ", ".join(inputs) + ")"
    if sig.output is not None:
        text += " -> " + render_type(sig.output)
    if sig.generics.where_clause:
        text += " " + " ".join(sig.generics.where_clause.split())
    return text


def _indent_text(text: str, level: int) -> list[str]:
    """Re-indent source text at `level`.

    Lines that begin inside a string literal are part of the literal's value
    and are kept exactly as given; the common margin is taken from the
    remaining lines only.
    """
    prefix = INDENT * level
    lines = text.strip("\n").split("\n")
    in_literal = literal_line_starts(text.strip("\n"))
    margins = [
        len(line) - len(line.lstrip())
        for line, quoted in zip(lines, in_literal)
        if not quoted and line.strip()
    ]
    margin = min(margins, default=0)
    rendered: list[str] = []
    for line, quoted in zip(lines, in_literal):
        if quoted:
            rendered.append(line)
        elif line.strip():
            rendered.append(prefix + line[margin:])
        else:
            rendered.append("")
    return rendered


def _render_block(block: Block, level: int) -> list[str]:
    lines: list[str] = []
    for stmt in block.stmts:
        if isinstance(stmt, str):
            lines.extend(_indent_text(stmt, level))
        else:
            lines.extend(render_item_lines(stmt, level))
    return lines


def _with_vis(vis: str, text: str) -> str:
    return f"{vis} {text}" if vis else text


def render_item_lines(item: Item, level: int = 0) -> list[str]:
    prefix = INDENT * level
    if isinstance(item, VerbatimItem):
        return _indent_text(item.text, level)
    lines = [
        prefix + render_attribute(attr)
        for attr in item.attrs
        if attr.style is AttrStyle.OUTER
    ]
    # Inner attributes open the body.
    inner = [
        prefix + INDENT + render_attribute(attr)
        for attr in item.attrs
        if attr.style is AttrStyle.INNER
    ]
    if isinstance(item, Function):
        header = prefix + _with_vis(item.vis, render_signature(item.sig))
        body = inner + _render_block(item.body, level + 1)
        if not body:
            lines.append(header + " {}")
            return lines
        lines.append(header + " {")
        lines.extend(body)
        lines.append(prefix + "}")
        return lines
    if isinstance(item, Module):
        header = prefix + _with_vis(item.vis, f"mod {item.ident}")
        if item.content is None:
            lines.append(header + ";")
            return lines
        if not item.content and not inner:
            lines.append(header + " {}")
            return lines
        lines.append(header + " {")
        lines.extend(inner)
        if inner and item.content:
            lines.append("")
        lines.extend(_render_items(item.content, level + 1))
        lines.append(prefix + "}")
        return lines
    raise TypeError(f"not an item: {item!r}")


def _one_line(item: Item) -> bool:
    return isinstance(item, VerbatimItem) and "\n" not in item.text.strip("\n")


def _render_items(items: list, level: int) -> list[str]:
    lines: list[str] = []
    previous = None
    for item in items:
        # Consecutive one-line verbatim items, typically `use` lines, stay packed.
        if previous is not None and not (_one_line(previous) and _one_line(item)):
            lines.append("")
        lines.extend(render_item_lines(item, level))
        previous = item
    return lines


def render_item(item: Item) -> str:
    return "\n".join(render_item_lines(item)) + "\n"


def render_module(module: Module) -> str:
    return render_item(module)


def render_block_text(block: Block) -> str:
    return "\n".join(_render_block(block, 0))
