from generic_tests.syntax.model import (
    Attribute,
    Function,
    Lifetime,
    Module,
    Path,
    Signature,
    Span,
    VerbatimItem,
)
from generic_tests.syntax.parser import (
    parse_bounds,
    parse_generic_arguments,
    parse_lifetime,
    parse_path,
    parse_type,
)
from generic_tests.syntax.printer import render_item, render_module, render_type

__all__ = [
    "Attribute",
    "Function",
    "Lifetime",
    "Module",
    "Path",
    "Signature",
    "Span",
    "VerbatimItem",
    "parse_bounds",
    "parse_generic_arguments",
    "parse_lifetime",
    "parse_path",
    "parse_type",
    "render_item",
    "render_module",
    "render_type",
]
