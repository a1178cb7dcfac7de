"""Instantiate generic Rust test functions for concrete type arguments."""

from generic_tests.exceptions import Diagnostic, ErrorRecord, GenericTestsError
from generic_tests.expand.engine import expand_document, expand_module
from generic_tests.syntax.printer import render_module

__all__ = [
    "__version__",
    "Diagnostic",
    "ErrorRecord",
    "GenericTestsError",
    "expand_document",
    "expand_module",
    "render_module",
]

__version__ = "0.1.0"
