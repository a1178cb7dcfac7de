from generic_tests.expand.engine import (
    Expansion,
    Instantiator,
    MarkerRecord,
    expand_document,
    expand_module,
    run_expansion,
)

__all__ = [
    "Expansion",
    "Instantiator",
    "MarkerRecord",
    "expand_document",
    "expand_module",
    "run_expansion",
]
