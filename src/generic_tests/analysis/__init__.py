from generic_tests.analysis.catalog import CarrierHandle, SignatureCatalog
from generic_tests.analysis.classify import Classification, classify_function
from generic_tests.analysis.extract import TestFn, Tests, extract_tests
from generic_tests.analysis.lifetimes import LifetimeResolver, SubstMode
from generic_tests.analysis.options import ClassificationConfig, parse_unit_options
from generic_tests.analysis.signature import (
    InputSignature,
    ReturnSignature,
    TestFnSignature,
    extract_signature,
)

__all__ = [
    "CarrierHandle",
    "Classification",
    "ClassificationConfig",
    "InputSignature",
    "LifetimeResolver",
    "ReturnSignature",
    "SignatureCatalog",
    "SubstMode",
    "TestFn",
    "TestFnSignature",
    "Tests",
    "classify_function",
    "extract_signature",
    "extract_tests",
    "parse_unit_options",
]
