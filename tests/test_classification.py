from __future__ import annotations

import pytest

from generic_tests.analysis.classify import classify_function
from generic_tests.analysis.options import (
    ClassificationConfig,
    parse_fn_override,
    parse_unit_options,
)
from generic_tests.exceptions import GenericTestsError
from generic_tests.syntax.model import Path
from tests.rust_helpers import attr, make_fn


def _names(attrs) -> list[str]:
    return [str(item.path) for item in attrs]


def test_default_markers_and_mirrored_attrs() -> None:
    config = ClassificationConfig.default()
    assert config.test_attrs == {
        Path(("test",)),
        Path(("ignore",)),
        Path(("should_panic",)),
        Path(("bench",)),
    }
    assert config.copy_attrs == {Path(("cfg",))}


def test_unit_options_replace_named_lists_only() -> None:
    config = parse_unit_options("attrs(tokio::test, test)")
    assert config.test_attrs == {Path(("tokio", "test")), Path(("test",))}
    assert config.copy_attrs == ClassificationConfig.default().copy_attrs


def test_repeated_unit_lists_accumulate() -> None:
    config = parse_unit_options("copy_attrs(cfg), copy_attrs(doc)")
    assert config.copy_attrs == {Path(("cfg",)), Path(("doc",))}


def test_unit_options_collect_every_unknown_key() -> None:
    with pytest.raises(GenericTestsError) as excinfo:
        parse_unit_options("attrs(test), bogus(x), flag")
    assert [d.message for d in excinfo.value.diagnostics] == [
        "unsupported attribute `bogus`",
        "unsupported attribute `flag`",
    ]


def test_malformed_unit_options() -> None:
    with pytest.raises(GenericTestsError) as excinfo:
        parse_unit_options("attrs(test")
    assert excinfo.value.diagnostics[0].message.startswith(
        "malformed configuration argument list"
    )


def test_markers_removed_and_forwarded_in_original_order() -> None:
    fn = make_fn("case", attrs=["cfg(unix)", "test", "inline", "should_panic"])
    result = classify_function(fn, ClassificationConfig.default())
    assert result.is_test_case
    assert _names(result.marker_attrs) == ["test", "should_panic"]
    assert _names(result.forwarded_attrs) == ["cfg", "test", "should_panic"]
    assert _names(fn.attrs) == ["cfg", "inline"]


def test_non_test_function_is_untouched() -> None:
    fn = make_fn("helper", attrs=["cfg(unix)", "inline"])
    result = classify_function(fn, ClassificationConfig.default())
    assert not result.is_test_case
    assert result.forwarded_attrs == ()
    assert _names(fn.attrs) == ["cfg", "inline"]


def test_override_replaces_only_the_named_list() -> None:
    fn = make_fn(
        "case",
        attrs=["cfg(unix)", "test", "inline", "generic_test(copy_attrs(inline))"],
    )
    result = classify_function(fn, ClassificationConfig.default())
    assert _names(result.forwarded_attrs) == ["test", "inline"]
    assert _names(fn.attrs) == ["cfg", "inline"]


def test_override_can_make_a_function_a_test() -> None:
    fn = make_fn("case", attrs=["generic_test(attrs(tokio::test))", "tokio::test"])
    result = classify_function(fn, ClassificationConfig.default())
    assert _names(result.marker_attrs) == ["tokio::test"]
    assert fn.attrs == []


def test_override_is_stripped_from_non_test_functions() -> None:
    fn = make_fn("helper", attrs=["generic_test(attrs(bench))", "test"])
    result = classify_function(fn, ClassificationConfig.default())
    assert not result.is_test_case
    assert _names(fn.attrs) == ["test"]


def test_several_overrides_accumulate() -> None:
    fn = make_fn(
        "case",
        attrs=[
            "generic_test(copy_attrs(doc))",
            "test",
            "doc(hidden)",
            "inline",
            "generic_test(copy_attrs(inline))",
        ],
    )
    result = classify_function(fn, ClassificationConfig.default())
    assert _names(result.forwarded_attrs) == ["test", "doc", "inline"]


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("generic_test", "attribute must have arguments; use `attrs()`, `copy_attrs()`"),
        ("generic_test()", "attribute must have arguments; use `attrs()`, `copy_attrs()`"),
        ("generic_test(bogus(x))", "unexpected attribute input; use `attrs()`, `copy_attrs()`"),
        ("generic_test(attrs = \"x\")", "unexpected attribute input; use `attrs()`, `copy_attrs()`"),
    ],
)
def test_malformed_override(text: str, message: str) -> None:
    with pytest.raises(GenericTestsError) as excinfo:
        parse_fn_override(attr(text))
    assert excinfo.value.diagnostics[0].message == message


def test_malformed_override_is_still_stripped() -> None:
    fn = make_fn("case", attrs=["test", "generic_test"])
    with pytest.raises(GenericTestsError):
        classify_function(fn, ClassificationConfig.default())
    assert _names(fn.attrs) == ["test"]
