from __future__ import annotations

import textwrap

import pytest

from generic_tests.exceptions import GenericTestsError
from generic_tests.expand import MarkerRecord, expand_module, run_expansion
from generic_tests.syntax.model import Attribute, Module, Path, VerbatimItem
from generic_tests.syntax.printer import render_module
from tests.rust_helpers import attr, make_fn, marker, unit


def _expected(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


def _render(module: Module, options: str | None = None) -> str:
    return render_module(expand_module(module, options))


def _messages(expansion) -> list[str]:
    return [diagnostic.message for diagnostic in expansion.errors]


def test_expands_a_plain_generic_test() -> None:
    module = unit(
        make_fn("it_works", generics=["T"], body="let _ = T::default();"),
        marker("string"),
    )
    assert _render(module) == _expected(
        """
        mod tests {
            fn it_works<T>() {
                let _ = T::default();
            }

            mod string {
                #[allow(unused_imports)]
                use super::*;

                #[test]
                fn it_works() {
                    mod shim {
                        #[allow(unused_imports)]
                        use super::super::*;

                        pub(super) fn shim(_args: ()) {
                            super::super::it_works::<String>()
                        }
                    }
                    let args = ();
                    shim::shim(args)
                }
            }
        }
        """
    )


def test_parameters_and_return_go_through_carriers() -> None:
    module = unit(
        make_fn(
            "len_of",
            params=[("mut s", "&str")],
            output="usize",
            generics=["T"],
            body="s.len()",
        ),
        marker("string"),
    )
    assert _render(module) == _expected(
        """
        mod tests {
            fn len_of<T>(mut s: &str) -> usize {
                s.len()
            }

            mod string {
                #[allow(unused_imports)]
                use super::*;

                #[test]
                fn len_of(s: &str) -> usize {
                    mod shim {
                        #[allow(unused_imports)]
                        use super::super::*;

                        pub(super) fn shim<'_generic_tests_0>(_args: super::super::_generic_tests_call_sigs::_generic_tests_args_0<'_generic_tests_0>) -> super::super::_generic_tests_call_sigs::_generic_tests_ret_0 {
                            super::super::len_of::<String>(_args.s)
                        }
                    }
                    let args = _generic_tests_call_sigs::_generic_tests_args_0 { s };
                    shim::shim(args)
                }
            }

            mod _generic_tests_call_sigs {
                #![allow(non_camel_case_types)]

                #[allow(unused_imports)]
                use super::*;

                pub(super) struct _generic_tests_args_0<'_generic_tests_0> {
                    pub s: &'_generic_tests_0 str,
                }

                pub(super) type _generic_tests_ret_0 = usize;
            }
        }
        """
    )


def test_nested_marker_paths_climb_to_the_root() -> None:
    module = unit(
        make_fn("it_works", generics=["T"]),
        Module("a", content=[Module("b", content=[marker("m", "<u8>")])]),
    )
    expansion = run_expansion(module)
    assert expansion.markers == [MarkerRecord(("a", "b", "m"), 3, "<u8>")]
    rendered = render_module(expansion.module)
    assert "use super::super::super::*;" in rendered
    assert "super::super::super::super::it_works::<u8>()" in rendered


def test_identical_signatures_share_one_carrier() -> None:
    module = unit(
        make_fn("first", params=[("x", "u8")], generics=["T"]),
        make_fn("second", params=[("x", "u8")], generics=["T"]),
        marker("m"),
    )
    rendered = _render(module)
    assert rendered.count("pub(super) struct") == 1
    assert rendered.count("let args = _generic_tests_call_sigs::_generic_tests_args_0 { x };") == 2


def test_placeholder_return_uses_the_input_lifetime() -> None:
    module = unit(make_fn("first", params=[("s", "&str")], output="&'_ str"), marker("m"))
    rendered = _render(module)
    assert (
        "pub(super) type _generic_tests_ret_0<'_generic_tests_0> = &'_generic_tests_0 str;"
        in rendered
    )


def test_marker_errors_do_not_stop_other_markers() -> None:
    module = unit(
        make_fn("it_works", generics=["T"]),
        marker("bad", content=[VerbatimItem("fn x() {}")]),
        marker("good"),
    )
    expansion = run_expansion(module)
    assert _messages(expansion) == ["module to instantiate tests into must be empty"]
    assert [record.path for record in expansion.markers] == [("good",)]
    with pytest.raises(GenericTestsError):
        expand_module(module)


def test_outline_marker_is_rejected() -> None:
    outline = marker("outline")
    outline.content = None
    expansion = run_expansion(unit(make_fn("t", generics=["T"]), outline))
    assert _messages(expansion) == ["module to instantiate tests into must be inline"]


def test_generic_arity_must_agree() -> None:
    module = unit(
        make_fn("a", generics=["T"]),
        make_fn("b", generics=["T", "U"]),
        marker("m"),
    )
    expansion = run_expansion(module)
    assert _messages(expansion) == [
        "test function `b` has 2 generic parameters while others in the same module have 1"
    ]
    assert [test.ident for test in expansion.tests.test_fns] == ["a"]


def test_generic_kinds_must_agree() -> None:
    module = unit(
        make_fn("a", generics=["T"]),
        make_fn("x", generics=["const N: usize"]),
    )
    assert _messages(run_expansion(module)) == [
        "test function `x` has a const generic parameter at position 1 "
        "while others in the same module have a type parameter"
    ]


def test_expansion_is_deterministic_and_leaves_input_alone() -> None:
    module = unit(
        make_fn("a", params=[("s", "&str")], generics=["T"]),
        make_fn("b", output="String", generics=["T"]),
        marker("one"),
        marker("two", "<u8>"),
    )
    before = render_module(module)
    first = _render(module)
    assert _render(module) == first
    assert render_module(module) == before
    assert module.content[0].attrs[0].path == Path(("test",))


def test_async_and_unsafe_calls() -> None:
    module = unit(
        make_fn("waits", generics=["T"], asyncness=True),
        make_fn("pokes", generics=["T"], unsafety=True),
        marker("m"),
    )
    rendered = _render(module)
    assert "pub(super) async fn shim(_args: ()) {" in rendered
    assert "super::super::waits::<String>().await" in rendered
    assert "shim::shim(args).await" in rendered
    assert "pub(super) unsafe fn shim(_args: ()) {" in rendered
    assert "unsafe { super::super::pokes::<String>() }" in rendered
    assert "unsafe { shim::shim(args) }" in rendered


def test_unit_options_choose_the_markers() -> None:
    module = unit(
        make_fn("runs", generics=["T"], attrs=["tokio::test"], asyncness=True),
        make_fn("plain", generics=["T"]),
        marker("m"),
    )
    expansion = run_expansion(module, "attrs(tokio::test)")
    assert [test.ident for test in expansion.tests.test_fns] == ["runs"]
    assert "#[tokio::test]\n" in render_module(expansion.module)


def test_cfg_is_mirrored_and_kept() -> None:
    module = unit(
        make_fn("unix_only", generics=["T"], attrs=["cfg(unix)", "test"]),
        marker("m"),
    )
    rendered = _render(module)
    assert rendered.count("#[cfg(unix)]") == 2
    assert "        #[cfg(unix)]\n        #[test]\n        fn unix_only() {" in rendered


@pytest.mark.parametrize(
    ("attrs", "message"),
    [
        (
            [attr("instantiate_tests(<u8>)", inner=True)],
            "cannot be an inner attribute",
        ),
        (
            [attr("instantiate_tests(<u8>)"), attr("instantiate_tests(<u16>)")],
            "duplicate `instantiate_tests` attribute",
        ),
        (
            [attr("instantiate_tests")],
            "expected generic arguments in angle brackets, e.g. "
            "`#[instantiate_tests(<String>)]`",
        ),
    ],
)
def test_marker_attribute_errors(attrs: list[Attribute], message: str) -> None:
    module = unit(make_fn("t", generics=["T"]), Module("m", attrs=attrs))
    assert _messages(run_expansion(module)) == [message]


def test_malformed_marker_arguments() -> None:
    module = unit(make_fn("t", generics=["T"]), marker("m", "<u8,,>"))
    (message,) = _messages(run_expansion(module))
    assert message.startswith("malformed `instantiate_tests` arguments: ")


def test_root_must_be_inline() -> None:
    with pytest.raises(GenericTestsError) as excinfo:
        run_expansion(Module("tests", content=None))
    assert excinfo.value.diagnostics[0].message == "only inline modules are supported"


def test_no_tests_means_no_carrier_module() -> None:
    module = unit(make_fn("helper", attrs=()), marker("m"))
    rendered = _render(module)
    assert "_generic_tests_call_sigs" not in rendered
    assert "use super::*;" in rendered


def test_multiline_string_literals_survive_expansion() -> None:
    module = unit(
        make_fn("it_works", generics=["T"], body='let s = "first\nsecond";\nassert!(!s.is_empty());'),
        marker("m"),
    )
    rendered = _render(module)
    assert '        let s = "first\nsecond";\n        assert!(!s.is_empty());\n' in rendered
