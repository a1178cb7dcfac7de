from __future__ import annotations

import pytest

from generic_tests.analysis.lifetimes import (
    DISABLED,
    FAIL,
    INPUT,
    LifetimeResolver,
    ModeKind,
    SubstMode,
    return_mode,
)
from generic_tests.exceptions import GenericTestsError
from generic_tests.syntax.model import BoundLifetimes, Lifetime
from generic_tests.syntax.parser import parse_type
from generic_tests.syntax.printer import render_type


def _resolve(mode: SubstMode, *texts: str) -> tuple[list[str], list[str]]:
    resolver = LifetimeResolver(mode)
    resolved = [render_type(resolver.resolve(parse_type(text))) for text in texts]
    return resolved, [str(lifetime) for lifetime in resolver.finish()]


def _errors(mode: SubstMode, text: str) -> list[str]:
    resolver = LifetimeResolver(mode)
    resolver.resolve(parse_type(text))
    with pytest.raises(GenericTestsError) as excinfo:
        resolver.finish()
    return [diagnostic.message for diagnostic in excinfo.value.diagnostics]


def test_input_mode_names_every_elided_reference() -> None:
    resolved, lifetimes = _resolve(INPUT, "&str", "&mut Vec<&u8>")
    assert resolved == [
        "&'_generic_tests_0 str",
        "&'_generic_tests_1 mut Vec<&'_generic_tests_2 u8>",
    ]
    assert lifetimes == ["'_generic_tests_0", "'_generic_tests_1", "'_generic_tests_2"]


def test_input_mode_collects_named_and_skips_static() -> None:
    resolved, lifetimes = _resolve(INPUT, "&'b str", "Cow<'a, str>", "&'static str")
    assert resolved == ["&'b str", "Cow<'a, str>", "&'static str"]
    assert lifetimes == ["'a", "'b"]


def test_input_mode_mints_placeholders() -> None:
    resolved, lifetimes = _resolve(INPUT, "Cow<'_, str>")
    assert resolved == ["Cow<'_generic_tests_0, str>"]
    assert lifetimes == ["'_generic_tests_0"]


def test_output_mode_substitutes_the_single_input_lifetime() -> None:
    mode = SubstMode.output(Lifetime("_generic_tests_0"))
    resolved, lifetimes = _resolve(mode, "&'_ str")
    assert resolved == ["&'_generic_tests_0 str"]
    assert lifetimes == ["'_generic_tests_0"]
    resolved, _ = _resolve(mode, "Option<&[u8]>")
    assert resolved == ["Option<&'_generic_tests_0 [u8]>"]


def test_output_mode_without_references_has_no_lifetimes() -> None:
    resolved, lifetimes = _resolve(SubstMode.output(Lifetime("a")), "String")
    assert resolved == ["String"]
    assert lifetimes == []


def test_fail_mode_reports_ambiguity() -> None:
    assert _errors(FAIL, "&str") == ["elided reference lifetime needs to be disambiguated"]
    assert _errors(FAIL, "Cow<'_, str>") == ["lifetime needs to be disambiguated"]
    assert _resolve(FAIL, "&'static str") == (["&'static str"], [])


def test_return_mode_selection() -> None:
    assert return_mode(()) is FAIL
    assert return_mode((Lifetime("a"), Lifetime("b"))) is FAIL
    mode = return_mode((Lifetime("a"),))
    assert mode.kind is ModeKind.OUTPUT
    assert mode.lifetime == Lifetime("a")


def test_function_pointers_form_their_own_context() -> None:
    resolved, lifetimes = _resolve(
        INPUT, "fn(&str) -> &str", "for<'f> fn(&'f u8) -> &'f u8", "Box<dyn Fn(&str) -> &str>"
    )
    assert resolved == [
        "fn(&str) -> &str",
        "for<'f> fn(&'f u8) -> &'f u8",
        "Box<dyn Fn(&str) -> &str>",
    ]
    assert lifetimes == []


def test_disabled_scope_still_collects_free_named_lifetimes() -> None:
    _, lifetimes = _resolve(INPUT, "fn(&'x str)", "Box<dyn Fn(&'y u8)>")
    assert lifetimes == ["'x", "'y"]


def test_trait_bound_binder_hides_bound_names() -> None:
    _, lifetimes = _resolve(INPUT, "Box<dyn for<'r> Visitor<'r> + 'o>")
    assert lifetimes == ["'o"]


def test_placeholder_under_binder_cannot_be_resolved() -> None:
    assert _errors(INPUT, "Box<dyn for<'r> Pair<'r, '_>>") == [
        "can't determine the lifetime this placeholder refers to "
        "in presence of bound lifetime parameters"
    ]


def test_reserved_lifetime_names_are_rejected() -> None:
    messages = _errors(INPUT, "&'_generic_tests_0 str")
    assert len(messages) == 1
    assert "reserved" in messages[0]


def test_scope_guards_restore_state_on_error() -> None:
    resolver = LifetimeResolver(INPUT)
    with pytest.raises(RuntimeError):
        with resolver.suppressed():
            assert resolver.mode is DISABLED
            with resolver.binding_scope(BoundLifetimes((Lifetime("a"),))):
                assert resolver.bound_lifetimes == {Lifetime("a")}
                raise RuntimeError("boom")
    assert resolver.mode is INPUT
    assert resolver.bound_lifetimes == frozenset()


def test_minting_skips_names_already_collected() -> None:
    resolver = LifetimeResolver(INPUT)
    resolver.lifetimes.add(Lifetime("_generic_tests_0"))
    assert resolver.mint() == Lifetime("_generic_tests_1")


def test_qualified_paths_are_walked() -> None:
    resolved, lifetimes = _resolve(INPUT, "<&str as Tr<'a>>::Out", "<Foo as Tr>::Assoc<'_>")
    assert resolved == [
        "<&'_generic_tests_0 str as Tr<'a>>::Out",
        "<Foo as Tr>::Assoc<'_generic_tests_1>",
    ]
    assert lifetimes == ["'_generic_tests_0", "'_generic_tests_1", "'a"]


def test_qualified_path_in_return_position_needs_disambiguation() -> None:
    assert _errors(FAIL, "<&str as Tr>::Out") == [
        "elided reference lifetime needs to be disambiguated"
    ]
