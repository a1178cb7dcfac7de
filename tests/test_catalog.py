from __future__ import annotations

import textwrap

import pytest

from generic_tests.analysis.catalog import CarrierHandle, SignatureCatalog
from generic_tests.analysis.signature import extract_signature
from generic_tests.order_contract import OrderPolicy, OrderViolation, order_policy
from generic_tests.syntax.model import Lifetime
from generic_tests.syntax.printer import render_type
from tests.rust_helpers import make_fn


def _signature(**kwargs):
    return extract_signature(make_fn("case", **kwargs))


def test_identical_shapes_share_one_handle() -> None:
    catalog = SignatureCatalog()
    first = catalog.intern_inputs(_signature(params=[("s", "&str")]).inputs)
    second = catalog.intern_inputs(_signature(params=[("s", "&str")]).inputs)
    assert first is second
    assert first.ident == "_generic_tests_args_0"
    assert len(catalog) == 1


def test_handles_are_numbered_per_kind_in_registration_order() -> None:
    catalog = SignatureCatalog()
    a = catalog.intern_inputs(_signature(params=[("x", "u8")]).inputs)
    b = catalog.intern_inputs(_signature(params=[("y", "u8")]).inputs)
    r = catalog.intern_return(_signature(output="String").output)
    assert [a.ident, b.ident, r.ident] == [
        "_generic_tests_args_0",
        "_generic_tests_args_1",
        "_generic_tests_ret_0",
    ]
    assert len(catalog) == 3
    assert [handle for handle, _ in catalog.input_carriers()] == [a, b]


def test_handle_lifetime_generics() -> None:
    assert CarrierHandle("c").lifetime_generics() == ""
    handle = CarrierHandle("c", (Lifetime("a"), Lifetime("b")))
    assert handle.lifetime_generics() == "<'a, 'b>"
    assert handle.path_segment().arguments.args == (Lifetime("a"), Lifetime("b"))
    assert CarrierHandle("c").path_segment().arguments is None


def test_declarations_render_carriers() -> None:
    catalog = SignatureCatalog()
    signature = _signature(params=[("s", "&str"), ("n", "usize")], output="&str")
    catalog.intern_inputs(signature.inputs)
    catalog.intern_return(signature.output)
    texts = [item.text for item in catalog.declarations()]
    assert texts == [
        textwrap.dedent(
            """\
            pub(super) struct _generic_tests_args_0<'_generic_tests_0> {
                pub s: &'_generic_tests_0 str,
                pub n: usize,
            }"""
        ),
        "pub(super) type _generic_tests_ret_0<'_generic_tests_0> = &'_generic_tests_0 str;",
    ]
    assert render_type(signature.output.ty) == "&'_generic_tests_0 str"


def test_carriers_enumerate_in_registration_order() -> None:
    catalog = SignatureCatalog()
    for name in ("b", "a", "c"):
        catalog.intern_inputs(_signature(params=[(name, "u8")]).inputs)
    assert [sig.args[0].ident for _, sig in catalog.input_carriers()] == ["b", "a", "c"]


def test_carrier_order_regression_is_caught() -> None:
    catalog = SignatureCatalog()
    catalog.intern_inputs(_signature(params=[("x", "u8")]).inputs)
    catalog.intern_inputs(_signature(params=[("y", "u8")]).inputs)
    catalog._inputs.entries = dict(reversed(list(catalog._inputs.entries.items())))
    with pytest.raises(OrderViolation):
        catalog.input_carriers()
    with order_policy(OrderPolicy.SORT):
        assert [handle.ident for handle, _ in catalog.input_carriers()] == [
            "_generic_tests_args_0",
            "_generic_tests_args_1",
        ]
