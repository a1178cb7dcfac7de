from __future__ import annotations

from generic_tests.analysis.catalog import render_args_carrier, render_return_carrier
from generic_tests.expand.engine import Expansion
from generic_tests.schema import CarrierDTO, MarkerDTO, PlanResponse, TestFunctionDTO
from generic_tests.syntax.printer import render_attribute


def build_plan(expansion: Expansion, origin: str = "") -> PlanResponse:
    """Summarize what an expansion found without rendering the tree."""
    catalog = expansion.tests.catalog
    carriers = [
        CarrierDTO(
            ident=handle.ident,
            lifetimes=[str(lifetime) for lifetime in handle.lifetimes],
            declaration=render_args_carrier(handle, signature),
        )
        for handle, signature in catalog.input_carriers()
    ]
    carriers.extend(
        CarrierDTO(
            ident=handle.ident,
            lifetimes=[str(lifetime) for lifetime in handle.lifetimes],
            declaration=render_return_carrier(handle, signature),
        )
        for handle, signature in catalog.return_carriers()
    )
    test_functions = [
        TestFunctionDTO(
            ident=test.ident,
            asyncness=test.asyncness,
            unsafety=test.unsafety,
            generic_arity=test.generic_arity,
            forwarded_attrs=[render_attribute(attr) for attr in test.forwarded_attrs],
            args_carrier=test.args_carrier.ident if test.args_carrier else None,
            return_carrier=test.return_carrier.ident if test.return_carrier else None,
        )
        for test in expansion.tests.test_fns
    ]
    markers = [
        MarkerDTO(path=list(marker.path), depth=marker.depth, arguments=marker.arguments)
        for marker in expansion.markers
    ]
    errors = [diagnostic.render(origin) for diagnostic in expansion.errors]
    return PlanResponse(
        module=expansion.module.ident,
        test_functions=test_functions,
        carriers=carriers,
        markers=markers,
        errors=errors,
        stats={
            "test_functions": len(test_functions),
            "carriers": len(carriers),
            "markers": len(markers),
            "errors": len(errors),
        },
    )
