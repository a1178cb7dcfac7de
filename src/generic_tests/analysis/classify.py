from __future__ import annotations

from dataclasses import dataclass

from generic_tests.analysis.options import (
    ClassificationConfig,
    ParsedOptions,
    is_override_attr,
    parse_fn_override,
)
from generic_tests.exceptions import ErrorRecord, GenericTestsError
from generic_tests.syntax.model import Attribute, Function


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one function's attributes.

    `forwarded_attrs` holds the markers and the mirrored attributes in their
    original relative order; it is what every forwarding function carries.
    """

    marker_attrs: tuple[Attribute, ...] = ()
    forwarded_attrs: tuple[Attribute, ...] = ()

    @property
    def is_test_case(self) -> bool:
        return bool(self.marker_attrs)


def strip_overrides(fn: Function) -> ParsedOptions:
    """Remove every `generic_test` attribute from `fn` and merge their lists.

    The attributes are removed even when one of them is malformed; the
    failure is raised afterwards with every problem found.
    """
    parsed = ParsedOptions()
    errors = ErrorRecord()
    kept: list[Attribute] = []
    for attr in fn.attrs:
        if not is_override_attr(attr):
            kept.append(attr)
            continue
        try:
            parse_fn_override(attr, into=parsed)
        except GenericTestsError as exc:
            errors.add_error(exc)
    fn.attrs[:] = kept
    errors.check()
    return parsed


def classify_function(fn: Function, config: ClassificationConfig) -> Classification:
    """Split `fn`'s attributes into markers and mirrored attributes.

    Markers are removed from `fn.attrs`; everything else stays in place.
    A function without markers is left as it is apart from its overrides.
    """
    effective = strip_overrides(fn).into_effective(config)
    markers: list[Attribute] = []
    forwarded: list[Attribute] = []
    surviving: list[Attribute] = []
    for attr in fn.attrs:
        if effective.is_test_attr(attr):
            markers.append(attr)
            forwarded.append(attr)
            continue
        surviving.append(attr)
        if effective.is_copied_attr(attr):
            forwarded.append(attr)
    if not markers:
        return Classification()
    fn.attrs[:] = surviving
    return Classification(tuple(markers), tuple(forwarded))
