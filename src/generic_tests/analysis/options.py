from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from generic_tests.config import TomlTable, marker_attr_list, mirrored_attr_list
from generic_tests.exceptions import ErrorRecord, GenericTestsError, SyntaxProblem
from generic_tests.syntax.model import Attribute, Path, Span
from generic_tests.syntax.parser import MetaEntry, MetaForm, attribute_list_body, parse_meta_list

DEFAULT_TEST_ATTRS = ("test", "ignore", "should_panic", "bench")
DEFAULT_COPIED_ATTRS = ("cfg",)

OVERRIDE_ATTR = "generic_test"
ATTRS_KEY = "attrs"
COPY_ATTRS_KEY = "copy_attrs"

_OVERRIDE_HINT = "use `attrs()`, `copy_attrs()`"


def _paths(names: Iterable[str]) -> frozenset[Path]:
    return frozenset(Path.from_str(name) for name in names)


@dataclass(frozen=True)
class ClassificationConfig:
    """Attribute paths that mark test cases and paths mirrored onto them."""

    test_attrs: frozenset[Path]
    copy_attrs: frozenset[Path]

    @classmethod
    def default(cls) -> "ClassificationConfig":
        return cls(_paths(DEFAULT_TEST_ATTRS), _paths(DEFAULT_COPIED_ATTRS))

    @classmethod
    def from_toml(cls, section: TomlTable | None) -> "ClassificationConfig":
        config = cls.default()
        markers = marker_attr_list(section)
        mirrored = mirrored_attr_list(section)
        return cls(
            test_attrs=config.test_attrs if markers is None else _paths(markers),
            copy_attrs=config.copy_attrs if mirrored is None else _paths(mirrored),
        )

    def is_test_attr(self, attr: Attribute) -> bool:
        return attr.path in self.test_attrs

    def is_copied_attr(self, attr: Attribute) -> bool:
        return attr.path in self.copy_attrs


@dataclass
class ParsedOptions:
    """Attribute lists given explicitly; None means "not overridden"."""

    test_attrs: Optional[set[Path]] = None
    copy_attrs: Optional[set[Path]] = None

    def apply(self, entry: MetaEntry) -> bool:
        if entry.form is not MetaForm.LIST:
            return False
        if entry.key.is_ident(ATTRS_KEY):
            if self.test_attrs is None:
                self.test_attrs = set()
            self.test_attrs.update(entry.paths)
            return True
        if entry.key.is_ident(COPY_ATTRS_KEY):
            if self.copy_attrs is None:
                self.copy_attrs = set()
            self.copy_attrs.update(entry.paths)
            return True
        return False

    def into_effective(self, base: ClassificationConfig) -> ClassificationConfig:
        return ClassificationConfig(
            test_attrs=base.test_attrs if self.test_attrs is None else frozenset(self.test_attrs),
            copy_attrs=base.copy_attrs if self.copy_attrs is None else frozenset(self.copy_attrs),
        )


def parse_unit_options(
    text: Optional[str],
    base: ClassificationConfig | None = None,
    *,
    span: Span | None = None,
) -> ClassificationConfig:
    """Build the unit's config from its `attrs(...)`/`copy_attrs(...)` arguments."""
    base = base or ClassificationConfig.default()
    if text is None or not text.strip():
        return base
    try:
        entries = parse_meta_list(text)
    except SyntaxProblem as exc:
        raise GenericTestsError.single(
            f"malformed configuration argument list: {exc.reason}", span
        ) from exc
    errors = ErrorRecord()
    parsed = ParsedOptions()
    for entry in entries:
        if not parsed.apply(entry):
            errors.add(f"unsupported attribute `{entry.key}`", span)
    errors.check()
    return parsed.into_effective(base)


def parse_fn_override(attr: Attribute, into: ParsedOptions | None = None) -> ParsedOptions:
    """Parse a `generic_test(attrs(...), copy_attrs(...))` attribute.

    Lists from several override attributes on one function accumulate in `into`.
    """
    if attr.args is None or not attr.args.strip():
        raise GenericTestsError.single(
            f"attribute must have arguments; {_OVERRIDE_HINT}", attr.span
        )
    body = attribute_list_body(attr.args)
    if body is None:
        raise GenericTestsError.single(
            f"unexpected attribute input; {_OVERRIDE_HINT}", attr.span
        )
    try:
        entries = parse_meta_list(body)
    except SyntaxProblem as exc:
        raise GenericTestsError.single(
            f"malformed `{OVERRIDE_ATTR}` arguments: {exc.reason}", attr.span
        ) from exc
    if not entries:
        raise GenericTestsError.single(
            f"attribute must have arguments; {_OVERRIDE_HINT}", attr.span
        )
    parsed = into if into is not None else ParsedOptions()
    for entry in entries:
        if not parsed.apply(entry):
            raise GenericTestsError.single(
                f"unexpected attribute input; {_OVERRIDE_HINT}", attr.span
            )
    return parsed


def is_override_attr(attr: Attribute) -> bool:
    return attr.path.is_ident(OVERRIDE_ATTR)
