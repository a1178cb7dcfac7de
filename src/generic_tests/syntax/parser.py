"""Parser for the Rust type-expression subset the engine works on.

Full items are never parsed here. Only the pieces that arrive as source
text are: type expressions, bounds, generic argument lists, attribute
paths and the nested meta lists used by configuration attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from generic_tests.exceptions import SyntaxProblem
from generic_tests.syntax.model import (
    UNIT_TYPE,
    AngleArguments,
    ArrayType,
    AssocBinding,
    BareFnArg,
    BareFnType,
    BoundLifetimes,
    ConstArg,
    GenericArgument,
    ImplTraitType,
    InferType,
    Lifetime,
    LifetimeBound,
    NeverType,
    ParenthesizedArguments,
    ParenType,
    Path,
    PathSegment,
    PathType,
    PointerType,
    QualifiedPathType,
    ReferenceType,
    SliceType,
    TraitBound,
    TraitObjectType,
    TupleType,
    Type,
    TypeParamBound,
    TypePath,
)
from generic_tests.syntax.tokens import Token, TokenKind, tokenize

_OPEN = {"(": ")", "[": "]", "{": "}"}
_PATH_KEYWORDS = {"self", "super", "crate", "Self"}
_FN_PREFIX = {"fn", "unsafe", "extern"}


class MetaForm(StrEnum):
    PATH = "path"
    LIST = "list"
    NAME_VALUE = "name_value"


@dataclass(frozen=True)
class MetaEntry:
    key: Path
    form: MetaForm
    paths: tuple[Path, ...] = ()
    offset: int = 0


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens: list[Token] = tokenize(text)
        self.pos = 0

    # Token cursor

    def peek(self, ahead: int = 0) -> Optional[Token]:
        index = self.pos + ahead
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def at_punct(self, text: str, ahead: int = 0) -> bool:
        token = self.peek(ahead)
        return token is not None and token.is_punct(text)

    def at_keyword(self, text: str, ahead: int = 0) -> bool:
        token = self.peek(ahead)
        return token is not None and token.is_keyword(text)

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of input")
        self.pos += 1
        return token

    def expect_punct(self, text: str) -> Token:
        if not self.at_punct(text):
            raise self.error(f"expected `{text}`")
        return self.advance()

    def eat_punct(self, text: str) -> bool:
        if self.at_punct(text):
            self.pos += 1
            return True
        return False

    def eat_keyword(self, text: str) -> bool:
        if self.at_keyword(text):
            self.pos += 1
            return True
        return False

    def offset(self) -> int:
        token = self.peek()
        return len(self.text) if token is None else token.offset

    def error(self, message: str) -> SyntaxProblem:
        token = self.peek()
        if token is not None:
            message = f"{message}, found `{token.text}`"
        return SyntaxProblem(message, self.text, self.offset())

    def expect_end(self) -> None:
        if self.peek() is not None:
            raise self.error("unexpected trailing input")

    def split_compound(self, compound: str, first: str) -> None:
        # `&&` and `>=` arrive as single tokens but may close two type forms.
        if self.pos >= len(self.tokens):
            return
        token = self.tokens[self.pos]
        if token.is_punct(compound):
            rest = compound[len(first):]
            self.tokens[self.pos : self.pos + 1] = [
                Token(TokenKind.PUNCT, first, token.offset),
                Token(TokenKind.PUNCT, rest, token.offset + len(first)),
            ]

    def source_between(self, start: int, end: int) -> str:
        return self.text[start:end].strip()

    def skip_balanced_until(self, closers: set[str]) -> int:
        """Skip tokens up to (not including) a top-level closer; return end offset."""
        depth = 0
        while True:
            token = self.peek()
            if token is None:
                raise self.error("unbalanced delimiters")
            if token.kind is TokenKind.PUNCT:
                if depth == 0 and token.text in closers:
                    return token.offset
                if token.text in _OPEN:
                    depth += 1
                elif token.text in _OPEN.values():
                    depth -= 1
            self.pos += 1

    # Lifetimes and binders

    def parse_lifetime(self) -> Lifetime:
        token = self.peek()
        if token is None or token.kind is not TokenKind.LIFETIME:
            raise self.error("expected lifetime")
        self.pos += 1
        return Lifetime(token.text[1:])

    def parse_binder(self) -> BoundLifetimes:
        if not self.eat_keyword("for"):
            raise self.error("expected `for`")
        self.expect_punct("<")
        lifetimes: list[Lifetime] = []
        while not self.at_punct(">"):
            lifetimes.append(self.parse_lifetime())
            if not self.eat_punct(","):
                break
        self.expect_punct(">")
        return BoundLifetimes(tuple(lifetimes))

    # Paths

    def parse_ident(self) -> str:
        token = self.peek()
        if token is None or token.kind is not TokenKind.IDENT:
            raise self.error("expected identifier")
        self.pos += 1
        return token.text

    def at_segment_separator(self) -> bool:
        token = self.peek(1)
        return self.at_punct("::") and token is not None and token.kind is TokenKind.IDENT

    def parse_path_segment(self, *, allow_parenthesized: bool = True) -> PathSegment:
        ident = self.parse_ident()
        arguments = None
        if self.at_punct("::") and self.at_punct("<", 1):
            self.advance()
            arguments = self.parse_angle_arguments(turbofish=True)
        elif self.at_punct("<"):
            arguments = self.parse_angle_arguments(turbofish=False)
        elif allow_parenthesized and self.at_punct("(") and ident not in _PATH_KEYWORDS:
            arguments = self.parse_parenthesized_arguments()
        return PathSegment(ident, arguments)

    def parse_type_path(self, *, allow_parenthesized: bool = True) -> TypePath:
        leading = self.eat_punct("::")
        segments = [self.parse_path_segment(allow_parenthesized=allow_parenthesized)]
        while self.at_segment_separator():
            self.advance()
            segments.append(self.parse_path_segment(allow_parenthesized=allow_parenthesized))
        return TypePath(tuple(segments), leading)

    def parse_angle_arguments(self, *, turbofish: bool) -> AngleArguments:
        self.expect_punct("<")
        args: list[GenericArgument] = []
        while True:
            self.split_compound(">=", ">")
            if self.at_punct(">"):
                break
            args.append(self.parse_generic_argument())
            self.split_compound(">=", ">")
            if not self.eat_punct(","):
                break
        self.expect_punct(">")
        return AngleArguments(tuple(args), turbofish)

    def parse_generic_argument(self) -> GenericArgument:
        token = self.peek()
        if token is None:
            raise self.error("expected generic argument")
        if token.kind is TokenKind.LIFETIME:
            return self.parse_lifetime()
        if token.kind is TokenKind.LITERAL:
            self.advance()
            return ConstArg(token.text)
        if token.is_punct("-"):
            start = token.offset
            self.advance()
            literal = self.peek()
            if literal is None or literal.kind is not TokenKind.LITERAL:
                raise self.error("expected literal after `-`")
            self.advance()
            return ConstArg(self.source_between(start, literal.offset + len(literal.text)))
        if token.is_punct("{"):
            start = token.offset
            self.advance()
            end = self.skip_balanced_until({"}"})
            self.advance()
            return ConstArg(self.source_between(start, end + 1))
        if token.is_keyword("true") or token.is_keyword("false"):
            self.advance()
            return ConstArg(token.text)
        if token.kind is TokenKind.IDENT and self.at_punct("=", 1):
            ident = self.parse_ident()
            self.advance()
            return AssocBinding(ident, self.parse_type())
        if token.kind is TokenKind.IDENT and self.at_punct(":", 1):
            raise self.error("associated type constraints are not supported")
        return self.parse_type()

    def parse_parenthesized_arguments(self) -> ParenthesizedArguments:
        self.expect_punct("(")
        inputs: list[Type] = []
        while not self.at_punct(")"):
            inputs.append(self.parse_type())
            if not self.eat_punct(","):
                break
        self.expect_punct(")")
        output = None
        if self.eat_punct("->"):
            output = self.parse_type(allow_plus=False)
        return ParenthesizedArguments(tuple(inputs), output)

    # Bounds

    def parse_bounds(self, *, allow_plus: bool = True) -> tuple[TypeParamBound, ...]:
        bounds = [self.parse_bound()]
        while allow_plus and self.eat_punct("+"):
            if self.peek() is None or self.at_punct(">") or self.at_punct(","):
                break
            bounds.append(self.parse_bound())
        return tuple(bounds)

    def parse_bound(self) -> TypeParamBound:
        token = self.peek()
        if token is not None and token.kind is TokenKind.LIFETIME:
            return LifetimeBound(self.parse_lifetime())
        if self.eat_punct("("):
            bound = self.parse_bound()
            self.expect_punct(")")
            if isinstance(bound, TraitBound):
                return TraitBound(bound.path, bound.lifetimes, bound.maybe, parenthesized=True)
            return bound
        maybe = self.eat_punct("?")
        binder = self.parse_binder() if self.at_keyword("for") else None
        path = self.parse_type_path()
        return TraitBound(path, binder, maybe)

    # Types

    def parse_type(self, *, allow_plus: bool = True) -> Type:
        token = self.peek()
        if token is None:
            raise self.error("expected type")
        if token.kind is TokenKind.PUNCT:
            return self.parse_punct_type(token, allow_plus=allow_plus)
        if token.kind is not TokenKind.IDENT:
            raise self.error("expected type")
        if token.text == "_":
            self.advance()
            return InferType()
        if token.text == "dyn":
            self.advance()
            return TraitObjectType(self.parse_bounds(allow_plus=allow_plus), dyn=True)
        if token.text == "impl":
            self.advance()
            return ImplTraitType(self.parse_bounds(allow_plus=allow_plus))
        if token.text == "for":
            start = self.pos
            binder = self.parse_binder()
            if self.at_keyword("fn") or self.at_keyword("unsafe") or self.at_keyword("extern"):
                return self.parse_bare_fn(binder)
            self.pos = start
            return TraitObjectType(self.parse_bounds(allow_plus=allow_plus), dyn=False)
        if token.text in _FN_PREFIX:
            return self.parse_bare_fn(None)
        return self.parse_path_type(allow_plus=allow_plus)

    def parse_punct_type(self, token: Token, *, allow_plus: bool) -> Type:
        if token.is_punct("&&"):
            self.split_compound("&&", "&")
            token = self.tokens[self.pos]
        if token.is_punct("&"):
            self.advance()
            lifetime = None
            next_token = self.peek()
            if next_token is not None and next_token.kind is TokenKind.LIFETIME:
                lifetime = self.parse_lifetime()
            mutable = self.eat_keyword("mut")
            return ReferenceType(self.parse_type(allow_plus=False), lifetime, mutable)
        if token.is_punct("*"):
            self.advance()
            if self.eat_keyword("mut"):
                mutable = True
            elif self.eat_keyword("const"):
                mutable = False
            else:
                raise self.error("expected `const` or `mut` after `*`")
            return PointerType(self.parse_type(allow_plus=False), mutable)
        if token.is_punct("["):
            self.advance()
            elem = self.parse_type()
            if self.eat_punct(";"):
                start = self.offset()
                end = self.skip_balanced_until({"]"})
                self.advance()
                length = self.source_between(start, end)
                if not length:
                    raise SyntaxProblem("expected array length", self.text, start)
                return ArrayType(elem, length)
            self.expect_punct("]")
            return SliceType(elem)
        if token.is_punct("("):
            self.advance()
            if self.eat_punct(")"):
                return UNIT_TYPE
            elems = [self.parse_type()]
            trailing = False
            while self.eat_punct(","):
                trailing = True
                if self.at_punct(")"):
                    break
                trailing = False
                elems.append(self.parse_type())
            self.expect_punct(")")
            if len(elems) == 1 and not trailing:
                return ParenType(elems[0])
            return TupleType(tuple(elems))
        if token.is_punct("!"):
            self.advance()
            return NeverType()
        if token.is_punct("<"):
            return self.parse_qualified_path_type()
        if token.is_punct("::"):
            return self.parse_path_type(allow_plus=allow_plus)
        raise self.error("expected type")

    def parse_qualified_path_type(self) -> QualifiedPathType:
        self.expect_punct("<")
        qself = self.parse_type()
        trait_path = None
        if self.eat_keyword("as"):
            trait_path = self.parse_type_path()
        self.expect_punct(">")
        segments: list[PathSegment] = []
        while self.at_segment_separator():
            self.advance()
            segments.append(self.parse_path_segment())
        if not segments:
            raise self.error("expected `::` and an associated item after qualified self type")
        return QualifiedPathType(qself, trait_path, tuple(segments))

    def parse_path_type(self, *, allow_plus: bool) -> Type:
        path = self.parse_type_path()
        if allow_plus and self.at_punct("+"):
            bounds = [TraitBound(path)]
            while self.eat_punct("+"):
                bounds.append(self.parse_bound())
            return TraitObjectType(tuple(bounds), dyn=False)
        return PathType(path)

    def parse_bare_fn(self, binder: Optional[BoundLifetimes]) -> BareFnType:
        unsafety = self.eat_keyword("unsafe")
        abi = None
        if self.eat_keyword("extern"):
            abi = ""
            token = self.peek()
            if token is not None and token.kind is TokenKind.LITERAL:
                abi = self.advance().text
        if not self.eat_keyword("fn"):
            raise self.error("expected `fn`")
        self.expect_punct("(")
        inputs: list[BareFnArg] = []
        variadic = False
        while not self.at_punct(")"):
            if self.eat_punct("..."):
                variadic = True
                break
            token = self.peek()
            name = None
            if (
                token is not None
                and token.kind is TokenKind.IDENT
                and self.at_punct(":", 1)
            ):
                name = self.parse_ident()
                self.advance()
            inputs.append(BareFnArg(self.parse_type(), name))
            if not self.eat_punct(","):
                break
        self.expect_punct(")")
        output = None
        if self.eat_punct("->"):
            output = self.parse_type(allow_plus=False)
        return BareFnType(tuple(inputs), output, binder, unsafety, abi, variadic)

    # Attribute paths and meta lists

    def parse_simple_path(self) -> Path:
        leading = self.eat_punct("::")
        segments = [self.parse_ident()]
        while self.eat_punct("::"):
            segments.append(self.parse_ident())
        return Path(tuple(segments), leading)

    def parse_meta_entries(self) -> list[MetaEntry]:
        entries: list[MetaEntry] = []
        while self.peek() is not None:
            offset = self.offset()
            key = self.parse_simple_path()
            if self.eat_punct("("):
                paths: list[Path] = []
                while not self.at_punct(")"):
                    paths.append(self.parse_simple_path())
                    if not self.eat_punct(","):
                        break
                self.expect_punct(")")
                entries.append(MetaEntry(key, MetaForm.LIST, tuple(paths), offset))
            elif self.eat_punct("="):
                self.skip_value()
                entries.append(MetaEntry(key, MetaForm.NAME_VALUE, (), offset))
            else:
                entries.append(MetaEntry(key, MetaForm.PATH, (), offset))
            if not self.eat_punct(","):
                break
        self.expect_end()
        return entries

    def skip_value(self) -> None:
        depth = 0
        while True:
            token = self.peek()
            if token is None:
                return
            if token.kind is TokenKind.PUNCT:
                if depth == 0 and token.text == ",":
                    return
                if token.text in _OPEN:
                    depth += 1
                elif token.text in _OPEN.values():
                    depth -= 1
            self.pos += 1


def _run(text: str, method, **kwargs):
    parser = _Parser(text)
    result = method(parser, **kwargs)
    parser.expect_end()
    return result


def parse_type(text: str) -> Type:
    return _run(text, _Parser.parse_type)


def parse_bounds(text: str) -> tuple[TypeParamBound, ...]:
    return _run(text, _Parser.parse_bounds)


def parse_lifetime(text: str) -> Lifetime:
    return _run(text, _Parser.parse_lifetime)


def parse_path(text: str) -> Path:
    return _run(text, _Parser.parse_simple_path)


def parse_generic_arguments(text: str) -> AngleArguments:
    """Parse a `<...>` argument list such as the one given to a marker."""
    return _run(text, _Parser.parse_angle_arguments, turbofish=False)


def parse_meta_list(text: str) -> list[MetaEntry]:
    """Parse `name(path, ...), name = value, name` entries."""
    return _Parser(text).parse_meta_entries()


def attribute_list_body(args: Optional[str]) -> Optional[str]:
    """Return the text inside `( ... )` attribute arguments, or None."""
    if args is None:
        return None
    stripped = args.strip()
    if len(stripped) < 2 or stripped[0] != "(" or stripped[-1] != ")":
        return None
    return stripped[1:-1]
