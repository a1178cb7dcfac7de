from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from generic_tests.exceptions import SyntaxProblem


class TokenKind(StrEnum):
    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    offset: int

    def is_punct(self, text: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text == text

    def is_keyword(self, text: str) -> bool:
        return self.kind is TokenKind.IDENT and self.text == text


_MULTI_PUNCT = ("...", "::", "->", "=>", "..", "==", "!=", "<=", ">=", "&&", "||")
_SINGLE_PUNCT = set("<>()[]{},;:&*!?+-=#@/%^|.~$")

_IDENT_RE = re.compile(r"(?:r#)?[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(r"[0-9][0-9A-Za-z_]*(?:\.[0-9][0-9A-Za-z_]*)?")
_CHAR_RE = re.compile(r"b?'(?:\\u\{[0-9A-Fa-f]{1,6}\}|\\x[0-9A-Fa-f]{2}|\\.|[^'\\])'")
_LIFETIME_RE = re.compile(r"'[A-Za-z_][A-Za-z0-9_]*")
_STRING_RE = re.compile(r'b?"(?:\\.|[^"\\])*"', re.DOTALL)
_RAW_STRING_RE = re.compile(r'b?r(#*)"')


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while pos < length:
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        if text.startswith("//", pos):
            end = text.find("\n", pos)
            pos = length if end < 0 else end + 1
            continue
        raw = _RAW_STRING_RE.match(text, pos)
        if raw is not None:
            closing = '"' + raw.group(1)
            end = text.find(closing, raw.end())
            if end < 0:
                raise SyntaxProblem("unterminated raw string literal", text, pos)
            end += len(closing)
            tokens.append(Token(TokenKind.LITERAL, text[pos:end], pos))
            pos = end
            continue
        match = _STRING_RE.match(text, pos)
        if match is not None:
            tokens.append(Token(TokenKind.LITERAL, match.group(0), pos))
            pos = match.end()
            continue
        if ch == '"':
            raise SyntaxProblem("unterminated string literal", text, pos)
        match = _CHAR_RE.match(text, pos)
        if match is not None:
            tokens.append(Token(TokenKind.LITERAL, match.group(0), pos))
            pos = match.end()
            continue
        match = _LIFETIME_RE.match(text, pos)
        if match is not None:
            tokens.append(Token(TokenKind.LIFETIME, match.group(0), pos))
            pos = match.end()
            continue
        match = _IDENT_RE.match(text, pos)
        if match is not None:
            tokens.append(Token(TokenKind.IDENT, match.group(0), pos))
            pos = match.end()
            continue
        match = _NUMBER_RE.match(text, pos)
        if match is not None:
            tokens.append(Token(TokenKind.LITERAL, match.group(0), pos))
            pos = match.end()
            continue
        for punct in _MULTI_PUNCT:
            if text.startswith(punct, pos):
                tokens.append(Token(TokenKind.PUNCT, punct, pos))
                pos += len(punct)
                break
        else:
            if ch not in _SINGLE_PUNCT:
                raise SyntaxProblem(f"unexpected character {ch!r}", text, pos)
            tokens.append(Token(TokenKind.PUNCT, ch, pos))
            pos += 1
    return tokens


def literal_line_starts(text: str) -> list[bool]:
    """For each line of `text`, whether it begins inside a string literal.

    Only the lexical structure that decides this is tracked: string and raw
    string literals, char literals and line comments.
    """
    starts = [False]
    closing: str | None = None
    escapes = False
    pos = 0
    length = len(text)
    while pos < length:
        ch = text[pos]
        if ch == "\n":
            starts.append(closing is not None)
            pos += 1
            continue
        if closing is not None:
            if escapes and ch == "\\":
                # An escaped newline still starts a line inside the literal.
                pos += 1
                if pos < length and text[pos] == "\n":
                    starts.append(True)
                pos += 1
                continue
            if text.startswith(closing, pos):
                pos += len(closing)
                closing = None
                continue
            pos += 1
            continue
        if text.startswith("//", pos):
            end = text.find("\n", pos)
            pos = length if end < 0 else end
            continue
        if pos == 0 or not (text[pos - 1].isalnum() or text[pos - 1] == "_"):
            raw = _RAW_STRING_RE.match(text, pos)
            if raw is not None:
                closing = '"' + raw.group(1)
                escapes = False
                pos = raw.end()
                continue
        if ch == '"':
            closing = '"'
            escapes = True
            pos += 1
            continue
        if ch == "'":
            match = _CHAR_RE.match(text, pos)
            if match is not None:
                pos = match.end()
                continue
        pos += 1
    return starts
