"""Clause list parser.

This module turns the raw clause text given to the `db_test` decorator
into an ordered tuple of clause nodes. It knows only the shape of the
grammar; the meaning of each clause is checked by the validator.

Lexical elements:
- identifier paths, separated by `.` or `::`;
- single or double quoted strings with Python escapes;
- integer and decimal numbers;
- the punctuation `(`, `)`, `,` and `=`.

Every malformed shape is reported as `ClauseSyntaxError` attributed
to the span of the offending token.
"""

from ast import literal_eval
from re import ASCII, VERBOSE
from re import compile as regexp
from typing import NamedTuple

from pytest_dbtest.errors import ClauseSyntaxError
from pytest_dbtest.schema import (
    BoolLiteral,
    Clause,
    ListClause,
    LiteralValue,
    NameValueClause,
    NumberLiteral,
    PathClause,
    PathLiteral,
    Span,
    StrLiteral,
)

_TOKEN_PATTERN = regexp(
    r'''
      (?P<space>\s+)
    | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    | (?P<unterminated>["'])
    | (?P<number>-?\d+(?:\.\d+)?)
    | (?P<path>[A-Za-z_]\w*(?:(?:\.|::)[A-Za-z_]\w*)*)
    | (?P<punct>[(),=])
    ''',
    flags=ASCII | VERBOSE,
)

_TRUE = frozenset(('true', 'True'))
_FALSE = frozenset(('false', 'False'))

EOF = 'eof'


class Token(NamedTuple):
    """Lexical token with its kind, raw text and span."""

    kind: str
    text: str
    span: Span


def tokenize(source: str) -> list[Token]:
    """Split clause text into tokens.

    Whitespace, including newlines, is skipped. The returned list always
    ends with an end-of-input token positioned after the last character.

    Args:
        source: Raw clause text.

    Returns:
        List of tokens.

    Raises:
        ClauseSyntaxError: On an unexpected character or an unterminated string.
    """
    tokens = []
    position = 0

    while position < len(source):
        match = _TOKEN_PATTERN.match(source, position)
        if not match:
            raise ClauseSyntaxError.from_span(
                f'Unexpected character {source[position]!r}',
                source,
                Span.at(source, position, position + 1),
            )

        kind = match.lastgroup or ''
        span = Span.at(source, match.start(), match.end())

        if kind == 'unterminated':
            raise ClauseSyntaxError.from_span('Unterminated string literal', source, span)

        if kind == 'punct':
            kind = match.group()

        if kind != 'space':
            tokens.append(Token(kind, match.group(), span))

        position = match.end()

    tokens.append(Token(EOF, '', Span.at(source, len(source), len(source))))

    return tokens


class ClauseParser:
    """Recursive descent parser for clause lists.

    Grammar:
        clauses := [clause ("," clause)* [","]]
        clause  := PATH "(" [value ("," value)* [","]] ")"
                 | PATH "=" value
                 | PATH
        value   := STRING | BOOL | NUMBER | PATH

    A parser instance is bound to one clause text and is not reusable.
    """

    def __init__(self, source: str) -> None:
        """Initialize the parser.

        Args:
            source: Raw clause text.
        """
        self.source = source
        self.tokens: list[Token] = []
        self.position = 0

    def parse(self) -> tuple[Clause, ...]:
        """Parse the whole clause text.

        Returns:
            Clause nodes in the order they were written.

        Raises:
            ClauseSyntaxError: If the text does not match the grammar.
        """
        self.tokens = tokenize(self.source)
        self.position = 0

        clauses: list[Clause] = []

        while self.peek().kind != EOF:
            clauses.append(self.parse_clause())

            if self.peek().kind == EOF:
                break

            self.expect(',', 'Expected `,` between clauses')

        return tuple(clauses)

    def parse_clause(self) -> Clause:
        """Parse a single clause."""
        name = self.expect('path', 'Expected clause name')

        if self.peek().kind == '(':
            return self.parse_list(name)

        if self.peek().kind == '=':
            self.advance()
            value = self.parse_value()
            return NameValueClause(
                name=name.text,
                name_span=name.span,
                value=value,
                span=name.span.join(value.span),
            )

        return PathClause(
            name=name.text,
            name_span=name.span,
            span=name.span,
        )

    def parse_list(self, name: Token) -> ListClause:
        """Parse the parenthesized part of a list clause."""
        opening = self.advance()
        items: list[LiteralValue] = []

        while self.peek().kind != ')':
            if self.peek().kind == EOF:
                raise ClauseSyntaxError.from_span('Unclosed `(`', self.source, opening.span)

            items.append(self.parse_value())

            if self.peek().kind == ',':
                self.advance()
            elif self.peek().kind not in (')', EOF):
                raise self.error('Expected `,` or `)`')

        closing = self.advance()

        return ListClause(
            name=name.text,
            name_span=name.span,
            items=tuple(items),
            span=name.span.join(closing.span),
        )

    def parse_value(self) -> LiteralValue:
        """Parse a literal value."""
        token = self.peek()

        if token.kind == 'string':
            self.advance()
            try:
                value = literal_eval(token.text)
            except (SyntaxError, ValueError) as base:
                raise ClauseSyntaxError.from_span(
                    'Invalid string literal',
                    self.source,
                    token.span,
                ) from base
            return StrLiteral(value=value, span=token.span)

        if token.kind == 'number':
            self.advance()
            number = float(token.text) if '.' in token.text else int(token.text)
            return NumberLiteral(value=number, span=token.span)

        if token.kind == 'path':
            self.advance()
            if token.text in _TRUE:
                return BoolLiteral(value=True, span=token.span)
            if token.text in _FALSE:
                return BoolLiteral(value=False, span=token.span)
            return PathLiteral(value=token.text, span=token.span)

        raise self.error('Expected literal value')

    def peek(self) -> Token:
        """Return the current token without consuming it."""
        return self.tokens[self.position]

    def advance(self) -> Token:
        """Consume and return the current token."""
        token = self.tokens[self.position]
        if token.kind != EOF:
            self.position += 1

        return token

    def expect(self, kind: str, message: str) -> Token:
        """Consume a token of the given kind or fail.

        Args:
            kind: Expected token kind.
            message: Error message if the current token differs.

        Returns:
            The consumed token.

        Raises:
            ClauseSyntaxError: If the current token has another kind.
        """
        if self.peek().kind != kind:
            raise self.error(message)

        return self.advance()

    def error(self, message: str) -> ClauseSyntaxError:
        """Create a syntax error attributed to the current token."""
        token = self.peek()
        if token.kind == EOF:
            message += ', found end of input'
        else:
            message += f', found {token.text!r}'

        return ClauseSyntaxError.from_span(message, self.source, token.span)


def parse_clauses(source: str) -> tuple[Clause, ...]:
    """Parse clause text into clause nodes.

    Args:
        source: Raw clause text; empty or blank text yields no clauses.

    Returns:
        Clause nodes in the order they were written.

    Raises:
        ClauseSyntaxError: If the text does not match the grammar.
    """
    return ClauseParser(source).parse()
