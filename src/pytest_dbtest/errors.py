"""Core exception hierarchy.

This module defines the error and warning types used across the library
to report clause syntax problems, invalid option combinations, resource
resolution failures, and runtime delegation errors in a structured way.

All expansion errors are raised while a test function is being decorated.
None of them is recoverable within a single expansion: the expansion of
the affected function aborts and no partial wrapper is produced.
"""

from os import linesep
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    from typing import Self

if TYPE_CHECKING:
    from pytest_dbtest.schema import Span

FORMAT_FILENAME = '<unknown>'
FORMAT_INDENT = 4

#: Accepted clause grammar, reported by syntax errors.
EXPECTED_GRAMMAR = (
    'expected `fixtures("<filename>", ...)` or '
    '`migrations = "<path>" | false` or '
    '`migrator = "<module:attribute>"`'
)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file containing the decorated function.
    filename: str | None

    #: Zero-based line number of the decorated function.
    line_num: int | None

    #: Qualified name of the decorated function.
    function: str | None

    #: Raw clause text passed to the decorator.
    source: str | None
    #: Offending span within the clause text.
    span: 'Span | None'


class ErrorFormatter:
    """Utility class for formatting expansion errors.

    Produces human-readable messages with the function location and
    a caret snippet under the offending span of the clause text.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message.rstrip()

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line,
            function name and clause column when available.
        """
        indent = cls._ensure_indent(indent)

        filename = context.get('filename')
        if not filename:
            filename = FORMAT_FILENAME

        message = f'{indent}in "{filename}"'
        if (line_num := context.get('line_num')) is not None:
            message += f', line {line_num + 1}'
        message += linesep

        if function := context.get('function'):
            message += f'{indent}in function "{function}"'
            if (span := context.get('span')) is not None:
                message += f', clause line {span.line + 1}, column {span.column + 1}'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a formatted snippet illustrating the error context.

        Args:
            context: Error context containing clause text and span.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no snippet data is available.
        """
        indent = cls._ensure_indent(indent)

        source = context.get('source')
        span = context.get('span')
        if source is not None and span is not None:
            return cls._make_caret(source, span, indent)

        return ''

    @staticmethod
    def _make_caret(source: str, span: 'Span', indent: str) -> str:
        """Render the clause line containing a span with a caret marker.

        Args:
            source: Raw clause text.
            span: Offending span within the text.
            indent: String indentation prefix.

        Returns:
            Two lines: the clause line and the caret marker below it.
        """
        line_start = source.rfind('\n', 0, span.start) + 1
        line_end = source.find('\n', span.start)
        if line_end < 0:
            line_end = len(source)

        width = max(1, min(span.end, line_end) - span.start)
        caret = ' ' * (span.start - line_start) + '^' * width

        return f'{indent}{source[line_start:line_end]}{linesep}{indent}{caret}{linesep}'

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input.

        Args:
            indent: Indentation as string or number of spaces.

        Returns:
            A string consisting of spaces or the provided string.
        """
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class MigrateWarning(UserWarning):
    """Warning emitted for skipped entries of a migrations directory."""


class DBTestError(Exception, ErrorFormatter):
    """Base exception for all pytest-dbtest errors.

    All custom exceptions raised by the library inherit from this class
    to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context with location and snippet data.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String represenatation."""
        return self.format(self.message, self.context)


class ExpansionError(DBTestError):
    """Error raised while expanding a decorated test function.

    Expansion errors are diagnostics of the decoration step. They are
    attributed to the offending clause span when one exists and are
    enriched with the function location by the expander.
    """

    @classmethod
    def from_span(cls, message: str, source: str, span: 'Span') -> 'Self':
        """Create an error attributed to a span of the clause text.

        Args:
            message: Human-readable error message.
            source: Raw clause text.
            span: Offending span within the text.

        Returns:
            An initialized error with snippet context.
        """
        return cls(message, context=ErrorContext(source=source, span=span))

    def locate(self, *, filename: str | None,
               line_num: int | None,
               function: str | None) -> 'Self':
        """Attach the decorated function location to the error.

        Args:
            filename: Source file of the decorated function.
            line_num: Zero-based line of the decorated function.
            function: Qualified name of the decorated function.

        Returns:
            The same error instance for chaining with `raise`.
        """
        self.context = ErrorContext({
            **(self.context or {}),
            'filename': filename,
            'line_num': line_num,
            'function': function,
        })

        return self


class ClauseSyntaxError(ExpansionError):
    """Malformed clause list or an unknown clause shape."""


class DuplicateOptionError(ExpansionError):
    """An option that may appear at most once was given twice."""


class InvalidOptionValueError(ExpansionError):
    """An option received a value of the wrong kind."""


class RedundantOptionError(ExpansionError):
    """An option restates the default behavior."""


class UnsupportedCombinationError(ExpansionError):
    """Options were given to a function that cannot use them."""


class MissingCapabilityError(ExpansionError):
    """Managed mode was requested while the `migrate` capability is disabled."""


class FixtureIOError(ExpansionError):
    """A fixture file is missing or cannot be read."""


class MigrateError(ExpansionError):
    """A migrations source is missing, unreadable or malformed."""


class RunnerError(DBTestError):
    """Error raised while delegating a generated test to a runner.

    This exception indicates a failure that occurs at test run time, for
    example a missing runner or an unresolvable code reference.
    """
