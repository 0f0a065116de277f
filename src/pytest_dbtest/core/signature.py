"""Signatures of decorated test functions.

The code generator only needs a small, immutable view of the original
function: where it lives, what it is called, and how many positional
parameters it takes. The view is extracted either from a live callable
or from an `ast` function definition when expanding a file offline.

Functions defined in a class body are test methods: their first
parameter is the receiver pytest binds to the class instance. It is
passed through and never counted as an injected parameter.
"""

from ast import AsyncFunctionDef, FunctionDef
from inspect import Parameter, iscoroutinefunction, signature
from typing import TYPE_CHECKING, Self

from pydantic import Field

from pytest_dbtest.errors import UnsupportedCombinationError
from pytest_dbtest.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

_POSITIONAL = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)

_LOCALS = '<locals>'


class FunctionSignature(SchemaModel):
    """Signature of a decorated test function."""

    module: str
    name: str
    qualname: str

    receiver: str | None = None
    parameters: tuple[str, ...] = ()
    is_async: bool = False

    filename: str | None = Field(default=None, exclude=True)
    line_num: int | None = Field(default=None, exclude=True)

    @property
    def arity(self) -> int:
        """Number of positional parameters, the receiver excluded."""
        return len(self.parameters)

    @property
    def unique_id(self) -> str:
        """Identifier unique per compiled module: module path plus qualified name."""
        return f'{self.module}.{self.qualname}'

    @property
    def is_method(self) -> bool:
        """Whether the function is defined directly in a class body."""
        parts = self.qualname.split('.')
        return len(parts) > 1 and parts[-2] != _LOCALS

    def unsupported(self, message: str) -> UnsupportedCombinationError:
        """Create a located error for an unsupported signature."""
        return UnsupportedCombinationError(message).locate(
            filename=self.filename,
            line_num=self.line_num,
            function=self.qualname,
        )

    def with_parameters(self, names: 'tuple[str, ...]') -> Self:
        """Return a copy holding parameter names, splitting off a method receiver."""
        if self.is_method and names:
            return self.model_copy(update={'receiver': names[0], 'parameters': names[1:]})

        return self.model_copy(update={'parameters': names})

    @classmethod
    def from_callable(cls, fn: 'Callable[..., Any]') -> Self:
        """Extract the signature of a live function.

        Args:
            fn: Function being decorated.

        Returns:
            Function signature.

        Raises:
            UnsupportedCombinationError: If the function takes keyword-only
                or variadic parameters.
        """
        code = getattr(fn, '__code__', None)

        instance = cls(
            module=getattr(fn, '__module__', None) or '__main__',
            name=fn.__name__,
            qualname=getattr(fn, '__qualname__', fn.__name__),
            is_async=iscoroutinefunction(fn),
            filename=code.co_filename if code else None,
            line_num=code.co_firstlineno - 1 if code else None,
        )

        parameters = signature(fn).parameters.values()
        if any(parameter.kind not in _POSITIONAL for parameter in parameters):
            raise instance.unsupported('Only positional parameters are supported')

        return instance.with_parameters(tuple(parameter.name for parameter in parameters))

    @classmethod
    def from_ast(cls, node: FunctionDef | AsyncFunctionDef, *,
                 module: str, qualname: str | None = None,
                 filename: str | None = None) -> Self:
        """Extract the signature of a function definition node.

        Args:
            node: Function definition.
            module: Dotted module path of the file.
            qualname: Qualified name; defaults to the function name.
            filename: Source file name.

        Returns:
            Function signature.

        Raises:
            UnsupportedCombinationError: If the function takes keyword-only
                or variadic parameters.
        """
        line = min((item.lineno for item in node.decorator_list), default=node.lineno)

        instance = cls(
            module=module,
            name=node.name,
            qualname=qualname or node.name,
            is_async=isinstance(node, AsyncFunctionDef),
            filename=filename,
            line_num=line - 1,
        )

        arguments = node.args
        if arguments.vararg or arguments.kwarg or arguments.kwonlyargs:
            raise instance.unsupported('Only positional parameters are supported')

        return instance.with_parameters(tuple(
            argument.arg
            for argument in (*arguments.posonlyargs, *arguments.args)
        ))
