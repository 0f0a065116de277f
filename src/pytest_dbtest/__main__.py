"""CLI utilities for pytest-dbtest.

The `check` command validates a clause list; the `expand` command
prints the entry points generated for every `db_test` function of a
source file without importing it.
"""

from ast import AsyncFunctionDef, Attribute, Call, ClassDef, Constant, FunctionDef, Name, parse
from pathlib import Path
from typing import TYPE_CHECKING, Any

from click import ClickException, argument, echo, group, option
from click import Path as PathParam
from yaml import safe_dump

from pytest_dbtest.core import Expander, FunctionSignature, build_config, parse_clauses
from pytest_dbtest.errors import ClauseSyntaxError, ExpansionError
from pytest_dbtest.settings import Settings

if TYPE_CHECKING:
    from ast import stmt
    from collections.abc import Iterable

DECORATOR_NAME = 'db_test'

SourceFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)

RootDirectory = PathParam(
    exists=True,
    file_okay=False,
    path_type=Path,
)

type FunctionNode = FunctionDef | AsyncFunctionDef


@group(help='Command-line utilities for pytest-dbtest.')
def cli() -> None:
    """Root CLI group for pytest-dbtest tools."""
    return None


@cli.command(
    name='check',
    help='Validate a clause list and print the resulting configuration as YAML.',
)
@argument('clauses', nargs=-1)
def check_clauses(clauses: tuple[str, ...]) -> None:
    """Validate clauses and print the configuration.

    Args:
        clauses: Clause strings, joined with `, `.
    """
    source = ', '.join(clauses)

    try:
        config = build_config(parse_clauses(source), source)
    except ExpansionError as error:
        raise ClickException(str(error)) from error

    echo(safe_dump(config.model_dump(mode='json'), sort_keys=False), nl=False)


def _module_name(filename: Path, root: Path) -> str:
    """Derive a dotted module path for a file under the project root.

    Args:
        filename: Source file.
        root: Absolute project root.

    Returns:
        Dotted module path, or the file stem outside of the root.
    """
    try:
        relative = filename.resolve().relative_to(root)
    except ValueError:
        return filename.stem

    return '.'.join(relative.with_suffix('').parts)


def _iter_functions(body: 'list[stmt]', prefix: str = '') -> 'Iterable[tuple[FunctionNode, str]]':
    """Iterate over module and class level functions with qualified names."""
    for node in body:
        if isinstance(node, (FunctionDef, AsyncFunctionDef)):
            yield node, f'{prefix}{node.name}'
        elif isinstance(node, ClassDef):
            yield from _iter_functions(node.body, f'{prefix}{node.name}.')


def _decorator_clauses(node: FunctionNode) -> str | None:
    """Extract the clause text of a `db_test` decorator.

    Args:
        node: Function definition.

    Returns:
        Joined clause text, or `None` if the function is not decorated.

    Raises:
        ClauseSyntaxError: If decorator arguments are not string literals.
    """
    for decorator in node.decorator_list:
        target: Any = decorator.func if isinstance(decorator, Call) else decorator

        if isinstance(target, Name):
            name = target.id
        elif isinstance(target, Attribute):
            name = target.attr
        else:
            continue

        if name != DECORATOR_NAME:
            continue

        if not isinstance(decorator, Call):
            return ''

        if decorator.keywords or not all(
            isinstance(arg, Constant) and isinstance(arg.value, str)
            for arg in decorator.args
        ):
            raise ClauseSyntaxError(f'`{DECORATOR_NAME}` arguments must be string literals')

        return ', '.join(arg.value for arg in decorator.args)  # type: ignore[attr-defined]

    return None


@cli.command(
    name='expand',
    help='Print the generated entry point of every `db_test` function in a file.',
)
@option(
    '-r', '--root',
    type=RootDirectory,
    default=None,
    help='Project root; defaults to DBTEST_ROOT or the current directory.',
)
@option(
    '--migrate/--no-migrate',
    default=True,
    help='Enable or disable the `migrate` capability.',
)
@argument('filename', type=SourceFilepath)
def expand_file(filename: Path, root: Path | None, migrate: bool) -> None:
    """Expand decorated functions of a source file.

    Each function is expanded independently; failures are reported and
    do not prevent expansion of the others.

    Args:
        filename: Python source file.
        root: Optional project root.
        migrate: Whether the `migrate` capability is available.
    """
    overrides: dict[str, Any] = {'migrate': migrate}
    if root is not None:
        overrides['root'] = root

    settings = Settings(**overrides)
    expander = Expander.from_settings(settings)
    module = _module_name(filename, settings.project_root)

    try:
        tree = parse(filename.read_text(encoding='utf-8'), filename=str(filename))
    except SyntaxError as error:
        raise ClickException(f'Can not parse {str(filename)!r}: {error}') from error

    failures = 0

    for node, qualname in _iter_functions(tree.body):
        try:
            source = _decorator_clauses(node)
            if source is None:
                continue

            signature = FunctionSignature.from_ast(
                node,
                module=module,
                qualname=qualname,
                filename=str(filename),
            )
            expansion = expander.expand(source, signature)

        except ExpansionError as error:
            if not (error.context or {}).get('function'):
                line = min((item.lineno for item in node.decorator_list), default=node.lineno)
                error.locate(filename=str(filename), line_num=line - 1, function=qualname)
            failures += 1
            echo(str(error), err=True)
            continue

        echo(f'# {signature.unique_id} ({expansion.mode} mode)')
        echo(expansion.source)

    if failures:
        raise ClickException(f'{failures} expansion(s) failed')


if __name__ == '__main__':
    cli()
