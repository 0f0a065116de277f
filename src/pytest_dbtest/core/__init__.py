"""Expansion core: clause parsing, validation, resolution, and generation.

The primary public entry points are `Expander`, which runs the whole
pipeline for one decorated function, and the `db_test` decorator built
on top of it.
"""

from .expander import Expander, db_test
from .generator import CodeGenerator, Expansion
from .parser import ClauseParser, parse_clauses
from .resolver import PathResolver
from .signature import FunctionSignature
from .validator import ConfigBuilder, build_config

__all__ = (
    'ClauseParser',
    'CodeGenerator',
    'ConfigBuilder',
    'Expander',
    'Expansion',
    'FunctionSignature',
    'PathResolver',
    'build_config',
    'db_test',
    'parse_clauses',
)
