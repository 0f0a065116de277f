"""Database test decorator and pytest plugin.

The `pytest_dbtest` package turns a declarative clause list attached to
a test function into a self-contained test entry point.

Key features:
- a strict clause grammar for fixtures and migrations sources;
- validation of mutually exclusive options with precise diagnostics;
- resolution of migrations directories and fixture scripts at
  decoration time, with fixture contents embedded into the test;
- deterministic generated source, delegating database provisioning
  to a pluggable test runner.
"""

from .core import db_test

__all__ = (
    'db_test',
)
