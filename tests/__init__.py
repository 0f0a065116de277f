"""Test suite for the pytest-dbtest package.

This package contains unit and integration tests validating clause
parsing, option validation, resource resolution, code generation, and
delegation of generated tests to runners.
"""
