"""
Unit tests for telling unique violations apart from other integrity errors.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from balance_ledger.transactions import _is_unique_violation


def _integrity_error(**orig_attrs):
    return IntegrityError("INSERT INTO transactions ...", {}, SimpleNamespace(**orig_attrs))


class TestIsUniqueViolation:
    @pytest.mark.parametrize(
        "orig_attrs",
        [
            {"sqlstate": "23505"},
            {"sqlite_errorname": "SQLITE_CONSTRAINT_PRIMARYKEY"},
            {"sqlite_errorname": "SQLITE_CONSTRAINT_UNIQUE"},
        ],
    )
    def test_unique_violations(self, orig_attrs):
        assert _is_unique_violation(_integrity_error(**orig_attrs))

    @pytest.mark.parametrize(
        "orig_attrs",
        [
            {"sqlstate": "23503"},
            {"sqlstate": "23514"},
            {"sqlite_errorname": "SQLITE_CONSTRAINT_FOREIGNKEY"},
            {"sqlite_errorname": "SQLITE_CONSTRAINT_CHECK"},
            {},
        ],
    )
    def test_other_violations(self, orig_attrs):
        assert not _is_unique_violation(_integrity_error(**orig_attrs))
