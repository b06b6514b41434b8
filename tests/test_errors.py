"""Tests for database error translation."""

from sqlalchemy.exc import IntegrityError

from baseplate.errors import ConflictError, is_unique_violation, translate_integrity_error


class DriverError(Exception):
    """Stands in for an asyncpg/psycopg exception carrying a SQLSTATE."""

    def __init__(self, message, pgcode=None, sqlstate=None):
        super().__init__(message)
        self.pgcode = pgcode
        self.sqlstate = sqlstate


def integrity_error(orig):
    return IntegrityError("INSERT INTO lists ...", {}, orig)


def test_postgres_unique_violation_by_pgcode():
    exc = integrity_error(DriverError('duplicate key value violates unique constraint "lists_name_key"', pgcode="23505"))
    assert is_unique_violation(exc)

    error = translate_integrity_error(exc, unique_message="Segment name already exists")
    assert isinstance(error, ConflictError)
    assert error.detail == "Segment name already exists"


def test_postgres_unique_violation_by_sqlstate():
    exc = integrity_error(DriverError("duplicate key", sqlstate="23505"))
    assert is_unique_violation(exc)


def test_foreign_key_violation_uses_fallback():
    exc = integrity_error(DriverError("insert violates foreign key constraint", pgcode="23503"))
    assert not is_unique_violation(exc)

    error = translate_integrity_error(exc, unique_message="Segment name already exists")
    assert error.detail == "The request conflicts with existing data"

    error = translate_integrity_error(exc, unique_message="x", fallback_message="Unknown customer")
    assert error.detail == "Unknown customer"


def test_sqlite_unique_message():
    exc = integrity_error(DriverError("UNIQUE constraint failed: lists.name"))
    assert is_unique_violation(exc)
