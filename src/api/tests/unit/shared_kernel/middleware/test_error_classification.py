"""Unit tests for error classification and HandlerResult."""

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, NoResultFound, OperationalError

from shared_kernel.middleware.request_handler import (
    PUBLIC_MESSAGES,
    HandlerResult,
    classify_error,
)
from shared_kernel.security.exceptions import (
    ConflictError,
    ContextBindingFailure,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)


class _PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


class _AsyncpgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"asyncpg error {sqlstate}")
        self.sqlstate = sqlstate


class TestClassifyError:
    @pytest.mark.parametrize(
        "error,kind",
        [
            (UnauthenticatedError(), ErrorKind.UNAUTHENTICATED),
            (ForbiddenError(), ErrorKind.FORBIDDEN),
            (NotFoundError(), ErrorKind.NOT_FOUND),
            (ConflictError(), ErrorKind.CONFLICT),
            (ContextBindingFailure(), ErrorKind.CONTEXT_BINDING_FAILURE),
            (RuntimeError("boom"), ErrorKind.INTERNAL),
            (KeyError("x"), ErrorKind.INTERNAL),
        ],
    )
    def test_security_and_unknown_errors(self, error, kind):
        assert classify_error(error) is kind

    def test_no_result_is_not_found(self):
        assert classify_error(NoResultFound()) is ErrorKind.NOT_FOUND

    def test_integrity_error_is_conflict(self):
        error = IntegrityError("INSERT", {}, _PgError("23505"))
        assert classify_error(error) is ErrorKind.CONFLICT

    def test_row_security_violation_is_forbidden(self):
        error = DBAPIError("INSERT", {}, _PgError("42501"))
        assert classify_error(error) is ErrorKind.FORBIDDEN

    def test_row_security_violation_via_sqlstate(self):
        error = DBAPIError("UPDATE", {}, _AsyncpgError("42501"))
        assert classify_error(error) is ErrorKind.FORBIDDEN

    def test_other_database_errors_are_internal(self):
        error = OperationalError("SELECT", {}, _PgError("08006"))
        assert classify_error(error) is ErrorKind.INTERNAL


class TestHandlerResult:
    def test_success(self):
        result = HandlerResult.success({"id": 1})

        assert result.ok
        assert result.status_code == 200
        assert result.value == {"id": 1}
        assert result.error is None

    @pytest.mark.parametrize(
        "kind,status",
        [
            (ErrorKind.UNAUTHENTICATED, 401),
            (ErrorKind.FORBIDDEN, 403),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.CONFLICT, 409),
            (ErrorKind.CONTEXT_BINDING_FAILURE, 500),
            (ErrorKind.INTERNAL, 500),
        ],
    )
    def test_failure_status_codes(self, kind, status):
        result = HandlerResult.failure(kind)

        assert not result.ok
        assert result.status_code == status
        assert result.message == PUBLIC_MESSAGES[kind]

    def test_every_kind_has_a_message(self):
        assert set(PUBLIC_MESSAGES) == set(ErrorKind)
