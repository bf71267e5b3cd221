"""Translate error values into HTTP responses at the route boundary."""

from fastapi import HTTPException

from calhub.core.errors import ApiError, AuthExpired, AuthRequired, InvalidUrl, NetworkError, ParseError, SyncError


def status_for(error: SyncError) -> int:
    match error.cause:
        case AuthExpired():
            return 401
        case InvalidUrl():
            return 400
        case AuthRequired():
            return 503
        case ApiError() | NetworkError() | ParseError():
            return 502
        case _:
            return 500


def http_error(error: SyncError) -> HTTPException:
    detail = {"step": error.step.value, "message": error.message}
    if isinstance(error.cause, AuthExpired):
        detail["account"] = error.cause.account
    return HTTPException(status_code=status_for(error), detail=detail)
