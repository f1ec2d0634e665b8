"""
Error taxonomy and exception handlers

Every error a client can cause is a CRMError subclass carrying its HTTP
status and a stable machine-readable code. Store-layer exceptions that escape
a handler are classified by the generic handler below.
"""

import re
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

logger = structlog.get_logger(__name__)


class CRMError(Exception):
    """Base class for errors reported to the client"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"

    def __init__(self, message: str, code: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "message": self.message, "code": self.code}
        body.update(self.extra)
        return body


class ValidationFailed(CRMError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validation_errors=errors or [])


class NotFoundError(CRMError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class AuthenticationError(CRMError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"


class AuthorizationError(CRMError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"


class TenantAccessError(CRMError):
    """Tenant is not allowed to operate (suspended, cancelled, trial over)"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "TENANT_INACTIVE"

    def __init__(self, message: str, tenant_status: str, code: Optional[str] = None):
        super().__init__(message, code=code, tenant_status=tenant_status)
        self.tenant_status = tenant_status


class TenantNotIdentifiedError(CRMError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "TENANT_NOT_FOUND"


class ConflictError(CRMError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class QuotaExceededError(ConflictError):
    code = "QUOTA_EXCEEDED"


class StateError(CRMError):
    """Illegal state transition (double conversion, self-deletion, ...)"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"


class AccountLockedError(CRMError):
    status_code = status.HTTP_423_LOCKED
    code = "ACCOUNT_LOCKED"


_DUPLICATE_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: \w+\.(\w+)"),
    re.compile(r"Key \((\w+)\)=\(.*\) already exists"),
)


def duplicate_field(exc: IntegrityError) -> Optional[str]:
    """Best-effort extraction of the column behind a unique violation"""
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for pattern in _DUPLICATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg"),
            "value": error.get("input") if not isinstance(error.get("input"), (dict, list)) else None,
        })
    return errors


def setup_exception_handlers(app: FastAPI, debug: bool = False) -> None:

    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError):
        logger.info(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
        )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = _validation_errors(exc)
        message = ", ".join(f"{e['field']}: {e['message']}" for e in errors) or "Validation failed"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": message,
                "code": ValidationFailed.code,
                "validation_errors": errors,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail), "code": "HTTP_ERROR"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, IntegrityError):
            field = duplicate_field(exc)
            message = f"Duplicate value for field: {field}" if field else "Duplicate or conflicting value"
            status_code, code = status.HTTP_409_CONFLICT, "DUPLICATE_VALUE"
        elif isinstance(exc, NoResultFound):
            message, status_code, code = "Resource not found", status.HTTP_404_NOT_FOUND, "NOT_FOUND"
        elif isinstance(exc, DataError):
            message, status_code, code = "Invalid value for field", status.HTTP_400_BAD_REQUEST, "INVALID_VALUE"
        else:
            message, status_code, code = "Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR"

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=status_code >= 500,
        )

        content = {"success": False, "message": message, "code": code}
        if debug and status_code >= 500:
            content["detail"] = str(exc)
        return JSONResponse(status_code=status_code, content=content)
