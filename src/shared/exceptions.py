from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException, status

from shared.error_codes import ERROR_CODES

# ───────────────────────── Base & Domain Exceptions ─────────────────────────
class DomainError(Exception):
    """Base class for domain-level errors. Services should raise these, never HTTPException."""
    code: str = "domain_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        message = message or ERROR_CODES.get(self.code, {}).get("message") or self.__class__.__name__
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnauthorizedError(DomainError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(DomainError):
    code, status_code = "forbidden", status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    # generic; set a specific code via constructor if needed (e.g., "tenant_not_found")
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailableError(DomainError):
    code = "service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalServerError(DomainError):
    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

# ───────────────────────────── Helpers ──────────────────────────────────────

def problem(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"code": code, "message": message, "details": details or {}}
    if correlation_id:
        body["correlation_id"] = correlation_id
    return body


def _extract_correlation_id(req: Request) -> Optional[str]:
    return getattr(getattr(req, "state", None), "request_id", None)

def http_for(code: str) -> int:
    return int(ERROR_CODES.get(code, {}).get("http", status.HTTP_500_INTERNAL_SERVER_ERROR))

def msg_for(code: str) -> str:
    return str(ERROR_CODES.get(code, {}).get("message", code))

# ─────────────────────────── Registration ───────────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def handle_app_error(req: Request, exc: DomainError):
        return JSONResponse(
            status_code=exc.status_code,
            content=problem(exc.code, exc.message, exc.details, _extract_correlation_id(req)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(req: Request, exc: RequestValidationError):
        code = "validation_error"
        return JSONResponse(
            status_code=http_for(code),
            content=problem(
                code,
                msg_for(code),
                {"errors": jsonable_errors(exc.errors())},
                _extract_correlation_id(req),
            ),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(req: Request, exc: HTTPException):
        # map HTTP status → first matching ERROR_CODES entry
        reverse_map: Dict[int, str] = {}
        for key, value in ERROR_CODES.items():
            reverse_map.setdefault(value["http"], key)
        code = reverse_map.get(exc.status_code, "internal_error")
        detail = getattr(exc, "detail", None)
        details = detail if isinstance(detail, dict) else ({"detail": detail} if detail else None)
        return JSONResponse(
            status_code=exc.status_code,
            content=problem(
                code,
                str(detail) if isinstance(detail, str) else msg_for(code),
                details,
                _extract_correlation_id(req),
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(req: Request, exc: Exception):
        code = "internal_error"
        return JSONResponse(
            status_code=http_for(code),
            content=problem(code, msg_for(code), {"type": exc.__class__.__name__}, _extract_correlation_id(req)),
        )


def jsonable_errors(errors: Any) -> Any:
    """Pydantic error entries may carry exception objects in ``ctx``; stringify them."""
    cleaned = []
    for err in errors:
        entry = dict(err)
        ctx = entry.get("ctx")
        if isinstance(ctx, dict):
            entry["ctx"] = {k: str(v) for k, v in ctx.items()}
        entry.pop("input", None)
        cleaned.append(entry)
    return cleaned
