from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from gift_checkout_api.app.core.exceptions import (
    CheckoutError,
    CheckoutStateError,
    CheckoutValidationError,
    GatewayError,
    TokenizationError,
)
from gift_checkout_api.app.services.error_classifier import classify
from gift_checkout_api.app.utilities.logging_config import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


def _status_for(exc: CheckoutError) -> int:
    if isinstance(exc, CheckoutStateError):
        return 409
    if isinstance(exc, CheckoutValidationError):
        return 422
    if isinstance(exc, (GatewayError, TokenizationError)):
        return 502
    if exc.status and 400 <= exc.status < 600:
        return exc.status
    return 400


def add_error_handlers(app):
    """
    Registra handlers de erro na aplicação FastAPI.
    """
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.error(f"HTTPException: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "HTTPException", "message": exc.detail, "status_code": exc.status_code},
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"StarletteHTTPException: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "StarletteHTTPException", "message": exc.detail, "status_code": exc.status_code},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Payload inválido em {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={"error": "ValidationError", "message": "Dados inválidos", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(CheckoutError)
    async def checkout_exception_handler(request: Request, exc: CheckoutError):
        status_code = _status_for(exc)
        friendly = classify(exc)
        logger.error(f"{type(exc).__name__} ({status_code}): {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(exc).__name__,
                "code": exc.code,
                "message": exc.message,
                "friendly_error": friendly.model_dump(mode="json"),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled Exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "InternalServerError", "message": "Ocorreu um erro interno no servidor."},
        )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
