"""
HTTP error taxonomy and global exception handlers.

Every error a route raises is an HTTPException subclass so FastAPI renders it
as ``{"detail": ...}`` with the matching status code.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class InvalidCredentials(HTTPException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, 'Invalid credentials')


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = 'Not authenticated'):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = 'Forbidden'):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = 'Not found'):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = 'Already exists'):
        super().__init__(status.HTTP_409_CONFLICT, detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class StorageUnavailable(HTTPException):
    def __init__(self, detail: str = 'Blob storage unavailable'):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail)


def register_error_handlers(app: FastAPI) -> None:
    """Register the global error handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # routing misses, including an unsupported method on a known path
        if not isinstance(exc, HTTPException) and exc.status_code in (404, 405):
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={'detail': 'Not found'})
        if exc.status_code >= 500:
            logger.error({'msg': 'http_error', 'path': request.url.path, 'status': exc.status_code, 'detail': exc.detail})
        return JSONResponse(status_code=exc.status_code, content={'detail': exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning({'msg': 'validation_error', 'path': request.url.path, 'errors': len(exc.errors())})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                'detail': 'Invalid request data',
                'errors': [
                    {
                        'field': '.'.join(str(loc) for loc in e['loc']),
                        'message': e['msg'],
                        'type': e['type'],
                    }
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error({'msg': 'unhandled_exception', 'path': request.url.path, 'error': str(exc)}, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={'detail': 'An unexpected error occurred'},
        )
