from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from tortoise.exceptions import DoesNotExist

from core.logger import app_logger


def register_error_handlers(app: FastAPI):
    @app.exception_handler(ValueError)
    async def bad_request(request: Request, e: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(e)})

    @app.exception_handler(PermissionError)
    async def forbidden(request: Request, e: PermissionError):
        app_logger.warning(f"Forbidden {request.method} {request.url.path}: {e}")
        return JSONResponse(status_code=403, content={"detail": str(e)})

    @app.exception_handler(DoesNotExist)
    async def not_found(request: Request, e: DoesNotExist):
        return JSONResponse(status_code=404, content={"detail": "Not found"})
