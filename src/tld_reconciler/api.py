"""
HTTP API for the reconciler.

Read-only JSON endpoints over a TldPipeline. Every error is returned as a
JSON body with an ``error`` field.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .diagnostics import DiagnosticLogger
from .exceptions import TldReconcilerError
from .pipeline import TldPipeline


COMPONENT = "api"

ALLOWED_METHODS = ("GET", "HEAD")


def _error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def create_app(pipeline: TldPipeline, logger: Optional[DiagnosticLogger] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        pipeline: Pipeline whose stored sources are served
        logger: Optional diagnostic logger for request failures

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="TLD Reconciler", version=__version__)

    def internal_error(request: Request, exc: Exception) -> JSONResponse:
        if logger:
            logger.log_error(COMPONENT, f"API error for {request.url.path}", error=exc)
        message = exc.message if isinstance(exc, TldReconcilerError) else str(exc)
        return _error_response(500, "Internal server error", message)

    @app.middleware("http")
    async def reject_non_get(request: Request, call_next):
        if request.method not in ALLOWED_METHODS:
            return _error_response(405, "Method not allowed")
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error_response(404, "Not found")
        if exc.status_code == 405:
            return _error_response(405, "Method not allowed")
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(TldReconcilerError)
    async def reconciler_error_handler(request: Request, exc: TldReconcilerError) -> JSONResponse:
        return internal_error(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return internal_error(request, exc)

    @app.get("/api/analysis")
    def full_analysis() -> dict:
        return pipeline.full_analysis().to_dict()

    @app.get("/api/analysis/tlds")
    def manager_grouping() -> dict:
        grouping = pipeline.manager_grouping().to_dict()
        idn_map = grouping.pop("idnMap")
        return {"managerGrouping": grouping, "idnMap": idn_map}

    @app.get("/api/analysis/dataset")
    def dataset_analysis() -> dict:
        return pipeline.dataset_analysis().to_dict()

    @app.get("/api/comparison/bootstrap")
    def bootstrap_comparison() -> dict:
        return pipeline.bootstrap_comparison().to_dict()

    @app.get("/api/comparison/tlds")
    def tld_list_comparison() -> dict:
        return pipeline.tld_list_comparison().to_dict()

    @app.get("/api/coverage")
    def rdap_coverage() -> dict:
        return pipeline.rdap_coverage().to_dict()

    @app.get("/api/tlds")
    def dataset() -> dict:
        return pipeline.dataset().to_dict()

    return app
