"""Submit API: accepts point submissions over HTTP and hands them to a submitter."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from counterbase.sources.base import Submitter
from counterbase.submit.models import SubmitRequest
from counterbase.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(submitter: Submitter) -> FastAPI:
    """Build the submit API around a submitter (usually the DuckDB store)."""
    app = FastAPI(title="counterbase submit API", version="0.1.0")

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "invalid request"})

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/submit", status_code=status.HTTP_204_NO_CONTENT)
    def submit(req: SubmitRequest) -> Response:
        try:
            submitter.submit(req)
        except Exception as e:
            logger.error("submit_failed", counter=req.id, direction=req.direction_id, error=str(e))
            return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app
