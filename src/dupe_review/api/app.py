"""
FastAPI application serving the review front end and its JSON API.

Query and mutation routes are mounted both at the root and under ``/api``.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from dupe_review import __version__
from dupe_review.context import ReviewContext
from dupe_review.core.deletion import is_within_root
from dupe_review.core.errors import ConversionError, GroupNotFoundError

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


def _parse_index(raw: Optional[str]) -> int:
    """Missing or non-integer indices read as 0."""
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        return 0


def _build_router(context: ReviewContext) -> APIRouter:
    router = APIRouter(tags=["groups"])

    @router.get("/group")
    def get_group(idx: Optional[str] = None) -> Dict[str, Any]:
        """Return one group's ranked images and similarity score."""
        index = _parse_index(idx)
        try:
            view = context.query.query_group(index)
        except GroupNotFoundError as e:
            raise HTTPException(status_code=404, detail=e.reason) from e
        return view.to_dict()

    @router.post("/delete")
    async def delete_image(request: Request) -> Dict[str, Any]:
        """Delete one image; the outcome is reported in ``success``."""
        try:
            payload = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid JSON") from e

        path = payload.get("path") if isinstance(payload, dict) else None
        if not isinstance(path, str) or not path:
            raise HTTPException(status_code=400, detail="Path is required")

        result = await run_in_threadpool(context.deletion.delete_image, path)
        return result.to_dict()

    return router


def create_app(context: ReviewContext) -> FastAPI:
    """Create a FastAPI app bound to the given review context."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        context.close()

    app = FastAPI(title="dupe-review", version=__version__, lifespan=lifespan)
    app.state.context = context

    router = _build_router(context)
    app.include_router(router)
    app.include_router(router, prefix="/api")

    @app.get("/images/{image_path:path}", include_in_schema=False)
    def get_image(image_path: str) -> FileResponse:
        """Serve a file under the image root, converting raw files to JPEG."""
        full_path = os.path.normpath(os.path.join(context.image_root, image_path))
        if not is_within_root(full_path, context.image_root):
            raise HTTPException(status_code=404, detail="Not found")
        if not context.filesystem.is_file(full_path):
            raise HTTPException(status_code=404, detail="Not found")

        if context.converter.is_raw(full_path):
            try:
                full_path = context.converter.viewable_path(full_path)
            except ConversionError as e:
                logger.error(f"Failed to convert raw file {full_path}: {e}")
                raise HTTPException(
                    status_code=500, detail="Failed to process raw file"
                ) from e

        return FileResponse(full_path)

    @app.get("/", include_in_schema=False)
    def index() -> FileResponse:
        return FileResponse(STATIC_DIR / "index.html", media_type="text/html")

    @app.get("/style.css", include_in_schema=False)
    def style() -> FileResponse:
        return FileResponse(STATIC_DIR / "style.css", media_type="text/css")

    @app.get("/script.js", include_in_schema=False)
    def script() -> FileResponse:
        return FileResponse(STATIC_DIR / "script.js", media_type="application/javascript")

    return app
