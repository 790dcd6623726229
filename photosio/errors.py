from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


class PhotosError(Exception):
    pass


class NotFound(PhotosError):
    def __init__(self, namespace: str, blob_id: Optional[str]):
        self.namespace = namespace
        self.blob_id = blob_id
        super().__init__(f"{namespace}/{blob_id} not found")


class StoreWriteError(PhotosError):
    pass


class StoreReadError(PhotosError):
    """The backend failed while looking up or streaming a blob"""


class QueueError(PhotosError):
    pass


class EnqueueError(QueueError):
    """
    The original was stored but no derivation job was published for it.
    Its thumbnail will not be produced unless the job is published again.
    """

    def __init__(self, blob_id: str, reason: str):
        self.blob_id = blob_id
        super().__init__(f"derivation job for {blob_id} not enqueued: {reason}")


class DerivationError(PhotosError):
    pass


class SourceMissing(DerivationError):
    def __init__(self, original_id: str):
        self.original_id = original_id
        super().__init__(f"original {original_id} does not exist")


class DecodeError(DerivationError):
    pass


def register_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_handler(r: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Request body is not a valid photo object"},
        )

    @app.exception_handler(HTTPException)
    async def http_handler(r: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(r: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"error": "Photo not found."})

    @app.exception_handler(StoreWriteError)
    async def store_write_handler(r: Request, exc: StoreWriteError):
        return JSONResponse(
            status_code=500,
            content={"error": "Error storing photo.  Please try again later."},
        )

    @app.exception_handler(StoreReadError)
    async def store_read_handler(r: Request, exc: StoreReadError):
        return JSONResponse(
            status_code=500,
            content={"error": "Error reading photo.  Please try again later."},
        )

    @app.exception_handler(EnqueueError)
    async def enqueue_handler(r: Request, exc: EnqueueError):
        return JSONResponse(
            status_code=503,
            content={
                "id": exc.blob_id,
                "error": "Photo stored but thumbnail generation could not be scheduled.",
            },
        )

    @app.exception_handler(QueueError)
    async def queue_handler(r: Request, exc: QueueError):
        return JSONResponse(status_code=503, content={"error": str(exc)})
