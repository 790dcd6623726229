from typing import Optional

from fastapi import Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from fastapi.routing import APIRouter

from photosio import schemas
from photosio.blobs.chunking import iter_file
from photosio.depends import get_blob_store, get_ingest_service, get_retrieval_service
from photosio.errors import NotFound
from photosio.ingest import IngestService
from photosio.retrieval import RetrievalService

router = APIRouter()

UPLOAD_READ_SIZE = 64 * 1024

# content type -> extension used in the public photo url
PHOTO_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
}
PHOTO_EXTENSIONS = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


def stream_blob(retrieval: RetrievalService, namespace: schemas.Namespace, blob_id: str):
    blob = retrieval.retrieve(namespace, blob_id)
    return StreamingResponse(
        blob.chunks,
        media_type=blob.record.content_type,
        headers={"Content-Length": str(blob.record.length)},
    )


@router.post(
    "/photos",
    response_model=schemas.PhotoCreateResponse,
    status_code=201,
    tags=["photo"],
)
def create_photo(
    file: UploadFile = File(...),
    businessId: int = Form(...),
    caption: Optional[str] = Form(None),
    ingest: IngestService = Depends(get_ingest_service),
):
    extension = PHOTO_TYPES.get(file.content_type)
    if extension is None:
        raise HTTPException(400, f"Unsupported photo type {file.content_type}")
    metadata = schemas.BlobMetadata(business_id=businessId, caption=caption)
    photo_id = ingest.ingest(
        iter_file(file.file, UPLOAD_READ_SIZE), file.content_type, metadata
    )
    return schemas.PhotoCreateResponse(
        id=photo_id,
        links=schemas.PhotoLinks(
            photo=f"/media/photos/{photo_id}.{extension}",
            business=f"/businesses/{businessId}",
            thumbnail=f"/media/thumbs/{photo_id}.jpg",
        ),
    )


@router.get("/photos/{photo_id}", response_model=schemas.BlobRecord, tags=["photo"])
def get_photo(photo_id: str, store=Depends(get_blob_store)):
    return store.stat(schemas.Namespace.ORIGINALS, photo_id)


@router.get("/media/photos/{photo_id}.{ext}", tags=["media"])
def download_photo(
    photo_id: str,
    ext: str,
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    if ext.lower() not in PHOTO_EXTENSIONS:
        raise NotFound(schemas.Namespace.ORIGINALS.value, photo_id)
    return stream_blob(retrieval, schemas.Namespace.ORIGINALS, photo_id)


@router.get("/media/thumbs/{photo_id}.jpg", tags=["media"])
def download_thumbnail(
    photo_id: str,
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    return stream_blob(retrieval, schemas.Namespace.DERIVED, photo_id)
