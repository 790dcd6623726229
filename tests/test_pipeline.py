"""
End to end: ingest a large JPEG, serve it, derive its thumbnail, serve that.
"""
import io

import pytest
from PIL import Image

from photosio.derivation import DerivationWorker, JobState
from photosio.errors import NotFound
from photosio.ingest import IngestService
from photosio.retrieval import RetrievalService
from photosio.schemas import BlobMetadata, Namespace

from tests.helpers import make_noise_jpeg, pieces


def test_photo_to_thumbnail(store, queue):
    original = make_noise_jpeg(1024, 768)
    ingest = IngestService(store, queue)
    retrieval = RetrievalService(store)

    photo_id = ingest.ingest(
        pieces(original, 65536), "image/jpeg", BlobMetadata(business_id=42)
    )

    assert b"".join(retrieval.retrieve(Namespace.ORIGINALS, photo_id).chunks) == original
    with pytest.raises(NotFound):
        retrieval.retrieve(Namespace.DERIVED, photo_id)

    outcome = DerivationWorker(store, queue).run_once(timeout=0)
    assert outcome.state is JobState.ACKNOWLEDGED

    thumb = retrieval.retrieve(Namespace.DERIVED, photo_id)
    assert thumb.record.content_type == "image/jpeg"
    assert thumb.record.metadata.business_id == 42
    im = Image.open(io.BytesIO(b"".join(thumb.chunks)))
    assert im.format == "JPEG"
    assert im.size == (100, 100)

    # derivation leaves the original alone
    assert b"".join(retrieval.retrieve(Namespace.ORIGINALS, photo_id).chunks) == original
