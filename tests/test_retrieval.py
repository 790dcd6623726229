import pytest

from photosio.errors import NotFound
from photosio.identifiers import new_blob_id
from photosio.retrieval import RetrievalService
from photosio.schemas import Namespace


@pytest.fixture
def retrieval(store):
    return RetrievalService(store)


def test_retrieve_streams_chunks(retrieval, store, metadata):
    data = b"q" * 10000
    blob_id = store.write(Namespace.ORIGINALS, "image/png", metadata, [data])
    blob = retrieval.retrieve(Namespace.ORIGINALS, blob_id)
    assert blob.record.content_type == "image/png"
    assert blob.record.length == len(data)
    assert iter(blob.chunks) is blob.chunks
    assert b"".join(blob.chunks) == data


@pytest.mark.parametrize("namespace", list(Namespace))
def test_retrieve_missing(retrieval, namespace):
    with pytest.raises(NotFound):
        retrieval.retrieve(namespace, new_blob_id())


def test_retrieve_malformed(retrieval):
    with pytest.raises(NotFound):
        retrieval.retrieve(Namespace.ORIGINALS, "not-a-valid-id")
    assert retrieval.exists(Namespace.ORIGINALS, "not-a-valid-id") is False


def test_thumbnail_absent_until_derived(retrieval, store, metadata):
    blob_id = store.write(Namespace.ORIGINALS, "image/jpeg", metadata, [b"o"])
    assert retrieval.exists(Namespace.ORIGINALS, blob_id)
    assert not retrieval.exists(Namespace.DERIVED, blob_id)
    with pytest.raises(NotFound):
        retrieval.retrieve(Namespace.DERIVED, blob_id)
