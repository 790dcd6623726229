import pytest

from photosio import database
from photosio.blobs.sql import SqlBlobStore
from photosio.queue import MemoryWorkQueue
from photosio.schemas import BlobMetadata

from tests.helpers import make_image_bytes


@pytest.fixture
def session_factory(tmp_path):
    engine = database.make_engine(f"sqlite:///{tmp_path / 'blobs.db'}")
    database.Base.metadata.create_all(engine)
    yield database.make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlBlobStore(session_factory, chunk_size=4096)


@pytest.fixture
def queue():
    return MemoryWorkQueue()


@pytest.fixture
def metadata():
    return BlobMetadata(business_id=42, caption="storefront")


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()
