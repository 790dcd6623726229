import datetime

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.schema import UniqueConstraint

from photosio.database import Base


class BlobFile(Base):
    """
    Header row for one stored blob.  Chunk rows reference it by row id, so a
    rewrite under the same (namespace, blob_id) gets a fresh row and never
    mixes chunks with a previous attempt.  Row ids are never reused,
    SQLite included.
    """

    __tablename__ = "blob_file"
    __table_args__ = (
        UniqueConstraint("namespace", "blob_id"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    blob_id = Column(String(36), nullable=False, index=True)
    namespace = Column(String(16), nullable=False)
    length = Column(BigInteger, nullable=False, default=0)
    content_type = Column(String, nullable=False)
    chunk_size = Column(Integer, nullable=False)
    created = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    business_id = Column(BigInteger, nullable=False)
    caption = Column(String, nullable=True)
    # id of the original this blob was derived from
    derived_from = Column(String(36), nullable=True)


class BlobChunk(Base):
    __tablename__ = "blob_chunk"

    file_id = Column(
        Integer, ForeignKey("blob_file.id", ondelete="CASCADE"), primary_key=True
    )
    n = Column(Integer, primary_key=True)
    data = Column(LargeBinary, nullable=False)
