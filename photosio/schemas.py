import datetime
import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Namespace(str, enum.Enum):
    """
    ORIGINALS holds uploaded photos as received
    DERIVED holds thumbnails, keyed by the id of the original they came from
    """

    ORIGINALS = "originals"
    DERIVED = "derived"


###########################################################
# Blob Schemas
###########################################################


class BlobMetadata(BaseModel):
    business_id: int
    caption: Optional[str] = None


class BlobRecord(BaseModel):
    id: str
    namespace: Namespace
    length: int
    content_type: str
    chunk_size: int
    created: datetime.datetime
    metadata: BlobMetadata
    derived_from: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DerivedFrom(BaseModel):
    """
    Link from a derived blob to its original.  The derived blob is stored
    under the original's id in the DERIVED namespace.
    """

    original_id: str

    @property
    def derived_id(self) -> str:
        return self.original_id


###########################################################
# Queue Schemas
###########################################################


class DerivationJob(BaseModel):
    original_id: str = Field(alias="originalId")

    model_config = ConfigDict(populate_by_name=True)

    def to_message(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_message(cls, body: bytes) -> "DerivationJob":
        return cls.model_validate_json(body)


###########################################################
# API Schemas
###########################################################


class PhotoLinks(BaseModel):
    photo: str
    business: str
    thumbnail: str


class PhotoCreateResponse(BaseModel):
    id: str
    links: PhotoLinks
