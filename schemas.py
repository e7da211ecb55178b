"""
Request bodies and the authenticated caller for the NyumbaSure API.

Documents are stored with camelCase keys, so every body model accepts and dumps
camelCase aliases while the Python attributes stay snake_case.
"""

from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AGENT_ROLES = {"agent", "seller"}  # "seller" is the legacy name of the agent role
ADMIN_ROLE = "admin"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_document(self) -> dict:
        """Only the fields the client actually sent, under their stored names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class CurrentUser(BaseModel):
    id: str = Field(..., description="users._id as a hex string")
    uid: str = Field(..., description="Firebase Auth UID")
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def object_id(self) -> ObjectId:
        return ObjectId(self.id)

    @property
    def is_agent(self) -> bool:
        return self.role in AGENT_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class Coordinates(CamelModel):
    lat: float
    lng: float


class Location(CamelModel):
    city: Optional[str] = None
    area: Optional[str] = None
    coords: Optional[Coordinates] = None
    address: Optional[str] = None


class ListingPayload(CamelModel):
    # Required fields are checked by the listing service so the client gets one
    # message naming everything that is missing.
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    deposit: Optional[float] = None
    service_charge: Optional[float] = None
    est_utilities: Optional[float] = None
    property_type: Optional[str] = None
    furnished: Optional[bool] = None
    location: Optional[Location] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None
    amenities: Optional[List[str]] = None


class ReportPayload(CamelModel):
    reporter_email: Optional[str] = None
    message: Optional[str] = None


class RejectPayload(CamelModel):
    reason: Optional[str] = None


class PayerInfo(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class EscrowPayload(CamelModel):
    listing_id: Optional[str] = None
    amount: Optional[float] = None
    payer_info: Optional[PayerInfo] = None
