"""Listing search and agent-owned listing management."""

import logging
import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.database import Database

import activity
from config import settings
from database import AGENTS, LISTINGS, guard_store, parse_object_id
from errors import AuthorizationError, NotFoundError, ValidationError
from schemas import CurrentUser
from status import LISTING_TRANSITIONS, ListingStatus, check_transition

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "price", "location")

# Never taken from an agent payload: identity, moderation and server stamps.
PROTECTED_FIELDS = (
    "_id",
    "id",
    "agentId",
    "status",
    "featured",
    "verifiedPhotos",
    "verifiedAgent",
    "createdAt",
    "updatedAt",
)

# Featured listings first, newest first within each group.
SORT_ORDER = [("featured", -1), ("createdAt", -1)]


def build_search_filter(
    status: str,
    location: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    property_type: Optional[str] = None,
) -> Dict[str, Any]:
    filter_: Dict[str, Any] = {"status": status}
    if location:
        pattern = re.escape(location.strip())
        filter_["$or"] = [
            {"location.city": {"$regex": pattern, "$options": "i"}},
            {"location.area": {"$regex": pattern, "$options": "i"}},
        ]
    if min_price is not None or max_price is not None:
        price_cond: Dict[str, Any] = {}
        if min_price is not None:
            price_cond["$gte"] = min_price
        if max_price is not None:
            price_cond["$lte"] = max_price
        filter_["price"] = price_cond
    if property_type:
        filter_["propertyType"] = property_type
    return filter_


def _strip_protected(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in PROTECTED_FIELDS}


class ListingService:
    def __init__(self, db: Database):
        self.db = db
        self.listings = db[LISTINGS]
        self.agents = db[AGENTS]

    def _attach_agents(self, docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        docs = list(docs)
        agent_ids = {doc["agentId"] for doc in docs if doc.get("agentId")}
        agents_by_user: Dict[ObjectId, Dict[str, Any]] = {}
        if agent_ids:
            for agent in self.agents.find({"userId": {"$in": list(agent_ids)}}):
                agents_by_user[agent["userId"]] = agent
        return [{**doc, "agent": agents_by_user.get(doc.get("agentId"))} for doc in docs]

    def _owned_listing(self, caller: CurrentUser, listing_id: str, action: str) -> Dict[str, Any]:
        oid = parse_object_id(listing_id, "Listing")
        listing = self.listings.find_one({"_id": oid})
        if not listing:
            raise NotFoundError("Listing not found")
        if listing.get("agentId") != caller.object_id:
            logger.warning(
                "Listing ownership check failed",
                extra={"listing_id": str(oid), "user_id": caller.id, "action": action},
            )
            raise AuthorizationError(f"Not authorized to {action} this listing")
        return listing

    @guard_store("Failed to fetch listings")
    def list(
        self,
        location: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        property_type: Optional[str] = None,
        status: str = ListingStatus.APPROVED.value,
        page: int = 1,
        limit: Optional[int] = None,
        viewer: Optional[CurrentUser] = None,
    ) -> Dict[str, Any]:
        limit = limit or settings.default_page_size
        try:
            status = ListingStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown listing status: {status}")

        filter_ = build_search_filter(status, location, min_price, max_price, property_type)
        if status != ListingStatus.APPROVED.value:
            # Unapproved listings: admins see all, agents see their own, nobody else sees any.
            if viewer is None or not (viewer.is_admin or viewer.is_agent):
                return {"listings": [], "pagination": _pagination(page, limit, 0)}
            if not viewer.is_admin:
                filter_["agentId"] = viewer.object_id

        total = self.listings.count_documents(filter_)
        cursor = self.listings.find(filter_).sort(SORT_ORDER).skip((page - 1) * limit).limit(limit)
        return {
            "listings": self._attach_agents(cursor),
            "pagination": _pagination(page, limit, total),
        }

    @guard_store("Failed to fetch listing")
    def get(self, listing_id: str) -> Dict[str, Any]:
        listing = self.listings.find_one({"_id": parse_object_id(listing_id, "Listing")})
        if not listing:
            raise NotFoundError("Listing not found")
        return self._attach_agents([listing])[0]

    @guard_store("Failed to create listing")
    def create(self, caller: CurrentUser, payload: Dict[str, Any]) -> ObjectId:
        if not caller.is_agent:
            raise AuthorizationError("Agent access required")

        data = _strip_protected(payload)
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        check_transition(LISTING_TRANSITIONS, None, ListingStatus.PENDING, "Listing")
        now = datetime.utcnow()
        data.setdefault("images", [])
        data.setdefault("amenities", [])
        data.update(
            agentId=caller.object_id,
            status=ListingStatus.PENDING.value,
            featured=False,
            verifiedPhotos=False,
            verifiedAgent=False,
            createdAt=now,
            updatedAt=now,
        )

        listing_id = self.listings.insert_one(data).inserted_id
        activity.record_activity(
            self.db,
            activity.LISTING_CREATED,
            caller.object_id,
            f"New listing created: {data['title']}",
            listingId=listing_id,
        )
        logger.info("Listing created", extra={"listing_id": str(listing_id), "user_id": caller.id})
        return listing_id

    @guard_store("Failed to update listing")
    def update(self, caller: CurrentUser, listing_id: str, payload: Dict[str, Any]) -> None:
        listing = self._owned_listing(caller, listing_id, "update")

        changes = _strip_protected(payload)
        blanked = [field for field in REQUIRED_FIELDS if field in changes and not changes[field]]
        if blanked:
            raise ValidationError(f"Required fields cannot be empty: {', '.join(blanked)}")
        changes["updatedAt"] = datetime.utcnow()

        result = self.listings.update_one(
            {"_id": listing["_id"], "agentId": caller.object_id},
            {"$set": changes},
        )
        if result.matched_count == 0:
            raise NotFoundError("Listing not found")
        logger.info(
            "Listing updated",
            extra={"listing_id": str(listing["_id"]), "fields": sorted(changes)},
        )

    @guard_store("Failed to delete listing")
    def delete(self, caller: CurrentUser, listing_id: str) -> None:
        listing = self._owned_listing(caller, listing_id, "delete")

        result = self.listings.delete_one({"_id": listing["_id"], "agentId": caller.object_id})
        if result.deleted_count == 0:
            raise NotFoundError("Listing not found")

        activity.record_activity(
            self.db,
            activity.LISTING_DELETED,
            caller.object_id,
            f"Listing deleted: {listing.get('title')}",
            listingId=listing["_id"],
        )
        logger.info("Listing deleted", extra={"listing_id": str(listing["_id"]), "user_id": caller.id})

    @guard_store("Failed to change listing status")
    def set_status(self, listing_id: str, status: str, actor_id: Optional[ObjectId] = None) -> None:
        """Moderate a listing. The only write path for status after creation."""
        oid = parse_object_id(listing_id, "Listing")
        listing = self.listings.find_one({"_id": oid}, {"status": 1})
        if not listing:
            raise NotFoundError("Listing not found")

        current = listing.get("status")
        check_transition(LISTING_TRANSITIONS, current, status, "Listing")
        target = ListingStatus(status).value

        result = self.listings.update_one(
            {"_id": oid, "status": current},
            {"$set": {"status": target, "updatedAt": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise ValidationError("Listing status was changed by another request")

        activity.record_activity(
            self.db,
            activity.LISTING_STATUS_CHANGED,
            actor_id,
            f"Listing moved from {current} to {target}",
            listingId=oid,
        )
        logger.info("Listing status changed", extra={"listing_id": str(oid), "from": current, "to": target})


def _pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    pages = math.ceil(total / limit)
    return {"page": page, "limit": limit, "total": total, "pages": pages, "totalPages": pages}
