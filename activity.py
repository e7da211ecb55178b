"""Append-only activity log shared by the services."""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo.database import Database

from database import ACTIVITY_LOG

LISTING_CREATED = "listing_created"
LISTING_DELETED = "listing_deleted"
LISTING_STATUS_CHANGED = "listing_status_changed"
AGENT_APPROVED = "agent_approved"
AGENT_REJECTED = "agent_rejected"
ESCROW_INITIATED = "escrow_initiated"


def record_activity(
    db: Database,
    activity_type: str,
    actor_id: Optional[ObjectId],
    details: str,
    **subjects: Any,
) -> ObjectId:
    """Append one entry; ``subjects`` are the ids the entry is about (listingId=..., agentId=...)."""
    entry = {
        "type": activity_type,
        "actorId": actor_id,
        **subjects,
        "timestamp": datetime.utcnow(),
        "details": details,
    }
    return db[ACTIVITY_LOG].insert_one(entry).inserted_id
