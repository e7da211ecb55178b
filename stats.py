from datetime import datetime, timedelta
from typing import Dict

from pymongo.database import Database

from config import settings
from database import AGENTS, ESCROWS, LISTINGS, guard_store
from schemas import CurrentUser
from status import AgentStatus, ListingStatus


class StatsService:
    """Read-only dashboard counts."""

    def __init__(self, db: Database):
        self.listings = db[LISTINGS]
        self.agents = db[AGENTS]
        self.escrows = db[ESCROWS]

    @guard_store("Failed to fetch statistics")
    def dashboard_stats(self, caller: CurrentUser) -> Dict[str, int]:
        approved = ListingStatus.APPROVED.value
        window_start = datetime.utcnow() - timedelta(days=settings.active_listing_window_days)

        stats = {
            "totalListings": self.listings.count_documents({"status": approved}),
            "activeListings": self.listings.count_documents(
                {"status": approved, "createdAt": {"$gte": window_start}}
            ),
            "pendingListings": self.listings.count_documents({"status": ListingStatus.PENDING.value}),
            "totalAgents": self.agents.count_documents({"status": AgentStatus.APPROVED.value}),
            "pendingAgents": self.agents.count_documents({"status": AgentStatus.PENDING.value}),
            "userListings": 0,
            "userEscrows": 0,
        }

        if caller.is_agent:
            stats["userListings"] = self.listings.count_documents({"agentId": caller.object_id})
            if caller.email:
                stats["userEscrows"] = self.escrows.count_documents({"payerInfo.email": caller.email})
        return stats
