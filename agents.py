"""Admin review of agent registrations."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.database import Database

import activity
from database import AGENTS, USERS, guard_store, parse_object_id
from errors import NotFoundError, ValidationError
from schemas import CurrentUser
from status import AGENT_TRANSITIONS, AgentStatus, check_transition

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Not specified"

# Credentials never leave the users collection.
USER_PROJECTION = {"password": 0, "passwordHash": 0}


class AgentService:
    def __init__(self, db: Database):
        self.db = db
        self.agents = db[AGENTS]
        self.users = db[USERS]

    @guard_store("Failed to fetch pending agents")
    def list_pending(self) -> List[Dict[str, Any]]:
        agents = list(self.agents.find({"status": AgentStatus.PENDING.value}).sort("createdAt", -1))
        user_ids = [agent["userId"] for agent in agents if agent.get("userId")]
        users = {}
        if user_ids:
            users = {user["_id"]: user for user in self.users.find({"_id": {"$in": user_ids}}, USER_PROJECTION)}
        return [{**agent, "user": users.get(agent.get("userId"))} for agent in agents]

    def _decide(self, admin: CurrentUser, agent_id: str, target: AgentStatus, extra_fields: Dict[str, Any]) -> Dict[str, Any]:
        oid = parse_object_id(agent_id, "Agent")
        agent = self.agents.find_one({"_id": oid})
        if not agent:
            raise NotFoundError("Agent not found")

        current = agent.get("status")
        check_transition(AGENT_TRANSITIONS, current, target, "Agent")

        result = self.agents.update_one(
            {"_id": oid, "status": current},
            {"$set": {"status": target.value, "updatedAt": datetime.utcnow(), **extra_fields}},
        )
        if result.matched_count == 0:
            raise ValidationError("Agent status was changed by another request")

        logger.info(
            "Agent decided",
            extra={"agent_id": str(oid), "status": target.value, "admin_id": admin.id},
        )
        return agent

    @guard_store("Failed to approve agent")
    def approve(self, admin: CurrentUser, agent_id: str) -> None:
        agent = self._decide(admin, agent_id, AgentStatus.APPROVED, {})
        activity.record_activity(
            self.db,
            activity.AGENT_APPROVED,
            admin.object_id,
            "Agent approved by admin",
            agentId=agent["_id"],
        )

    @guard_store("Failed to reject agent")
    def reject(self, admin: CurrentUser, agent_id: str, reason: Optional[str] = None) -> None:
        reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
        agent = self._decide(admin, agent_id, AgentStatus.REJECTED, {"rejectionReason": reason})
        activity.record_activity(
            self.db,
            activity.AGENT_REJECTED,
            admin.object_id,
            f"Agent rejected by admin: {reason}",
            agentId=agent["_id"],
        )
