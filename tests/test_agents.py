import pytest
from bson import ObjectId

from agents import AgentService
from database import ACTIVITY_LOG, AGENTS
from errors import NotFoundError, ValidationError


def test_list_pending_attaches_user_without_credentials(db, pending_agent, agent_a):
    [entry] = AgentService(db).list_pending()

    assert entry["_id"] == pending_agent
    assert entry["user"]["email"] == "new.agent@homes.co.ke"
    assert "passwordHash" not in entry["user"]


def test_approve_sets_status_and_logs(db, admin, pending_agent):
    AgentService(db).approve(admin, str(pending_agent))

    agent = db[AGENTS].find_one({"_id": pending_agent})
    assert agent["status"] == "approved"
    assert agent["updatedAt"] >= agent["createdAt"]
    entry = db[ACTIVITY_LOG].find_one({"type": "agent_approved"})
    assert entry["agentId"] == pending_agent
    assert entry["actorId"] == admin.object_id


def test_reject_without_reason_uses_default(db, admin, pending_agent):
    AgentService(db).reject(admin, str(pending_agent))

    agent = db[AGENTS].find_one({"_id": pending_agent})
    assert agent["status"] == "rejected"
    assert agent["rejectionReason"] == "Not specified"


def test_reject_stores_reason(db, admin, pending_agent):
    AgentService(db).reject(admin, str(pending_agent), reason="ID document unreadable")

    assert db[AGENTS].find_one({"_id": pending_agent})["rejectionReason"] == "ID document unreadable"
    entry = db[ACTIVITY_LOG].find_one({"type": "agent_rejected"})
    assert entry["details"] == "Agent rejected by admin: ID document unreadable"


@pytest.mark.parametrize("agent_id", ["garbage", str(ObjectId())])
def test_unknown_agent_is_not_found(db, admin, agent_id):
    with pytest.raises(NotFoundError):
        AgentService(db).approve(admin, agent_id)


def test_agents_are_decided_once(db, admin, pending_agent):
    service = AgentService(db)
    service.approve(admin, str(pending_agent))

    with pytest.raises(ValidationError):
        service.reject(admin, str(pending_agent))
    assert db[AGENTS].find_one({"_id": pending_agent})["status"] == "approved"
