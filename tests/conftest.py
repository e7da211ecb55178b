"""Shared pytest fixtures: an in-memory MongoDB, seeded users and an API client."""

import os
from datetime import datetime

# Set test environment variables before the app modules read settings
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_NAME", "nyumbasure_test")
os.environ.setdefault("LOG_FORMAT", "text")

import httpx
import mongomock
import pytest
from bson import ObjectId

from auth import get_current_user, get_optional_user
from database import AGENTS, LISTINGS, USERS, get_db
from main import app
from migrate import ensure_collections
from schemas import CurrentUser


@pytest.fixture
def db():
    database = mongomock.MongoClient()["nyumbasure_test"]
    ensure_collections(database)
    return database


def _make_user(db, role, email, name):
    user_id = ObjectId()
    uid = f"fb-{user_id}"
    db[USERS].insert_one(
        {"_id": user_id, "auth_uid": uid, "email": email, "name": name, "role": role, "passwordHash": "x"}
    )
    return CurrentUser(id=str(user_id), uid=uid, email=email, role=role)


def _make_agent_profile(db, user, status="approved"):
    now = datetime.utcnow()
    return db[AGENTS].insert_one(
        {
            "userId": user.object_id,
            "name": f"Agent {user.email}",
            "phone": "+254700000000",
            "email": user.email,
            "idVerified": True,
            "status": status,
            "createdAt": now,
            "updatedAt": now,
        }
    ).inserted_id


@pytest.fixture
def admin(db):
    return _make_user(db, "admin", "admin@nyumbasure.co.ke", "Admin")


@pytest.fixture
def agent_a(db):
    user = _make_user(db, "agent", "wanjiru@homes.co.ke", "Wanjiru")
    _make_agent_profile(db, user)
    return user


@pytest.fixture
def agent_b(db):
    user = _make_user(db, "agent", "otieno@homes.co.ke", "Otieno")
    _make_agent_profile(db, user)
    return user


@pytest.fixture
def buyer(db):
    return _make_user(db, "buyer", "amina@example.com", "Amina")


@pytest.fixture
def pending_agent(db):
    """A registration awaiting admin review; returns the nyumba_agents id."""
    user = _make_user(db, "agent", "new.agent@homes.co.ke", "New Agent")
    return _make_agent_profile(db, user, status="pending")


@pytest.fixture
def make_listing(db):
    """Insert a listing straight into the store, bypassing the service."""

    def _make(agent, **overrides):
        now = datetime.utcnow()
        doc = {
            "title": "2BR in Kilimani",
            "description": "Bright apartment",
            "price": 45000,
            "propertyType": "2BR",
            "location": {"city": "Nairobi", "area": "Kilimani"},
            "agentId": agent.object_id,
            "status": "approved",
            "featured": False,
            "createdAt": now,
            "updatedAt": now,
        }
        doc.update(overrides)
        return db[LISTINGS].insert_one(doc).inserted_id

    return _make


@pytest.fixture
async def client(db):
    """HTTP client that talks to the app with the in-memory database."""
    app.dependency_overrides[get_db] = lambda: db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Act as ``user`` on subsequent requests; ``login(None)`` goes back to anonymous."""

    def _login(user):
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
            app.dependency_overrides.pop(get_optional_user, None)
            return
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user

    return _login
