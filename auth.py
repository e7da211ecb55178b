"""Firebase ID-token authentication and role guards."""

import json
import logging
from typing import Any, Dict, Optional

# Firebase Admin for token verification
import firebase_admin
from fastapi import Depends, Header
from firebase_admin import auth as fb_auth, credentials
from firebase_admin import exceptions as fb_exceptions
from pymongo.database import Database

from config import settings
from database import USERS, get_db, guard_store
from errors import AuthenticationError, AuthorizationError
from schemas import CurrentUser

logger = logging.getLogger(__name__)


def init_firebase() -> None:
    """Initialize the Firebase Admin SDK once."""
    if firebase_admin._apps:
        return
    if settings.firebase_service_account_json:
        cred = credentials.Certificate(json.loads(settings.firebase_service_account_json))
        firebase_admin.initialize_app(cred)
    else:
        firebase_admin.initialize_app()


def verify_token(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid Authorization header format")

    init_firebase()
    try:
        return fb_auth.verify_id_token(token.strip())  # contains uid, email, etc.
    except (ValueError, fb_exceptions.FirebaseError) as exc:
        logger.warning("Token verification failed", extra={"error": type(exc).__name__})
        raise AuthenticationError("Invalid token")


@guard_store("Failed to load user profile")
def load_user(db: Database, decoded: Dict[str, Any]) -> CurrentUser:
    uid = decoded.get("uid")
    user_doc = db[USERS].find_one({"auth_uid": uid}) if uid else None
    if not user_doc:
        raise AuthenticationError("User profile not found")
    return CurrentUser(
        id=str(user_doc["_id"]),
        uid=uid,
        email=user_doc.get("email") or decoded.get("email"),
        role=user_doc.get("role"),
    )


def get_current_user(
    decoded: Dict[str, Any] = Depends(verify_token),
    db: Database = Depends(get_db),
) -> CurrentUser:
    return load_user(db, decoded)


def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db),
) -> Optional[CurrentUser]:
    """Like get_current_user, but callers without a usable identity are anonymous instead of a 401."""
    if not authorization:
        return None
    try:
        return load_user(db, verify_token(authorization))
    except AuthenticationError as exc:
        logger.warning("Ignoring unusable credentials on a public route", extra={"reason": exc.message})
        return None


def require_agent(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_agent:
        raise AuthorizationError("Agent access required")
    return current


def require_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_admin:
        raise AuthorizationError("Admin access required")
    return current
