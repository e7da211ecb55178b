"""Simulated escrow initiation.

No payment provider is involved: an escrow is a write-once record of an
intended payment against an approved listing. Nothing expires or settles it;
``expiresAt`` is informational.
"""

import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import activity
from config import settings
from database import ESCROWS, LISTINGS, guard_store, parse_object_id
from errors import NotFoundError, ValidationError
from schemas import CurrentUser
from status import EscrowStatus, ListingStatus

logger = logging.getLogger(__name__)

TRANSACTION_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
TRANSACTION_SUFFIX_LENGTH = 9
MAX_ID_ATTEMPTS = 3


def generate_transaction_id() -> str:
    """``ESC_<epoch-ms>_<random base36 suffix>``."""
    epoch_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(TRANSACTION_SUFFIX_ALPHABET) for _ in range(TRANSACTION_SUFFIX_LENGTH))
    return f"ESC_{epoch_ms}_{suffix}"


class EscrowService:
    def __init__(self, db: Database):
        self.db = db
        self.listings = db[LISTINGS]
        self.escrows = db[ESCROWS]

    def _insert(self, escrow: Dict[str, Any]):
        # transactionId carries a unique index; a collision only costs a new suffix.
        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            escrow["transactionId"] = generate_transaction_id()
            try:
                return self.escrows.insert_one(escrow).inserted_id
            except DuplicateKeyError:
                escrow.pop("_id", None)
                if attempt == MAX_ID_ATTEMPTS:
                    raise
                logger.warning("Escrow transaction id collision", extra={"attempt": attempt})

    @guard_store("Failed to initiate escrow")
    def initiate(
        self,
        buyer: CurrentUser,
        listing_id: Optional[str],
        amount: Any,
        payer_info: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if not listing_id or not amount or not payer_info:
            raise ValidationError("Listing ID, amount, and payer information are required")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be a number")
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        oid = parse_object_id(listing_id, "Listing")
        listing = self.listings.find_one({"_id": oid, "status": ListingStatus.APPROVED.value})
        if not listing:
            raise NotFoundError("Listing not found or not approved")

        now = datetime.utcnow()
        escrow = {
            "listingId": oid,
            "amount": amount,
            "payerInfo": payer_info,
            "payeeInfo": {"agentId": listing.get("agentId")},
            "buyerId": buyer.object_id,
            "status": EscrowStatus.INITIATED.value,
            "createdAt": now,
            "expiresAt": now + timedelta(hours=settings.escrow_ttl_hours),
        }
        escrow_id = self._insert(escrow)

        activity.record_activity(
            self.db,
            activity.ESCROW_INITIATED,
            buyer.object_id,
            f"Escrow initiated for KES {amount:,.2f}",
            listingId=oid,
            escrowId=escrow_id,
        )
        logger.info(
            "Escrow initiated",
            extra={"escrow_id": str(escrow_id), "listing_id": str(oid), "transaction_id": escrow["transactionId"]},
        )
        return {
            "escrowId": escrow_id,
            "transactionId": escrow["transactionId"],
            "paymentUrl": f"/escrow/{escrow_id}",
            "message": (
                "Escrow initiated successfully. "
                f"Complete payment within {settings.escrow_ttl_hours} hours."
            ),
            "expiresAt": escrow["expiresAt"],
        }
