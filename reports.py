import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo.database import Database

from database import LISTINGS, REPORTS, guard_store, parse_object_id
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ReportService:
    """Public intake of complaints about listings."""

    def __init__(self, db: Database):
        self.listings = db[LISTINGS]
        self.reports = db[REPORTS]

    @guard_store("Failed to submit report")
    def report(self, listing_id: str, reporter_email: Optional[str], message: Optional[str]) -> ObjectId:
        reporter_email = (reporter_email or "").strip()
        message = (message or "").strip()
        if not reporter_email or not message:
            raise ValidationError("Reporter email and message are required")

        oid = parse_object_id(listing_id, "Listing")
        if not self.listings.find_one({"_id": oid}, {"_id": 1}):
            raise NotFoundError("Listing not found")

        report_id = self.reports.insert_one(
            {
                "listingId": oid,
                "reporterEmail": reporter_email,
                "message": message,
                "createdAt": datetime.utcnow(),
                "resolved": False,
            }
        ).inserted_id
        logger.info("Listing reported", extra={"listing_id": str(oid), "report_id": str(report_id)})
        return report_id
