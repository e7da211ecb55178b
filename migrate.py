"""Create, seed or drop the NyumbaSure collections.

Usage:
    python migrate.py create [--no-seed]
    python migrate.py rollback
    python migrate.py set-listing-status <listing_id> <status>
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import ACTIVITY_LOG, AGENTS, ESCROWS, LISTINGS, REPORTS, get_db
from errors import NyumbaError
from listings import ListingService
from logging_config import setup_logging
from status import ListingStatus

logger = logging.getLogger(__name__)

INDEXES = {
    LISTINGS: [
        ([("status", ASCENDING), ("createdAt", DESCENDING)], {}),
        ([("agentId", ASCENDING)], {}),
        ([("location.city", ASCENDING), ("location.area", ASCENDING)], {}),
        ([("price", ASCENDING)], {}),
        ([("propertyType", ASCENDING)], {}),
        ([("featured", DESCENDING), ("createdAt", DESCENDING)], {}),
    ],
    AGENTS: [
        ([("userId", ASCENDING)], {}),
        ([("status", ASCENDING)], {}),
        ([("createdAt", DESCENDING)], {}),
    ],
    REPORTS: [
        ([("listingId", ASCENDING)], {}),
        ([("reporterEmail", ASCENDING)], {}),
        ([("createdAt", DESCENDING)], {}),
        ([("resolved", ASCENDING)], {}),
    ],
    ESCROWS: [
        ([("transactionId", ASCENDING)], {"unique": True}),
        ([("listingId", ASCENDING)], {}),
        ([("status", ASCENDING)], {}),
        ([("createdAt", DESCENDING)], {}),
        ([("expiresAt", ASCENDING)], {}),
    ],
    ACTIVITY_LOG: [
        ([("timestamp", DESCENDING)], {}),
    ],
}

# activity_log is an audit trail and survives a rollback.
MARKETPLACE_COLLECTIONS = (LISTINGS, AGENTS, REPORTS, ESCROWS)


def ensure_collections(db: Database) -> None:
    existing = set(db.list_collection_names())
    for name, indexes in INDEXES.items():
        if name not in existing:
            db.create_collection(name)
            logger.info("Created collection", extra={"collection": name})
        for keys, options in indexes:
            db[name].create_index(keys, **options)


def sample_agents() -> List[dict]:
    return [
        {
            "userId": ObjectId("507f1f77bcf86cd799439011"),
            "name": "John Kamau Properties",
            "phone": "+254712345678",
            "email": "john@kamau.properties",
            "idVerified": True,
            "status": "approved",
            "createdAt": datetime(2024, 1, 15),
            "updatedAt": datetime(2024, 1, 15),
        },
        {
            "userId": ObjectId("507f1f77bcf86cd799439012"),
            "name": "Nairobi Homes Ltd",
            "phone": "+254723456789",
            "email": "info@nairobihomes.co.ke",
            "idVerified": True,
            "status": "approved",
            "createdAt": datetime(2024, 2, 20),
            "updatedAt": datetime(2024, 2, 20),
        },
    ]


def _sample_listing(agent_user_id, title, description, price, charges, property_type, furnished, area,
                    coords, address, images, featured, amenities, created):
    service_charge, est_utilities = charges
    return {
        "title": title,
        "description": description,
        "price": price,
        "deposit": price * 2,
        "serviceCharge": service_charge,
        "estUtilities": est_utilities,
        "propertyType": property_type,
        "furnished": furnished,
        "location": {
            "city": "Nairobi",
            "area": area,
            "coords": {"lat": coords[0], "lng": coords[1]},
            "address": address,
        },
        "images": images,
        "videoUrl": None,
        "agentId": agent_user_id,
        "status": "approved",
        "featured": featured,
        "verifiedPhotos": True,
        "verifiedAgent": True,
        "amenities": amenities,
        "createdAt": created,
        "updatedAt": created,
    }


def sample_listings(agents: List[dict]) -> List[dict]:
    first, second = agents[0]["userId"], agents[1]["userId"]
    return [
        _sample_listing(
            first, "Modern 2BR Apartment in Kilimani",
            "Beautiful modern apartment with city views, fully furnished, 24/7 security, "
            "swimming pool, gym access. Perfect for professionals.",
            45000, (5000, 8000), "2BR", True, "Kilimani", (-1.2921, 36.8219), "Kilimani Road, near Yaya Centre",
            ["/assets/nyumba/listings/kilimani-2br-1.jpg", "/assets/nyumba/listings/kilimani-2br-2.jpg"],
            True, ["parking", "gym", "pool", "security", "balcony"], datetime(2024, 3, 10),
        ),
        _sample_listing(
            first, "Cozy Bedsitter in Westlands",
            "Affordable bedsitter with modern finishes, near Westlands Mall, good security, "
            "water backup, prepaid electricity.",
            15000, (2000, 3500), "Bedsitter", False, "Westlands", (-1.2655, 36.7984), "General Mathenge Road, Westlands",
            ["/assets/nyumba/listings/westlands-bedsitter-1.jpg"],
            False, ["parking", "security", "water_backup"], datetime(2024, 3, 15),
        ),
        _sample_listing(
            second, "Spacious 3BR Family House in Lavington",
            "Large 3-bedroom house with garden, servant quarters, 2-car parking, near Lavington Mall.",
            85000, (8000, 12000), "3BR", True, "Lavington", (-1.2889, 36.7658), "Lavington Road, near Junction",
            ["/assets/nyumba/listings/lavington-3br-1.jpg", "/assets/nyumba/listings/lavington-3br-2.jpg"],
            True, ["parking", "garden", "security", "servant_quarters", "gym"], datetime(2024, 3, 20),
        ),
        _sample_listing(
            second, "Affordable 1BR in Kileleshwa",
            "Clean 1-bedroom apartment, near Kileleshwa Primary School, reliable water, "
            "public transport accessible.",
            25000, (3000, 5000), "1BR", False, "Kileleshwa", (-1.2746, 36.8099), "Kileleshwa Road, near school",
            ["/assets/nyumba/listings/kileleshwa-1br-1.jpg"],
            False, ["parking", "security", "water_backup"], datetime(2024, 3, 25),
        ),
    ]


def seed_sample_data(db: Database) -> bool:
    """Insert demo agents and listings; does nothing if either collection has data."""
    if db[LISTINGS].count_documents({}) or db[AGENTS].count_documents({}):
        logger.info("Sample data already present, skipping")
        return False
    agents = sample_agents()
    db[AGENTS].insert_many(agents)
    listings = sample_listings(agents)
    db[LISTINGS].insert_many(listings)
    logger.info("Inserted sample data", extra={"agents": len(agents), "listings": len(listings)})
    return True


def rollback(db: Database) -> None:
    for name in MARKETPLACE_COLLECTIONS:
        db.drop_collection(name)
        logger.info("Dropped collection", extra={"collection": name})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NyumbaSure database maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="create collections and indexes")
    create.add_argument("--no-seed", action="store_true", help="skip the sample data")

    commands.add_parser("rollback", help="drop the marketplace collections")

    moderate = commands.add_parser("set-listing-status", help="approve or reject a listing")
    moderate.add_argument("listing_id")
    moderate.add_argument("status", choices=[status.value for status in ListingStatus])
    return parser


def main(argv: Optional[List[str]] = None, db: Optional[Database] = None) -> int:
    args = build_parser().parse_args(argv)
    db = db if db is not None else get_db()

    if args.command == "create":
        ensure_collections(db)
        if not args.no_seed:
            seed_sample_data(db)
    elif args.command == "rollback":
        rollback(db)
    elif args.command == "set-listing-status":
        try:
            ListingService(db).set_status(args.listing_id, args.status)
        except NyumbaError as exc:
            logger.error("Could not change listing status: %s", exc.message)
            return 1
    return 0


if __name__ == "__main__":
    setup_logging(log_format="text")
    sys.exit(main())
