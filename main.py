import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from agents import AgentService
from auth import get_current_user, get_optional_user, require_admin, require_agent
from config import settings
from database import get_db, serialize
from errors import NyumbaError
from escrow import EscrowService
from listings import ListingService
from logging_config import setup_logging
from reports import ReportService
from schemas import CurrentUser, EscrowPayload, ListingPayload, RejectPayload, ReportPayload
from stats import StatsService

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="NyumbaSure Marketplace API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------
# Error envelope
# ------------------------
@app.exception_handler(NyumbaError)
async def handle_nyumba_error(request: Request, exc: NyumbaError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {errors[0].get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})

# ------------------------
# Services
# ------------------------
def listing_service(db: Database = Depends(get_db)) -> ListingService:
    return ListingService(db)


def report_service(db: Database = Depends(get_db)) -> ReportService:
    return ReportService(db)


def agent_service(db: Database = Depends(get_db)) -> AgentService:
    return AgentService(db)


def escrow_service(db: Database = Depends(get_db)) -> EscrowService:
    return EscrowService(db)


def stats_service(db: Database = Depends(get_db)) -> StatsService:
    return StatsService(db)


@app.get("/")
def root():
    return {"name": "NyumbaSure Marketplace API", "status": "ok"}


@app.get("/health")
def health(db: Database = Depends(get_db)):
    response = {"success": True, "database": "connected", "collections": []}
    try:
        response["collections"] = sorted(db.list_collection_names())
    except PyMongoError:
        logger.exception("Health check could not reach the database")
        return JSONResponse(status_code=503, content={"success": False, "database": "unavailable", "collections": []})
    return response

# ------------------------
# Listings
# ------------------------
@app.get("/listings")
def list_listings(
    location: Optional[str] = Query(None, description="Case-insensitive match on city or area"),
    min_price: Optional[float] = Query(None, alias="min"),
    max_price: Optional[float] = Query(None, alias="max"),
    property_type: Optional[str] = Query(None, alias="type"),
    status: str = "approved",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
    service: ListingService = Depends(listing_service),
):
    result = service.list(
        location=location,
        min_price=min_price,
        max_price=max_price,
        property_type=property_type,
        status=status,
        page=page,
        limit=limit,
        viewer=viewer,
    )
    return {"success": True, **serialize(result)}


@app.get("/listings/{listing_id}")
def get_listing(listing_id: str, service: ListingService = Depends(listing_service)):
    return {"success": True, "listing": serialize(service.get(listing_id))}


@app.post("/listings")
def create_listing(
    payload: ListingPayload,
    current: CurrentUser = Depends(require_agent),
    service: ListingService = Depends(listing_service),
):
    listing_id = service.create(current, payload.to_document())
    return {"success": True, "listingId": str(listing_id), "message": "Listing submitted for approval"}


@app.put("/listings/{listing_id}")
def update_listing(
    listing_id: str,
    payload: ListingPayload,
    current: CurrentUser = Depends(require_agent),
    service: ListingService = Depends(listing_service),
):
    service.update(current, listing_id, payload.to_document())
    return {"success": True, "message": "Listing updated successfully"}


@app.delete("/listings/{listing_id}")
def delete_listing(
    listing_id: str,
    current: CurrentUser = Depends(require_agent),
    service: ListingService = Depends(listing_service),
):
    service.delete(current, listing_id)
    return {"success": True, "message": "Listing deleted successfully"}


@app.post("/listings/{listing_id}/report")
def report_listing(
    listing_id: str,
    payload: ReportPayload,
    service: ReportService = Depends(report_service),
):
    service.report(listing_id, payload.reporter_email, payload.message)
    return {"success": True, "message": "Report submitted successfully"}

# ------------------------
# Agents
# ------------------------
@app.get("/agents/pending")
def pending_agents(
    current: CurrentUser = Depends(require_admin),
    service: AgentService = Depends(agent_service),
):
    return {"success": True, "agents": serialize(service.list_pending())}


@app.post("/agents/{agent_id}/approve")
def approve_agent(
    agent_id: str,
    current: CurrentUser = Depends(require_admin),
    service: AgentService = Depends(agent_service),
):
    service.approve(current, agent_id)
    return {"success": True, "message": "Agent approved successfully"}


@app.post("/agents/{agent_id}/reject")
def reject_agent(
    agent_id: str,
    payload: Optional[RejectPayload] = None,
    current: CurrentUser = Depends(require_admin),
    service: AgentService = Depends(agent_service),
):
    service.reject(current, agent_id, payload.reason if payload else None)
    return {"success": True, "message": "Agent rejected successfully"}

# ------------------------
# Escrow
# ------------------------
@app.post("/escrow/initiate")
def initiate_escrow(
    payload: EscrowPayload,
    current: CurrentUser = Depends(get_current_user),
    service: EscrowService = Depends(escrow_service),
):
    payer_info = payload.payer_info.to_document() if payload.payer_info else None
    result = service.initiate(current, payload.listing_id, payload.amount, payer_info)
    return {"success": True, **serialize(result)}

# ------------------------
# Stats
# ------------------------
@app.get("/stats")
def dashboard_stats(
    current: CurrentUser = Depends(get_current_user),
    service: StatsService = Depends(stats_service),
):
    return {"success": True, "stats": service.dashboard_stats(current)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
