from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from playpartner import services
from playpartner.auth import current_user, require_admin, user_dict
from playpartner.config import settings
from playpartner.db import db_session, init_db
from playpartner.export import assessments_csv, export_filename, partners_csv
from playpartner.logging_config import setup_logging
from playpartner.models import Partner, PartnerMedia, Tag, User
from playpartner.schemas import (
    AssessmentCreate,
    AssessmentOut,
    AssessmentWithPartner,
    DashboardOut,
    IntimacyIn,
    IntimacyOut,
    LogisticsIn,
    LogisticsOut,
    MediaCreate,
    MediaOut,
    PartnerCreate,
    PartnerOut,
    PartnerUpdate,
    TagCreate,
    TagOut,
    UserOut,
)

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    log.info("PlayPartner API starting (%s)", settings.ENV)
    yield
    log.info("PlayPartner API shutting down")


app = FastAPI(
    title="PlayPartner",
    version="0.1.0",
    description=(
        "Private partner tracking API. Partners carry admin assessments and tags; "
        "effective status, risk and conflict flags are derived on every read. "
        "All endpoints except /api/health require a bearer token."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Partners", "description": "Browse, create, update and delete partners."},
        {"name": "Details", "description": "Intimacy, logistics and media records of a partner."},
        {"name": "Assessments", "description": "Append-only admin assessments."},
        {"name": "Tags", "description": "Tag catalog; Risk-group tags raise the risk flag."},
        {"name": "Dashboard", "description": "Counts and review queues across all partners."},
        {"name": "Export", "description": "CSV downloads (admin only)."},
        {"name": "Auth", "description": "Current user and health check."},
    ],
)


# ---------------------------------------------------------------------------
# Middleware & error handlers
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    # Stays 500 when the handler raises; the error handler answers after this middleware
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        if request.url.path.startswith("/api"):
            log.info(
                "%s %s -> %s (%.1fms)", request.method, request.url.path,
                status_code, (time.perf_counter() - start) * 1000,
            )


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:])
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse({"message": "; ".join(parts) or "Invalid request"}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Internal Server Error"}, status_code=500)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_id(raw: str) -> int:
    # Plain ASCII digits only; int() also accepts padding, signs and non-ASCII digits
    if not (raw.isascii() and raw.isdigit()) or int(raw) < 1:
        raise HTTPException(400, "Invalid ID format")
    return int(raw)


def _get_or_404(session: Session, model, raw_id: str, label: str = "Entity"):
    obj = session.execute(select(model).where(model.id == _parse_id(raw_id))).scalars().first()
    if not obj:
        raise HTTPException(404, f"{label} not found")
    return obj


def _csv_response(body: str, kind: str) -> Response:
    return Response(
        content=body, media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(kind)}"'},
    )


viewer = [Depends(current_user)]
admin = [Depends(require_admin)]


# ---------------------------------------------------------------------------
# Routes: Auth & health
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Auth"], summary="Liveness check (no authentication)")
async def health():
    return {"status": "ok"}


@app.get("/api/auth/user", response_model=UserOut, tags=["Auth"], summary="The authenticated user")
async def auth_user(user: User = Depends(current_user)):
    return user_dict(user)


# ---------------------------------------------------------------------------
# Routes: Dashboard
# ---------------------------------------------------------------------------


@app.get("/api/dashboard", response_model=DashboardOut, dependencies=viewer,
         tags=["Dashboard"], summary="Totals plus vetting, risk, conflict and recent queues")
async def dashboard(session: Session = Depends(db_session)):
    return services.compute_dashboard(session)


# ---------------------------------------------------------------------------
# Routes: Partners (export before parameterized to avoid route shadowing)
# ---------------------------------------------------------------------------


@app.get("/api/partners", response_model=list[PartnerOut], dependencies=viewer,
         tags=["Partners"], summary="List partners with derived fields, optionally filtered")
async def list_partners(
    search: str | None = Query(None, description="Substring of full name or nickname"),
    status: str | None = Query(None, description="Effective status; 'all' disables the filter"),
    city: str | None = Query(None, description="Substring of city"),
    hosting: bool | None = Query(None),
    car: bool | None = Query(None),
    discreet: bool | None = Query(None),
    rating_min: float | None = Query(None, ge=0, le=5, description="Missing averages count as 0"),
    rating_max: float | None = Query(None, ge=0, le=5),
    has_risk: bool | None = Query(None),
    has_conflict: bool | None = Query(None),
    session: Session = Depends(db_session),
):
    return services.filter_partners(
        services.get_all_partners(session), search=search, status=status, city=city,
        hosting=hosting, car=car, discreet=discreet, rating_min=rating_min,
        rating_max=rating_max, has_risk=has_risk, has_conflict=has_conflict,
    )


@app.get("/api/partners/export", dependencies=admin, tags=["Export"], summary="Partners as CSV")
async def export_partners(session: Session = Depends(db_session)):
    return _csv_response(partners_csv(services.get_all_partners(session)), "partners")


@app.get("/api/partners/{partner_id}", response_model=PartnerOut, dependencies=viewer,
         tags=["Partners"], summary="Get one partner with related rows and derived fields")
async def get_partner(partner_id: str, session: Session = Depends(db_session)):
    partner = services.get_partner(session, _parse_id(partner_id))
    if partner is None:
        raise HTTPException(404, "Partner not found")
    return partner


@app.post("/api/partners", response_model=PartnerOut, status_code=201, dependencies=admin,
          tags=["Partners"], summary="Create a partner")
async def create_partner(body: PartnerCreate, session: Session = Depends(db_session)):
    partner = services.create_partner(session, body.model_dump())
    session.commit()
    log.info("Created partner %s", partner.id)
    return services.partner_view(session, partner)


@app.patch("/api/partners/{partner_id}", response_model=PartnerOut, dependencies=admin,
           tags=["Partners"], summary="Update partner fields (partial update, null fields ignored)")
async def update_partner(partner_id: str, body: PartnerUpdate, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    services.update_partner(partner, body.model_dump())
    session.commit()
    return services.partner_view(session, partner)


@app.delete("/api/partners/{partner_id}", status_code=204, dependencies=admin,
            tags=["Partners"], summary="Delete a partner and everything attached to it")
async def delete_partner(partner_id: str, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    session.delete(partner)
    session.commit()
    log.info("Deleted partner %s", partner.id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Routes: Partner details
# ---------------------------------------------------------------------------


@app.get("/api/partners/{partner_id}/intimacy", response_model=IntimacyOut | None,
         dependencies=viewer, tags=["Details"], summary="Intimacy record, or null")
async def get_intimacy(partner_id: str, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    row = services.get_intimacy(session, partner.id)
    return services.intimacy_dict(row) if row else None


@app.put("/api/partners/{partner_id}/intimacy", response_model=IntimacyOut,
         dependencies=admin, tags=["Details"], summary="Create or update the intimacy record")
async def put_intimacy(partner_id: str, body: IntimacyIn, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    row = services.upsert_intimacy(session, partner.id, body.model_dump(exclude_unset=True))
    session.commit()
    return services.intimacy_dict(row)


@app.get("/api/partners/{partner_id}/logistics", response_model=LogisticsOut | None,
         dependencies=viewer, tags=["Details"], summary="Logistics record, or null")
async def get_logistics(partner_id: str, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    row = services.get_logistics(session, partner.id)
    return services.logistics_dict(row) if row else None


@app.put("/api/partners/{partner_id}/logistics", response_model=LogisticsOut,
         dependencies=admin, tags=["Details"], summary="Create or update the logistics record")
async def put_logistics(partner_id: str, body: LogisticsIn, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    row = services.upsert_logistics(session, partner.id, body.model_dump(exclude_unset=True))
    session.commit()
    return services.logistics_dict(row)


@app.get("/api/partners/{partner_id}/media", response_model=list[MediaOut],
         dependencies=viewer, tags=["Details"], summary="Media of a partner")
async def list_media(partner_id: str, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    return [services.media_dict(m) for m in services.list_media(session, partner.id)]


@app.post("/api/partners/{partner_id}/media", response_model=MediaOut, status_code=201,
          dependencies=admin, tags=["Details"], summary="Attach media to a partner")
async def create_media(partner_id: str, body: MediaCreate, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    row = services.create_media(session, partner.id, body.model_dump())
    session.commit()
    return services.media_dict(row)


@app.delete("/api/media/{media_id}", status_code=204, dependencies=admin,
            tags=["Details"], summary="Delete a media record")
async def delete_media(media_id: str, session: Session = Depends(db_session)):
    row = _get_or_404(session, PartnerMedia, media_id, "Media")
    session.delete(row)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Routes: Assessments (export before parameterized to avoid route shadowing)
# ---------------------------------------------------------------------------


@app.get("/api/assessments", response_model=list[AssessmentWithPartner], dependencies=viewer,
         tags=["Assessments"], summary="All assessments, most recent first")
async def list_assessments(session: Session = Depends(db_session)):
    return services.list_assessments(session)


@app.get("/api/assessments/export", dependencies=admin, tags=["Export"], summary="Assessments as CSV")
async def export_assessments(session: Session = Depends(db_session)):
    return _csv_response(assessments_csv(services.list_assessments(session)), "assessments")


@app.get("/api/partners/{partner_id}/assessments", response_model=list[AssessmentOut],
         dependencies=viewer, tags=["Assessments"], summary="Assessments of one partner, most recent first")
async def list_partner_assessments(partner_id: str, session: Session = Depends(db_session)):
    partner = _get_or_404(session, Partner, partner_id, "Partner")
    return [services.assessment_dict(a) for a in services.partner_assessments(session, partner.id)]


@app.post("/api/assessments", response_model=AssessmentOut, status_code=201, dependencies=admin,
          tags=["Assessments"], summary="Record an admin assessment (append-only)")
async def create_assessment(body: AssessmentCreate, session: Session = Depends(db_session)):
    if session.get(Partner, body.partner_id) is None:
        raise HTTPException(404, "Partner not found")
    row = services.create_assessment(session, body.model_dump())
    session.commit()
    return services.assessment_dict(row)


# ---------------------------------------------------------------------------
# Routes: Tags
# ---------------------------------------------------------------------------


@app.get("/api/tags", response_model=list[TagOut], dependencies=viewer,
         tags=["Tags"], summary="Tag catalog ordered by group and name")
async def list_tags(session: Session = Depends(db_session)):
    return [services.tag_dict(t) for t in services.list_tags(session)]


@app.post("/api/tags", response_model=TagOut, status_code=201, dependencies=admin,
          tags=["Tags"], summary="Add a tag to the catalog")
async def create_tag(body: TagCreate, session: Session = Depends(db_session)):
    tag = services.create_tag(session, body.tag_name, body.tag_group)
    if tag is None:
        raise HTTPException(409, f"Tag '{body.tag_name}' already exists")
    session.commit()
    return services.tag_dict(tag)


@app.delete("/api/tags/{tag_id}", status_code=204, dependencies=admin,
            tags=["Tags"], summary="Remove a tag from the catalog")
async def delete_tag(tag_id: str, session: Session = Depends(db_session)):
    tag = _get_or_404(session, Tag, tag_id, "Tag")
    session.delete(tag)
    session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    uvicorn.run(
        "playpartner.app:app", host=settings.HOST, port=settings.PORT,
        reload=settings.ENV == "development",
    )


if __name__ == "__main__":
    main()
