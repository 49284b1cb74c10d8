"""FastAPI backend for the church registry."""

import sqlite3
import traceback
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from church_bms import __version__, ages
from church_bms.api.schemas import (
    AssignHeadRequest,
    BelieverPatch,
    CreateFamilyRequest,
    FamilyFields,
    MemberFields,
)
from church_bms.config import settings
from church_bms.dashboard import Dashboard
from church_bms.errors import AppError, NotFoundError, ValidationError
from church_bms.models import TN_DISTRICTS
from church_bms.presenters import (
    believer_detail,
    believer_rows,
    family_detail,
    family_rows,
    pagination,
    trashed_family_rows,
)
from church_bms.relations import RelationshipManager
from church_bms.store import EntityStore


# Lazy-loaded singleton
_store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    """Get or create the EntityStore instance."""
    global _store
    if _store is None:
        _store = EntityStore()
    return _store


def get_manager(store: EntityStore = Depends(get_store)) -> RelationshipManager:
    return RelationshipManager(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.database.ensure_dirs()
    get_store()
    print(f"🚀 Church BMS API ready (database: {settings.database.path})")
    yield


app = FastAPI(title="Church BMS API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _limit(limit: Optional[int]) -> int:
    return min(limit or settings.registry.page_size, settings.registry.max_page_size)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    message = first.get("msg", "Invalid request.")
    if location:
        message = f"{'.'.join(location)}: {message}"
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": message, "code": "INVALID_REQUEST"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    traceback.print_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Something went wrong. Please try again later."},
    )


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/health")
def health(store: EntityStore = Depends(get_store)):
    try:
        store.families.count_documents()
    except sqlite3.Error as e:
        print(f"❌ Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "unavailable", "message": str(e)},
        )
    return {"status": "ok", "database": "connected", "version": __version__}


# =============================================================================
# FAMILIES
# =============================================================================

@app.get("/api/families/districts")
def list_districts():
    return {"success": True, "data": TN_DISTRICTS}


@app.get("/api/families/trash")
def list_trashed_families(store: EntityStore = Depends(get_store)):
    families = store.families.trashed()
    return {"success": True, "data": trashed_family_rows(store, families)}


@app.post("/api/families", status_code=201)
def create_family(
    req: CreateFamilyRequest,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    family, head = manager.create_family_with_head(
        req.family.model_dump(exclude_unset=True),
        req.head.model_dump(exclude_unset=True),
    )
    return {
        "success": True,
        "message": f"Family {family.family_code} created successfully.",
        "data": {"family": family.to_dict(), "head": believer_detail(store, head)},
    }


@app.get("/api/families")
def list_families(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    status: Optional[str] = None,
    district: Optional[str] = None,
    store: EntityStore = Depends(get_store),
):
    limit = _limit(limit)
    families, total = store.families.list_page(search, status, district, page, limit)
    return {
        "success": True,
        "data": family_rows(store, families),
        "pagination": pagination(page, limit, total),
    }


@app.get("/api/families/{family_id}")
def get_family(family_id: int, store: EntityStore = Depends(get_store)):
    family = store.families.get(family_id)
    if not family:
        raise NotFoundError("Family not found.")
    return {"success": True, "data": family_detail(store, family)}


@app.put("/api/families/{family_id}")
def update_family(
    family_id: int,
    req: FamilyFields,
    manager: RelationshipManager = Depends(get_manager),
):
    family = manager.update_family(family_id, req.model_dump(exclude_unset=True))
    return {"success": True, "message": "Family updated successfully.", "data": family.to_dict()}


@app.delete("/api/families/{family_id}")
def delete_family(family_id: int, manager: RelationshipManager = Depends(get_manager)):
    count = manager.delete_family(family_id)
    return {
        "success": True,
        "message": f"Family and {count} member(s) moved to trash.",
        "data": {"members_trashed": count},
    }


@app.patch("/api/families/{family_id}/restore")
def restore_family(
    family_id: int,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    family, count = manager.restore_family(family_id)
    return {
        "success": True,
        "message": f"Family restored with new code {family.family_code}.",
        "data": {"family": family_detail(store, family), "members_restored": count},
    }


@app.delete("/api/families/{family_id}/permanent")
def permanent_delete_family(family_id: int, manager: RelationshipManager = Depends(get_manager)):
    count = manager.permanent_delete_family(family_id)
    return {
        "success": True,
        "message": f"Family and {count} member(s) permanently deleted.",
        "data": {"members_deleted": count},
    }


@app.post("/api/families/{family_id}/members", status_code=201)
def add_member(
    family_id: int,
    req: MemberFields,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    member = manager.add_member(family_id, req.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": f"{member.full_name} added to the family.",
        "data": believer_detail(store, member),
    }


@app.put("/api/families/{family_id}/assign-head")
def assign_head(
    family_id: int,
    req: AssignHeadRequest,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    family, head = manager.assign_new_head(family_id, req.new_head_id, req.previous_head_relationship)
    return {
        "success": True,
        "message": f"{head.full_name} is now the family head.",
        "data": family_detail(store, family),
    }


# =============================================================================
# BELIEVERS
# =============================================================================

@app.get("/api/believers/trash")
def list_trashed_believers(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    store: EntityStore = Depends(get_store),
):
    limit = _limit(limit)
    believers, total = store.believers.trashed(search, page, limit)
    return {
        "success": True,
        "data": believer_rows(store, believers),
        "pagination": pagination(page, limit, total),
    }


@app.delete("/api/believers/trash/empty")
def empty_believer_trash(manager: RelationshipManager = Depends(get_manager)):
    count = manager.empty_believer_trash()
    return {
        "success": True,
        "message": f"{count} believer(s) permanently deleted.",
        "data": {"deleted": count},
    }


@app.get("/api/believers/suggestions")
def suggest_member_type(dob: Optional[str] = None, marital_status: Optional[str] = None):
    """Member type and occupation hints for a form being filled in."""
    if not dob:
        raise ValidationError("Date of birth is required.", field="dob")
    try:
        age = ages.age(dob)
    except ages.InvalidDate:
        raise ages.InvalidDate("Date of birth is not a valid date.", field="dob") from None
    return {
        "success": True,
        "data": {
            "age": age,
            "member_type": ages.classify_member_type(age, marital_status),
            "occupation_category": "Child" if age <= ages.INFANT_MAX_AGE else None,
            "can_marry": age >= ages.ADULT_AGE,
        },
    }


@app.get("/api/believers")
def list_believers(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    village: Optional[str] = None,
    membership_status: Optional[str] = None,
    member_type: Optional[str] = None,
    gender: Optional[str] = None,
    marital_status: Optional[str] = None,
    baptized: Optional[str] = None,
    occupation_category: Optional[str] = None,
    is_head: Optional[bool] = None,
    sort_by: Literal["name", "age"] = "name",
    sort_dir: Literal["asc", "desc"] = "asc",
    store: EntityStore = Depends(get_store),
):
    limit = _limit(limit)
    filters = {
        "membership_status": membership_status,
        "member_type": member_type,
        "gender": gender,
        "marital_status": marital_status,
        "baptized": baptized,
        "occupation_category": occupation_category,
        "is_head": is_head,
    }
    believers, total = store.believers.search(filters, search, village, sort_by, sort_dir, page, limit)
    return {
        "success": True,
        "data": believer_rows(store, believers),
        "pagination": pagination(page, limit, total),
    }


@app.get("/api/believers/{believer_id}")
def get_believer(believer_id: int, store: EntityStore = Depends(get_store)):
    believer = store.believers.get(believer_id)
    if not believer:
        raise NotFoundError("Believer not found.")
    return {"success": True, "data": believer_detail(store, believer)}


@app.put("/api/believers/{believer_id}")
def update_believer(
    believer_id: int,
    req: BelieverPatch,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    believer = manager.update_believer(believer_id, req.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Believer updated successfully.",
        "data": believer_detail(store, believer),
    }


@app.delete("/api/believers/{believer_id}")
def delete_believer(believer_id: int, manager: RelationshipManager = Depends(get_manager)):
    believer = manager.delete_believer(believer_id)
    return {"success": True, "message": f"{believer.full_name} moved to trash."}


@app.patch("/api/believers/{believer_id}/restore")
def restore_believer(
    believer_id: int,
    store: EntityStore = Depends(get_store),
    manager: RelationshipManager = Depends(get_manager),
):
    believer = manager.restore_believer(believer_id)
    return {
        "success": True,
        "message": f"{believer.full_name} restored.",
        "data": believer_detail(store, believer),
    }


@app.delete("/api/believers/{believer_id}/permanent")
def permanent_delete_believer(believer_id: int, manager: RelationshipManager = Depends(get_manager)):
    believer = manager.permanent_delete_believer(believer_id)
    return {"success": True, "message": f"{believer.full_name} permanently deleted."}


# =============================================================================
# DASHBOARD
# =============================================================================

@app.get("/api/dashboard")
def dashboard(store: EntityStore = Depends(get_store)):
    return {"success": True, "data": Dashboard(store).summary()}
