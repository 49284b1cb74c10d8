"""
Registry MCP Server - FastMCP tools for agent access to families and believers.

Agents use these tools to:
- Create families with their head, add members, change the head
- Search, update, trash and restore believers
- Read dashboard counts and reminders

Architecture:
    Agent → MCP Protocol → registry_server.py → RelationshipManager → SQLite

Every rule the HTTP API enforces applies here too; tools never write to the
store directly. Business errors come back as
{"success": False, "error": message, "code": code}.
"""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from church_bms import ages
from church_bms.config import settings
from church_bms.dashboard import Dashboard
from church_bms.errors import AppError
from church_bms.models import TN_DISTRICTS
from church_bms.presenters import believer_detail, believer_rows, family_detail, family_rows
from church_bms.relations import RelationshipManager
from church_bms.store import EntityStore


# Initialize MCP server
mcp = FastMCP("church-registry")

# Lazy-loaded singleton
_store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    """Get or create EntityStore instance."""
    global _store
    if _store is None:
        _store = EntityStore()
    return _store


def get_manager() -> RelationshipManager:
    return RelationshipManager(get_store())


def _error(exc: AppError) -> dict:
    return {"success": False, "error": exc.message, "code": exc.code}


# =============================================================================
# FAMILY TOOLS
# =============================================================================

@mcp.tool()
def list_districts() -> dict:
    """List the districts a family can be registered in."""
    return {"success": True, "districts": TN_DISTRICTS}


@mcp.tool()
def create_family(address: str, village: str, district: str, head: dict, family_status: str = "Active") -> dict:
    """
    Create a new family together with its head.

    Args:
        address: Street address
        village: Village or town
        district: One of list_districts()
        head: Head's details - full_name, dob (YYYY-MM-DD), gender,
              marital_status, baptized (Yes/No), member_type,
              occupation_category; optional phone, email, wedding_date
        family_status: Active or Inactive

    Returns:
        Family (with generated code like FAM-0001) and head
    """
    try:
        family, head_believer = get_manager().create_family_with_head(
            {"address": address, "village": village, "district": district, "family_status": family_status},
            head,
        )
    except AppError as e:
        return _error(e)
    return {"success": True, "family": family.to_dict(), "head": head_believer.to_dict()}


@mcp.tool()
def get_family(family_id: int) -> dict:
    """
    Get a family with its head and members.

    Args:
        family_id: Family database ID
    """
    store = get_store()
    family = store.families.get(family_id)
    if not family:
        return {"success": True, "found": False, "family": None}
    return {"success": True, "found": True, "family": family_detail(store, family)}


@mcp.tool()
def list_families(search: str = None, district: str = None, status: str = None, page: int = 1) -> dict:
    """
    List families with optional filters.

    Args:
        search: Matches family code, village, district or head name
        district: Exact district
        status: Active or Inactive
        page: Page number (page size from settings)
    """
    store = get_store()
    families, total = store.families.list_page(search, status, district, page, settings.registry.page_size)
    return {"success": True, "total": total, "families": family_rows(store, families)}


@mcp.tool()
def update_family(family_id: int, address: str = None, village: str = None,
                  district: str = None, family_status: str = None) -> dict:
    """Update a family's address, village, district or status."""
    patch = {
        k: v for k, v in {
            "address": address,
            "village": village,
            "district": district,
            "family_status": family_status,
        }.items() if v is not None
    }
    try:
        family = get_manager().update_family(family_id, patch)
    except AppError as e:
        return _error(e)
    return {"success": True, "family": family.to_dict()}


@mcp.tool()
def delete_family(family_id: int) -> dict:
    """
    Move a family and all of its members to trash.

    The family code is released; restoring assigns a new one.
    """
    try:
        count = get_manager().delete_family(family_id)
    except AppError as e:
        return _error(e)
    return {"success": True, "members_trashed": count}


@mcp.tool()
def restore_family(family_id: int) -> dict:
    """Restore a trashed family and its members under a new family code."""
    try:
        family, count = get_manager().restore_family(family_id)
    except AppError as e:
        return _error(e)
    return {"success": True, "family": family.to_dict(), "members_restored": count}


@mcp.tool()
def list_trashed_families() -> dict:
    """List families in trash, most recently deleted first."""
    families = get_store().families.trashed()
    return {"success": True, "count": len(families), "families": [f.to_dict() for f in families]}


@mcp.tool()
def add_member(family_id: int, member: dict) -> dict:
    """
    Add a member to a family.

    Args:
        family_id: Family to add to
        member: full_name, dob, gender, relationship_to_head (Wife, Husband,
                Son, Daughter, Father, Mother, Other), baptized, member_type,
                occupation_category, marital_status (not needed for
                Wife/Husband); relation_custom when relationship is Other

    Returns:
        Created believer; Wife/Husband is linked to the head automatically
    """
    store = get_store()
    try:
        believer = RelationshipManager(store).add_member(family_id, member)
    except AppError as e:
        return _error(e)
    return {"success": True, "believer": believer_detail(store, believer)}


@mcp.tool()
def assign_head(family_id: int, new_head_id: int, previous_head_relationship: str = None) -> dict:
    """
    Make another member of the family its head.

    Args:
        family_id: Family ID
        new_head_id: Believer who becomes head (must belong to the family)
        previous_head_relationship: New relationship for the old head,
            e.g. Father; left unchanged if omitted
    """
    try:
        family, head = get_manager().assign_new_head(family_id, new_head_id, previous_head_relationship)
    except AppError as e:
        return _error(e)
    return {"success": True, "family": family.to_dict(), "head": head.to_dict()}


# =============================================================================
# BELIEVER TOOLS
# =============================================================================

@mcp.tool()
def search_believers(
    search: str = None,
    village: str = None,
    member_type: str = None,
    gender: str = None,
    marital_status: str = None,
    membership_status: str = None,
    sort_by: str = "name",
    page: int = 1,
) -> dict:
    """
    Search believers.

    Args:
        search: Part of the full name
        village: Part of the family's village
        member_type: Member, Youth or Child
        sort_by: name or age
    """
    store = get_store()
    filters = {
        "member_type": member_type,
        "gender": gender,
        "marital_status": marital_status,
        "membership_status": membership_status,
    }
    believers, total = store.believers.search(
        filters, search, village, sort_by, "asc", page, settings.registry.page_size
    )
    return {"success": True, "total": total, "believers": believer_rows(store, believers)}


@mcp.tool()
def get_believer(believer_id: int) -> dict:
    """Get a believer with family summary and spouse."""
    store = get_store()
    believer = store.believers.get(believer_id)
    if not believer:
        return {"success": True, "found": False, "believer": None}
    return {"success": True, "found": True, "believer": believer_detail(store, believer)}


@mcp.tool()
def update_believer(believer_id: int, changes: dict) -> dict:
    """
    Update a believer.

    family_id, is_head and relationship_to_head cannot be changed; use
    assign_head to change the head.

    Args:
        believer_id: Believer ID
        changes: Fields to change, e.g. {"phone": "9876543210"}
    """
    try:
        believer = get_manager().update_believer(believer_id, changes)
    except AppError as e:
        return _error(e)
    return {"success": True, "believer": believer.to_dict()}


@mcp.tool()
def delete_believer(believer_id: int) -> dict:
    """Move a believer to trash. The family head cannot be deleted."""
    try:
        believer = get_manager().delete_believer(believer_id)
    except AppError as e:
        return _error(e)
    return {"success": True, "believer": believer.to_dict()}


@mcp.tool()
def restore_believer(believer_id: int) -> dict:
    """Restore a trashed believer (their family must not be in trash)."""
    try:
        believer = get_manager().restore_believer(believer_id)
    except AppError as e:
        return _error(e)
    return {"success": True, "believer": believer.to_dict()}


@mcp.tool()
def suggest_member_type(dob: str, marital_status: str = None) -> dict:
    """
    Suggest member type from date of birth and marital status.

    Args:
        dob: Date of birth (YYYY-MM-DD)
        marital_status: Single, Married or Widowed
    """
    try:
        age = ages.age(dob)
    except AppError as e:
        return _error(e)
    return {
        "success": True,
        "age": age,
        "member_type": ages.classify_member_type(age, marital_status),
    }


@mcp.tool()
def dashboard_summary() -> dict:
    """Counts and upcoming birthdays / anniversaries."""
    return {"success": True, "dashboard": Dashboard(get_store()).summary()}


# =============================================================================
# SERVER ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    mcp.run()
