"""
Response shaping - entities with their references populated.

Families come back with their head and members, believers with a short
family summary and their linked spouse. Lookups are batched per page so a
listing costs a fixed number of queries.
"""

import math
from typing import Iterable, Optional

from church_bms.models import Believer, Family, Status


def family_summary(family: Optional[Family]) -> Optional[dict]:
    if not family:
        return None
    return {
        "id": family.id,
        "family_code": family.family_code,
        "village": family.village,
        "address": family.address,
    }


def person_summary(believer: Optional[Believer], *extra: str) -> Optional[dict]:
    if not believer:
        return None
    summary = {"id": believer.id, "full_name": believer.full_name}
    for name in extra:
        summary[name] = getattr(believer, name)
    return summary


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def believer_rows(store, believers: Iterable[Believer]) -> list[dict]:
    """Believers with `family` and `spouse` populated."""
    believers = list(believers)
    family_ids = list({b.family_id for b in believers})
    families = {
        f.id: f for f in store.families.find_many({"id": family_ids}, include_deleted=True)
    } if family_ids else {}
    spouses = store.believers.by_ids(b.spouse_id for b in believers)

    rows = []
    for believer in believers:
        row = believer.to_dict()
        row["family"] = family_summary(families.get(believer.family_id))
        row["spouse"] = person_summary(spouses.get(believer.spouse_id))
        rows.append(row)
    return rows


def believer_detail(store, believer: Believer) -> dict:
    return believer_rows(store, [believer])[0]


def family_detail(store, family: Family) -> dict:
    """Family with its head and non-deleted members (head first)."""
    members = believer_rows(store, store.believers.members_of(family.id))
    data = family.to_dict()
    data["head"] = next((m for m in members if m["id"] == family.head_id), None)
    data["members"] = members
    data["total_members"] = len(members)
    return data


def family_rows(store, families: Iterable[Family]) -> list[dict]:
    """Family listing rows with head summary and member counts."""
    families = list(families)
    ids = [f.id for f in families]
    totals = store.believers.count_by_family(ids)
    active = store.believers.count_by_family(ids, membership_status=Status.ACTIVE.value)
    heads = store.believers.by_ids(f.head_id for f in families)

    rows = []
    for family in families:
        row = family.to_dict()
        row["head"] = person_summary(heads.get(family.head_id), "phone")
        row["total_members"] = totals.get(family.id, 0)
        row["active_count"] = active.get(family.id, 0)
        rows.append(row)
    return rows


def trashed_family_rows(store, families: Iterable[Family]) -> list[dict]:
    """Trash listing rows; member counts are of trashed members."""
    families = list(families)
    ids = [f.id for f in families]
    trashed = store.believers.count_by_family(ids, is_deleted=True)
    heads = store.believers.by_ids(f.head_id for f in families)

    rows = []
    for family in families:
        row = family.to_dict()
        row["head"] = person_summary(heads.get(family.head_id))
        row["total_members"] = trashed.get(family.id, 0)
        rows.append(row)
    return rows
