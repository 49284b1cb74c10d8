"""
Believer Store - member records.

Spouse links are plain integer columns (weak references). Nothing in the
schema cascades them; RelationshipManager clears reciprocal links explicitly.
"""

from typing import Iterable, Optional

from church_bms.models import Believer
from church_bms.store.collection import Collection


# Filters accepted by search(), all exact matches
FILTER_FIELDS = (
    "membership_status", "member_type", "gender", "marital_status",
    "baptized", "occupation_category", "is_head",
)


class BelieverStore(Collection):
    """Storage for believers."""

    table = "believers"
    model = Believer
    bool_fields = ("is_deleted", "is_head")
    date_fields = ("dob", "join_date", "baptized_date", "wedding_date")
    search_fields = ("full_name",)

    def members_of(self, family_id: int) -> list[Believer]:
        """Non-deleted members of a family, head first."""
        members = self.find_many({"family_id": family_id}, order_by="created_at")
        return sorted(members, key=lambda b: not b.is_head)

    def by_ids(self, ids: Iterable[int]) -> dict[int, Believer]:
        """Lookup table for populating references (includes trashed rows)."""
        ids = {i for i in ids if i is not None}
        if not ids:
            return {}
        return {b.id: b for b in self.find_many({"id": list(ids)}, include_deleted=True)}

    def count_by_family(self, family_ids: Iterable[int], **where) -> dict[int, int]:
        """Count non-deleted members per family, optionally filtered."""
        family_ids = list(family_ids)
        if not family_ids:
            return {}
        clause, params = self._build_where({"family_id": family_ids, **where})
        with self.db.connect() as conn:
            rows = conn.execute(
                f"SELECT family_id, COUNT(*) FROM believers WHERE {clause} GROUP BY family_id",
                params,
            ).fetchall()
        counts = {fid: 0 for fid in family_ids}
        counts.update({row[0]: row[1] for row in rows})
        return counts

    def search(
        self,
        filters: Optional[dict] = None,
        search: Optional[str] = None,
        village: Optional[str] = None,
        sort_by: str = "name",
        sort_dir: str = "asc",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Believer], int]:
        """
        Search non-deleted believers.

        Args:
            filters: exact-match values for FILTER_FIELDS (None/"" ignored)
            search: substring of full name
            village: substring of the family's village (non-deleted families)
            sort_by: "name" or "age" (age sorts on dob in the same direction)
            sort_dir: "asc" or "desc"

        Returns: (believers on the page, total matches)
        """
        where = {
            k: v for k, v in (filters or {}).items()
            if k in FILTER_FIELDS and v is not None and v != ""
        }
        extra = []
        if village and village.strip():
            pattern = f"%{village.strip().lower()}%"
            extra.append((
                "family_id IN (SELECT id FROM families "
                "WHERE is_deleted = 0 AND LOWER(village) LIKE ?)",
                [pattern],
            ))
        order_by = "dob" if sort_by == "age" else "full_name"
        total = self.count_documents(where, search=search, extra=extra)
        believers = self.find_many(
            where,
            search=search,
            extra=extra,
            order_by=order_by,
            descending=sort_dir == "desc",
            offset=(page - 1) * limit,
            limit=limit,
        )
        return believers, total

    def trashed(self, search: Optional[str] = None, page: int = 1, limit: int = 20) -> tuple[list[Believer], int]:
        """Believers in trash, most recently deleted first."""
        where = {"is_deleted": True}
        total = self.count_documents(where, search=search)
        believers = self.find_many(
            where,
            search=search,
            order_by="deleted_at",
            descending=True,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return believers, total

    def clear_spouse_references(self, believer_id: int, fallback_name: Optional[str]) -> int:
        """Drop every link pointing at believer_id, keeping the name as text."""
        return self.update_many(
            {"spouse_id": believer_id},
            {"spouse_id": None, "spouse_name": fallback_name},
            include_deleted=True,
        )
