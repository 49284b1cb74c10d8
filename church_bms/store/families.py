"""
Family Store - family records and family-code assignment.

Format: PREFIX-SEQUENCE
Example: FAM-0001, FAM-0002

Codes are derived from the number of non-deleted families at creation or
restoration time. Trashed families release their code (NULL), so a number
can be handed out again later.
"""

from typing import Optional

from church_bms.config import settings
from church_bms.models import Family
from church_bms.store.collection import Collection


class FamilyStore(Collection):
    """Storage for families."""

    table = "families"
    model = Family
    search_fields = ("family_code", "village", "district")

    # =========================================================================
    # FAMILY CODES
    # =========================================================================

    def format_code(self, number: int) -> str:
        registry = settings.registry
        return f"{registry.family_code_prefix}-{number:0{registry.family_code_width}d}"

    def _code_taken(self, number: int) -> bool:
        return self.find_one({"family_code": self.format_code(number)}, include_deleted=True) is not None

    def next_code(self) -> str:
        """
        Reserve the next family code.

        "counter" strategy: bump the family_code counter row, so every
        assignment (creation or restoration) gets a number never handed out
        before. "count" strategy: number of non-deleted families + 1. Both
        must run inside a transaction so assignments are serialized, and
        both skip numbers whose code is still held by another family.
        """
        if settings.registry.family_code_strategy == "count":
            number = self.count_documents() + 1
            while self._code_taken(number):
                number += 1
        else:
            number = self.db.increment_counter("family_code")
            while self._code_taken(number):
                number = self.db.increment_counter("family_code")
        return self.format_code(number)

    def preview_code(self) -> str:
        """Preview what code the next family would get (doesn't save)."""
        if settings.registry.family_code_strategy == "count":
            number = self.count_documents() + 1
        else:
            with self.db.connect() as conn:
                row = conn.execute(
                    "SELECT value FROM counters WHERE name = 'family_code'"
                ).fetchone()
            number = (row[0] if row else 0) + 1
        while self._code_taken(number):
            number += 1
        return self.format_code(number)

    # =========================================================================
    # FAMILY OPERATIONS
    # =========================================================================

    def insert(self, doc: Family) -> Family:
        """Insert a family, assigning a code to new non-deleted families."""
        with self.db.transaction():
            if not doc.family_code and not doc.is_deleted:
                doc.family_code = self.next_code()
            return super().insert(doc)

    def update_one(self, doc_id, changes=None, unset=(), include_deleted=False) -> bool:
        """Update a family; moving it to trash releases its code."""
        changes = dict(changes or {})
        if changes.get("is_deleted") is True:
            changes["family_code"] = None
        return super().update_one(doc_id, changes, unset, include_deleted)

    def restore(self, family_id: int) -> Optional[str]:
        """
        Bring a trashed family back with a freshly assigned code.

        Returns: the new code, or None if no trashed family matched
        """
        with self.db.transaction():
            code = self.next_code()
            restored = self.update_many(
                {"id": family_id, "is_deleted": True},
                {"is_deleted": False, "family_code": code},
                unset=("deleted_at",),
            )
        return code if restored else None

    # =========================================================================
    # FAMILY QUERIES
    # =========================================================================

    def _search_clause(self, term: str) -> tuple[str, list]:
        """Match code, village, district or the head's name."""
        clause, params = super()._search_clause(term)
        head_clause = (
            "head_id IN (SELECT id FROM believers "
            "WHERE LOWER(full_name) LIKE ? ESCAPE '\\')"
        )
        return f"({clause[1:-1]} OR {head_clause})", params + [params[0]]

    def list_page(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        district: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Family], int]:
        """
        Search non-deleted families, newest first.

        Returns: (families on the page, total matches)
        """
        where = {}
        if status:
            where["family_status"] = status
        if district:
            where["district"] = district
        total = self.count_documents(where, search=search)
        families = self.find_many(
            where,
            search=search,
            order_by="created_at",
            descending=True,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return families, total

    def trashed(self) -> list[Family]:
        """Families in trash, most recently deleted first."""
        return self.find_many({"is_deleted": True}, order_by="deleted_at", descending=True)
