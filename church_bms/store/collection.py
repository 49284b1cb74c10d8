"""
Collection - generic document operations over one SQLite table.

This is a DATA LAYER component:
- Maps dataclass models to rows and back
- Applies the soft-delete discriminator (is_deleted = 0) implicitly
- NO business rules (RelationshipManager decides what to write)

Every query filters out trashed rows unless the caller names is_deleted in
the filter or passes include_deleted=True.
"""

from dataclasses import asdict, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from church_bms import ages


class Collection:
    """Base class for FamilyStore and BelieverStore."""

    table = ""
    model = None
    bool_fields: tuple = ("is_deleted",)
    date_fields: tuple = ()
    datetime_fields: tuple = ("deleted_at", "created_at", "updated_at")
    search_fields: tuple = ()

    def __init__(self, db):
        self.db = db
        self.columns = [f.name for f in fields(self.model)]

    # =========================================================================
    # ROW CONVERSION
    # =========================================================================

    def _check_column(self, name: str):
        if name not in self.columns:
            raise KeyError(f"Unknown column for {self.table}: {name}")

    def _to_db(self, name: str, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, Enum):
            return value.value
        if name in self.bool_fields:
            return 1 if value else 0
        if name in self.date_fields:
            return ages.parse_date(value).isoformat()
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    def _from_row(self, row):
        data = {}
        for name in self.columns:
            value = row[name]
            if value is not None:
                if name in self.bool_fields:
                    value = bool(value)
                elif name in self.date_fields:
                    value = date.fromisoformat(value)
                elif name in self.datetime_fields:
                    value = datetime.fromisoformat(value)
            data[name] = value
        return self.model(**data)

    # =========================================================================
    # FILTERS
    # =========================================================================

    def _search_clause(self, term: str) -> tuple[str, list]:
        """OR of case-insensitive substring matches over search_fields."""
        pattern = "%" + term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        parts = [f"LOWER({name}) LIKE ? ESCAPE '\\'" for name in self.search_fields]
        return "(" + " OR ".join(parts) + ")", [pattern] * len(parts)

    def _build_where(
        self,
        where: Optional[dict] = None,
        include_deleted: bool = False,
        search: Optional[str] = None,
        extra: Iterable[tuple[str, list]] = (),
    ) -> tuple[str, list]:
        where = dict(where or {})
        if not include_deleted and "is_deleted" not in where:
            where["is_deleted"] = False

        clauses, params = [], []
        for name, value in where.items():
            self._check_column(name)
            if value is None:
                clauses.append(f"{name} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("0")
                    continue
                clauses.append(f"{name} IN ({', '.join('?' * len(values))})")
                params.extend(self._to_db(name, v) for v in values)
            else:
                clauses.append(f"{name} = ?")
                params.append(self._to_db(name, value))

        if search and search.strip() and self.search_fields:
            clause, search_params = self._search_clause(search.strip())
            clauses.append(clause)
            params.extend(search_params)

        for clause, extra_params in extra:
            clauses.append(clause)
            params.extend(extra_params)

        return (" AND ".join(clauses) if clauses else "1=1"), params

    # =========================================================================
    # DOCUMENT OPERATIONS
    # =========================================================================

    def insert(self, doc):
        """Insert a model instance; returns it with id and timestamps set."""
        stamp = ages.now()
        doc.created_at = doc.created_at or stamp
        doc.updated_at = stamp
        data = {k: v for k, v in asdict(doc).items() if not (k == "id" and v is None)}
        names = list(data.keys())
        with self.db.connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO {self.table} ({', '.join(names)}) "
                f"VALUES ({', '.join('?' * len(names))})",
                [self._to_db(k, data[k]) for k in names],
            )
            doc.id = cursor.lastrowid
        return doc

    def get(self, doc_id: int, include_deleted: bool = False):
        """Get by id (non-deleted unless include_deleted)."""
        return self.find_one({"id": doc_id}, include_deleted=include_deleted)

    def find_one(self, where: Optional[dict] = None, include_deleted: bool = False):
        rows = self.find_many(where, limit=1, include_deleted=include_deleted)
        return rows[0] if rows else None

    def find_many(
        self,
        where: Optional[dict] = None,
        *,
        search: Optional[str] = None,
        extra: Iterable[tuple[str, list]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
        include_deleted: bool = False,
    ) -> list:
        """
        Query documents.

        Args:
            where: column -> value; lists mean IN, None means IS NULL
            search: case-insensitive substring over search_fields
            order_by: column to sort on (id breaks ties)
            offset/limit: pagination window
        """
        clause, params = self._build_where(where, include_deleted, search, extra)
        direction = "DESC" if descending else "ASC"
        order = f"id {direction}"
        if order_by:
            self._check_column(order_by)
            order = f"{order_by} {direction}, id {direction}"
        sql = f"SELECT * FROM {self.table} WHERE {clause} ORDER BY {order}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = params + [limit, offset]
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params = params + [offset]
        with self.db.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._from_row(row) for row in rows]

    def count_documents(
        self,
        where: Optional[dict] = None,
        *,
        search: Optional[str] = None,
        extra: Iterable[tuple[str, list]] = (),
        include_deleted: bool = False,
    ) -> int:
        clause, params = self._build_where(where, include_deleted, search, extra)
        with self.db.connect() as conn:
            return conn.execute(
                f"SELECT COUNT(*) FROM {self.table} WHERE {clause}", params
            ).fetchone()[0]

    def update_one(
        self,
        doc_id: int,
        changes: Optional[dict] = None,
        unset: Iterable[str] = (),
        include_deleted: bool = False,
    ) -> bool:
        """
        Update fields of one document.

        Args:
            doc_id: ID of document to update
            changes: fields to set
            unset: fields to clear (set to NULL)

        Returns: True if a matching document was updated
        """
        return self.update_many({"id": doc_id}, changes, unset, include_deleted) > 0

    def update_many(
        self,
        where: dict,
        changes: Optional[dict] = None,
        unset: Iterable[str] = (),
        include_deleted: bool = False,
    ) -> int:
        """Update every matching document; returns the number updated."""
        data = dict(changes or {})
        for name in unset:
            data[name] = None
        if not data:
            return 0
        data["updated_at"] = ages.now()
        for name in data:
            self._check_column(name)
        set_clause = ", ".join(f"{name} = ?" for name in data)
        values = [self._to_db(name, value) for name, value in data.items()]
        clause, params = self._build_where(where, include_deleted)
        with self.db.connect() as conn:
            cursor = conn.execute(
                f"UPDATE {self.table} SET {set_clause} WHERE {clause}",
                values + params,
            )
            return cursor.rowcount

    def delete_one(self, where: dict, include_deleted: bool = False) -> bool:
        """Permanently delete the first matching document."""
        doc = self.find_one(where, include_deleted=include_deleted)
        if not doc:
            return False
        with self.db.connect() as conn:
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (doc.id,))
        return True

    def delete_many(self, where: dict, include_deleted: bool = False) -> int:
        """Permanently delete every matching document; returns the count."""
        clause, params = self._build_where(where, include_deleted)
        with self.db.connect() as conn:
            cursor = conn.execute(f"DELETE FROM {self.table} WHERE {clause}", params)
            return cursor.rowcount
