"""
Relationship Manager - keeps families and believers consistent.

Rules enforced here:
- Every non-deleted family has exactly one head (is_head, relationship Self)
- Wife/Husband members are linked to the head both ways, one spouse per head
- Minors are Single with no spouse link or wedding date
- Infants (age <= 5) have occupation Child; education only for Students
- family_id, is_head and relationship_to_head cannot be patched
- Trash lifecycle: soft delete cascades family -> members with one timestamp,
  restore hands out a new family code

Only create_family_with_head runs inside a store transaction. Spouse linking
and cascades are sequential writes; a crash between them can leave one side
of a link updated.
"""

import re
from enum import Enum
from typing import Any, Optional

from church_bms import ages
from church_bms.config import settings
from church_bms.errors import ConflictError, NotFoundError, ValidationError
from church_bms.models import (
    BAPTIZED_OPTIONS,
    EDUCATION_LEVELS,
    GENDER_OPTIONS,
    OCCUPATION_OPTIONS,
    SPOUSE_RELATIONS,
    TN_DISTRICTS,
    Believer,
    Family,
    MaritalStatus,
    MemberType,
    Relationship,
    Status,
)


LOCKED_FIELDS = ("family_id", "is_head", "relationship_to_head")
EDITABLE_FIELDS = (
    "full_name", "dob", "gender", "phone", "email",
    "member_type", "membership_status", "join_date",
    "baptized", "baptized_date",
    "marital_status", "wedding_date", "spouse_id", "spouse_name",
    "occupation_category", "education_level",
)

RELATIONSHIPS = [r.value for r in Relationship]
MARITAL_STATUSES = [m.value for m in MaritalStatus]
MEMBER_TYPES = [m.value for m in MemberType]
STATUSES = [s.value for s in Status]

PHONE_PATTERN = re.compile(r"^\d{10}$")


# =============================================================================
# INPUT HELPERS
# =============================================================================

def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(data: dict, field: str, label: str, owner: str = "") -> Any:
    value = _plain(data.get(field))
    if _blank(value):
        name = f"{owner} {label.lower()}" if owner else label
        raise ValidationError(f"{name} is required.", field=field)
    return value.strip() if isinstance(value, str) else value


def _choice(value: Any, options: list, label: str, field: str) -> str:
    value = _plain(value)
    if value not in options:
        raise ValidationError(f"Invalid {label}: {value!r}.", field=field)
    return value


def _phone(value: Any) -> Optional[str]:
    phone = _text(value)
    if phone and not PHONE_PATTERN.match(phone):
        raise ValidationError("Phone must be exactly 10 digits.", field="phone")
    return phone


def _email(value: Any) -> Optional[str]:
    email = _text(value)
    return email.lower() if email else None


def _to_id(value: Any, field: str) -> Optional[int]:
    """Reference ids: "", "null" and None mean no reference."""
    value = _plain(value)
    if value is None or value in ("", "null"):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}.", field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}.", field=field) from None


class RelationshipManager:
    """Family and believer operations that keep relationships consistent."""

    def __init__(self, store, timezone: Optional[str] = None, restore_scope: Optional[str] = None):
        self.store = store
        self.families = store.families
        self.believers = store.believers
        self.timezone = timezone
        self.restore_scope = restore_scope or settings.registry.restore_scope

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _date(self, value: Any, field: str, label: str):
        try:
            return ages.parse_date(_plain(value), self.timezone)
        except ages.InvalidDate:
            raise ages.InvalidDate(f"{label} is not a valid date.", field=field) from None

    def _optional_date(self, value: Any, field: str, label: str):
        if _blank(value):
            return None
        return self._date(value, field, label)

    def _dob(self, value: Any):
        dob = self._date(value, "dob", "Date of birth")
        if dob > ages.today(self.timezone):
            raise ValidationError("Date of birth cannot be in the future.", field="dob")
        return dob

    def _age(self, dob) -> int:
        return ages.age(dob, tz=self.timezone)

    def _profile(self, data: dict, owner: str = "", require_marital: bool = False) -> tuple[dict, int]:
        """
        Validate the fields shared by heads and members.

        Returns: (believer field values, age in years)
        """
        full_name = _require(data, "full_name", "Full name", owner)
        dob = self._dob(_require(data, "dob", "Date of birth", owner))
        gender = _choice(_require(data, "gender", "Gender", owner), GENDER_OPTIONS, "gender", "gender")
        if require_marital:
            _choice(
                _require(data, "marital_status", "Marital status", owner),
                MARITAL_STATUSES, "marital status", "marital_status",
            )
        baptized = _choice(_require(data, "baptized", "Baptized status", owner), BAPTIZED_OPTIONS, "baptized status", "baptized")
        member_type = _choice(_require(data, "member_type", "Member type", owner), MEMBER_TYPES, "member type", "member_type")
        occupation = _choice(
            _require(data, "occupation_category", "Occupation", owner),
            OCCUPATION_OPTIONS, "occupation", "occupation_category",
        )
        membership_status = _choice(
            data.get("membership_status") or Status.ACTIVE.value,
            STATUSES, "membership status", "membership_status",
        )
        education = _text(_plain(data.get("education_level")))
        if education:
            _choice(education, EDUCATION_LEVELS, "education level", "education_level")

        age = self._age(dob)
        occupation = ages.resolve_occupation(age, occupation)

        profile = {
            "full_name": full_name,
            "dob": dob,
            "gender": gender,
            "phone": _phone(data.get("phone")),
            "email": _email(data.get("email")),
            "member_type": member_type,
            "membership_status": membership_status,
            "join_date": self._optional_date(data.get("join_date"), "join_date", "Join date"),
            "baptized": baptized,
            "baptized_date": (
                self._optional_date(data.get("baptized_date"), "baptized_date", "Baptized date")
                if baptized == "Yes" else None
            ),
            "occupation_category": occupation,
            "education_level": education if occupation == "Student" else None,
        }
        return profile, age

    def _spouse_target(self, spouse_id: int, believer_id: Optional[int] = None) -> Believer:
        """Load a believer about to be referenced as someone's spouse."""
        if believer_id is not None and spouse_id == believer_id:
            raise ValidationError("A believer cannot be their own spouse.", field="spouse_id")
        target = self.believers.get(spouse_id)
        if not target:
            raise NotFoundError("Linked spouse not found.", field="spouse_id")
        if self._age(target.dob) < ages.ADULT_AGE:
            raise ValidationError("A person under 18 cannot be linked as a spouse.", field="spouse_id")
        return target

    # =========================================================================
    # SPOUSE LINKS
    # =========================================================================

    def _link_back(self, target: Believer, believer: Believer):
        """Point target at believer unless target is paired with someone else."""
        if target.spouse_id in (None, believer.id):
            self.believers.update_one(target.id, {"spouse_id": believer.id, "spouse_name": believer.full_name})
        else:
            print(
                f"[RelationshipManager] Believer {target.id} is linked to {target.spouse_id}; "
                f"keeping one-directional link from {believer.id}"
            )

    def _unlink_partner(self, partner_id: int, believer_id: int, fallback_name: str):
        """Clear the partner's reciprocal link, keeping the name as text."""
        partner = self.believers.get(partner_id, include_deleted=True)
        if partner and partner.spouse_id == believer_id:
            self.believers.update_one(
                partner_id,
                {"spouse_id": None, "spouse_name": fallback_name},
                include_deleted=True,
            )

    # =========================================================================
    # FAMILY OPERATIONS
    # =========================================================================

    def create_family_with_head(self, family_attrs: dict, head_attrs: dict) -> tuple[Family, Believer]:
        """
        Create a family and its head believer atomically.

        Args:
            family_attrs: address, village, district, family_status (optional)
            head_attrs: believer fields; marital_status is required

        Returns:
            (family with its generated code, head believer)
        """
        family_attrs = family_attrs or {}
        head_attrs = head_attrs or {}

        address = _require(family_attrs, "address", "Address")
        village = _require(family_attrs, "village", "Village")
        district = _require(family_attrs, "district", "District")
        if district not in TN_DISTRICTS:
            raise ValidationError("Invalid district selected.", field="district")
        family_status = _choice(
            family_attrs.get("family_status") or Status.ACTIVE.value,
            STATUSES, "family status", "family_status",
        )

        profile, age = self._profile(head_attrs, owner="Head", require_marital=True)
        marital = _require(head_attrs, "marital_status", "Marital status", "Head")
        if age < ages.ADULT_AGE:
            marital = MaritalStatus.SINGLE.value
        married = marital == MaritalStatus.MARRIED.value

        with self.store.transaction():
            family = self.families.insert(Family(
                address=address,
                village=village,
                district=district,
                family_status=family_status,
            ))
            head = self.believers.insert(Believer(
                family_id=family.id,
                is_head=True,
                relationship_to_head=Relationship.SELF.value,
                marital_status=marital,
                spouse_name=_text(head_attrs.get("spouse_name")) if married else None,
                wedding_date=(
                    self._optional_date(head_attrs.get("wedding_date"), "wedding_date", "Wedding date")
                    if married else None
                ),
                **profile,
            ))
            self.families.update_one(family.id, {"head_id": head.id})

        return self.families.get(family.id), self.believers.get(head.id)

    def update_family(self, family_id: int, patch: dict) -> Family:
        """Update address, village, district or status of a family."""
        if not self.families.get(family_id):
            raise NotFoundError("Family not found.")
        patch = patch or {}
        changes = {}
        for field, label in (("address", "Address"), ("village", "Village"), ("district", "District")):
            if field in patch:
                value = _text(patch[field])
                if not value:
                    raise ValidationError(f"{label} cannot be empty.", field=field)
                changes[field] = value
        if "district" in changes and changes["district"] not in TN_DISTRICTS:
            raise ValidationError("Invalid district selected.", field="district")
        if "family_status" in patch:
            changes["family_status"] = _choice(patch["family_status"], STATUSES, "family status", "family_status")
        if changes:
            self.families.update_one(family_id, changes)
        return self.families.get(family_id)

    def add_member(self, family_id: int, attrs: dict) -> Believer:
        """
        Add a non-head member to a family.

        Wife/Husband members are forced Married and linked to the head both
        ways; a head that already has a linked spouse raises ConflictError.
        """
        family = self.families.get(family_id)
        if not family:
            raise NotFoundError("Family not found.")
        data = dict(attrs or {})

        profile, age = self._profile(data)

        relationship = _plain(data.get("relationship_to_head"))
        if relationship not in RELATIONSHIPS or relationship == Relationship.SELF.value:
            raise ValidationError("A valid relationship to head is required.", field="relationship_to_head")
        relation_custom = None
        if relationship == Relationship.OTHER.value:
            relation_custom = _text(data.get("relation_custom"))
            if not relation_custom:
                raise ValidationError(
                    'Custom relation is required when "Other" is selected.', field="relation_custom"
                )
        is_spouse = relationship in SPOUSE_RELATIONS

        head = None
        target = None
        spouse_id = None
        spouse_name = _text(data.get("spouse_name"))

        if age < ages.ADULT_AGE:
            if is_spouse:
                raise ValidationError(
                    "A person under 18 cannot be added as Wife or Husband.", field="relationship_to_head"
                )
            marital = MaritalStatus.SINGLE.value
            spouse_name = None
        elif is_spouse:
            marital = MaritalStatus.MARRIED.value
            head = self.believers.get(family.head_id) if family.head_id else None
            if not head:
                raise NotFoundError("Family head not found.")
            if head.spouse_id:
                existing = self.believers.get(head.spouse_id, include_deleted=True)
                name = existing.full_name if existing else "unknown"
                raise ConflictError(
                    f'The family head already has a linked spouse ("{name}"). Cannot add another.',
                    code="SPOUSE_EXISTS",
                )
            if self._age(head.dob) < ages.ADULT_AGE:
                raise ValidationError("The family head is under 18 and cannot have a spouse.",
                                      field="relationship_to_head")
        else:
            marital = _choice(
                _require(data, "marital_status", "Marital status"),
                MARITAL_STATUSES, "marital status", "marital_status",
            )
            spouse_id = _to_id(data.get("spouse_id"), "spouse_id")
            if marital == MaritalStatus.MARRIED.value and not spouse_id and not spouse_name:
                raise ValidationError("Spouse ID or spouse name is required for Married status.",
                                      field="spouse_id")
            if spouse_id:
                target = self._spouse_target(spouse_id)
                spouse_name = spouse_name or target.full_name

        wedding_date = None
        if marital == MaritalStatus.MARRIED.value:
            wedding_date = self._optional_date(data.get("wedding_date"), "wedding_date", "Wedding date")

        member = self.believers.insert(Believer(
            family_id=family.id,
            is_head=False,
            relationship_to_head=relationship,
            relation_custom=relation_custom,
            marital_status=marital,
            spouse_id=spouse_id,
            spouse_name=spouse_name,
            wedding_date=wedding_date,
            **profile,
        ))

        if head is not None:
            self.believers.update_one(member.id, {"spouse_id": head.id, "spouse_name": head.full_name})
            self.believers.update_one(head.id, {
                "spouse_id": member.id,
                "spouse_name": member.full_name,
                "marital_status": MaritalStatus.MARRIED.value,
            })
        elif target is not None:
            self._link_back(target, member)

        return self.believers.get(member.id)

    def assign_new_head(
        self,
        family_id: int,
        new_head_id: Any,
        previous_head_relationship: Optional[str] = None,
    ) -> tuple[Family, Believer]:
        """
        Make another member of the family its head.

        The previous head keeps its relationship_to_head unless
        previous_head_relationship is given.
        """
        new_id = _to_id(new_head_id, "new_head_id")
        if new_id is None:
            raise ValidationError("New head believer ID is required.", field="new_head_id")
        if previous_head_relationship is not None:
            previous_head_relationship = _plain(previous_head_relationship)
            allowed = [r for r in RELATIONSHIPS if r not in (Relationship.SELF.value, Relationship.OTHER.value)]
            _choice(previous_head_relationship, allowed, "relationship for previous head",
                    "previous_head_relationship")

        family = self.families.get(family_id)
        if not family:
            raise NotFoundError("Family not found.")
        new_head = self.believers.find_one({"id": new_id, "family_id": family.id})
        if not new_head:
            raise NotFoundError("Believer not found in this family.")

        if family.head_id == new_head.id:
            return family, new_head

        if family.head_id:
            demote = {"is_head": False}
            if previous_head_relationship:
                demote["relationship_to_head"] = previous_head_relationship
            self.believers.update_one(family.head_id, demote, include_deleted=True)

        self.believers.update_one(new_head.id, {
            "is_head": True,
            "relationship_to_head": Relationship.SELF.value,
            "relation_custom": None,
        })
        self.families.update_one(family.id, {"head_id": new_head.id})
        return self.families.get(family.id), self.believers.get(new_head.id)

    def delete_family(self, family_id: int) -> int:
        """
        Move a family and its members to trash.

        Returns: number of members trashed with the family
        """
        family = self.families.get(family_id)
        if not family:
            raise NotFoundError("Family not found.")
        stamp = ages.now(self.timezone)
        self.families.update_one(family.id, {"is_deleted": True, "deleted_at": stamp})
        return self.believers.update_many(
            {"family_id": family.id},
            {"is_deleted": True, "deleted_at": stamp},
        )

    def restore_family(self, family_id: int) -> tuple[Family, int]:
        """
        Restore a trashed family with a new code, then its members.

        With restore_scope "all" every trashed member comes back, including
        ones deleted on their own before the family was trashed. With
        "cascade" only members sharing the family's deleted_at are restored.

        Returns: (restored family, number of members restored)
        """
        family = self.families.find_one({"id": family_id, "is_deleted": True})
        if not family:
            raise NotFoundError("Trashed family not found.")
        head = self.believers.get(family.head_id, include_deleted=True) if family.head_id else None
        if not head:
            raise ConflictError(
                "Cannot restore: the family head no longer exists.", code="HEAD_MISSING"
            )

        self.families.restore(family.id)

        where = {"family_id": family.id, "is_deleted": True}
        if self.restore_scope == "cascade":
            where["deleted_at"] = family.deleted_at
        restored = self.believers.update_many(where, {"is_deleted": False}, unset=("deleted_at",))
        return self.families.get(family.id), restored

    def permanent_delete_family(self, family_id: int) -> int:
        """
        Permanently delete a trashed family and all of its believers.

        Returns: number of believers deleted
        """
        family = self.families.find_one({"id": family_id, "is_deleted": True})
        if not family:
            raise NotFoundError("Family not found in trash.")
        members = self.believers.find_many({"family_id": family.id}, include_deleted=True)
        for member in members:
            self.believers.clear_spouse_references(member.id, member.full_name)
        deleted = self.believers.delete_many({"family_id": family.id}, include_deleted=True)
        self.families.delete_one({"id": family.id, "is_deleted": True})
        return deleted

    # =========================================================================
    # BELIEVER OPERATIONS
    # =========================================================================

    def _sanitize(self, patch: dict) -> dict:
        """
        Turn a raw patch into validated column values.

        Only EDITABLE_FIELDS are kept. Empty strings are ambiguous coming from
        forms: spouse_id "" means no spouse, education_level/wedding_date/
        join_date "" mean "leave as is", baptized_date "" means none.
        """
        changes = {}
        for field in EDITABLE_FIELDS:
            if field not in patch:
                continue
            value = _plain(patch[field])

            if field == "spouse_id":
                changes[field] = _to_id(value, field)
            elif field in ("education_level", "wedding_date", "join_date") and value == "":
                continue
            elif field == "full_name":
                if _blank(value):
                    raise ValidationError("Full name cannot be empty.", field=field)
                changes[field] = value.strip()
            elif field == "dob":
                changes[field] = self._dob(value)
            elif field in ("wedding_date", "join_date", "baptized_date"):
                label = field.replace("_", " ").capitalize()
                changes[field] = self._optional_date(value, field, label)
            elif field == "phone":
                changes[field] = _phone(value)
            elif field == "email":
                changes[field] = _email(value)
            elif field == "spouse_name":
                changes[field] = _text(value)
            elif field == "education_level":
                changes[field] = None if value is None else _choice(
                    value, EDUCATION_LEVELS, "education level", field)
            else:
                options = {
                    "gender": GENDER_OPTIONS,
                    "member_type": MEMBER_TYPES,
                    "membership_status": STATUSES,
                    "baptized": BAPTIZED_OPTIONS,
                    "marital_status": MARITAL_STATUSES,
                    "occupation_category": OCCUPATION_OPTIONS,
                }[field]
                changes[field] = _choice(value, options, field.replace("_", " "), field)
        return changes

    def update_believer(self, believer_id: int, patch: dict) -> Believer:
        """
        Patch editable fields of a believer and sync spouse links.

        Raises:
            ValidationError: locked field in patch, invalid value
            NotFoundError: believer missing or trashed
        """
        patch = patch or {}
        locked = [field for field in LOCKED_FIELDS if field in patch]
        if locked:
            raise ValidationError(f"Cannot edit: {', '.join(locked)}.", code="LOCKED_FIELD", field=locked[0])

        current = self.believers.get(believer_id)
        if not current:
            raise NotFoundError("Believer not found.")

        changes = self._sanitize(patch)
        unset = []

        age = self._age(changes.get("dob", current.dob))
        if age < ages.ADULT_AGE:
            changes["marital_status"] = MaritalStatus.SINGLE.value
            changes["spouse_id"] = None
            changes.pop("wedding_date", None)
            if current.wedding_date:
                unset.append("wedding_date")
        elif (
            current.relationship_to_head in SPOUSE_RELATIONS
            and changes.get("marital_status", MaritalStatus.MARRIED.value) != MaritalStatus.MARRIED.value
        ):
            raise ValidationError(
                f"A {current.relationship_to_head.lower()} must have marital status Married.",
                field="marital_status",
            )

        if "dob" in changes or "occupation_category" in changes:
            changes["occupation_category"] = ages.resolve_occupation(
                age, changes.get("occupation_category", current.occupation_category)
            )
        if changes.get("occupation_category", current.occupation_category) != "Student":
            changes.pop("education_level", None)
            if current.education_level:
                unset.append("education_level")

        if changes.get("baptized", current.baptized) == "No" and (
            "baptized" in changes or "baptized_date" in changes
        ):
            changes["baptized_date"] = None

        new_spouse_id = changes.get("spouse_id")
        target = None
        if new_spouse_id is not None and new_spouse_id != current.spouse_id:
            target = self._spouse_target(new_spouse_id, current.id)
            changes.setdefault("spouse_name", target.full_name)

        if changes or unset:
            self.believers.update_one(current.id, changes, unset)
        updated = self.believers.get(current.id)

        if "spouse_id" in changes and changes["spouse_id"] != current.spouse_id:
            if current.spouse_id:
                self._unlink_partner(current.spouse_id, current.id, current.full_name)
            if target is not None:
                self._link_back(target, updated)

        return updated

    def delete_believer(self, believer_id: int) -> Believer:
        """
        Move a believer to trash.

        Every link pointing at this believer is cleared, keeping the name as
        text. Heads cannot be deleted until another head is assigned.
        """
        believer = self.believers.get(believer_id)
        if not believer:
            raise NotFoundError("Believer not found.")
        if believer.is_head:
            raise ConflictError(
                "This member is the family head. Assign a new head before deleting.",
                code="IS_HEAD",
            )

        changes = {"is_deleted": True, "deleted_at": ages.now(self.timezone)}
        if believer.spouse_id:
            changes["spouse_id"] = None
        self.believers.update_one(believer.id, changes)
        self.believers.clear_spouse_references(believer.id, believer.full_name)
        return self.believers.get(believer.id, include_deleted=True)

    def restore_believer(self, believer_id: int) -> Believer:
        """Restore a trashed believer whose family is not in trash."""
        believer = self.believers.find_one({"id": believer_id, "is_deleted": True})
        if not believer:
            raise NotFoundError("Trashed believer not found.")
        if not self.families.get(believer.family_id):
            raise ConflictError(
                "Cannot restore: this believer's family is also in trash. Restore the family first.",
                code="FAMILY_TRASHED",
            )
        self.believers.update_one(believer.id, {"is_deleted": False}, unset=("deleted_at",), include_deleted=True)
        return self.believers.get(believer.id)

    def permanent_delete_believer(self, believer_id: int) -> Believer:
        """Permanently delete a trashed believer."""
        believer = self.believers.find_one({"id": believer_id, "is_deleted": True})
        if not believer:
            raise NotFoundError(
                "Believer not found in trash. Only trashed records can be permanently deleted."
            )
        self.believers.clear_spouse_references(believer.id, believer.full_name)
        self.believers.delete_one({"id": believer.id, "is_deleted": True})
        return believer

    def empty_believer_trash(self) -> int:
        """Permanently delete every trashed believer; returns the count."""
        for believer in self.believers.find_many({"is_deleted": True}):
            self.believers.clear_spouse_references(believer.id, believer.full_name)
        return self.believers.delete_many({"is_deleted": True})
