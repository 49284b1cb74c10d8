"""Dashboard statistics and upcoming birthday / anniversary reminders."""

from typing import Optional

from church_bms import ages
from church_bms.config import settings
from church_bms.models import EMPLOYED_OCCUPATIONS, Believer, MaritalStatus, MemberType, Status


class Dashboard:
    """Aggregate counts over non-deleted families and believers."""

    def __init__(self, store, timezone: Optional[str] = None, reminder_days: Optional[int] = None):
        self.store = store
        self.timezone = timezone
        self.reminder_days = settings.registry.reminder_days if reminder_days is None else reminder_days

    def _upcoming(self, value) -> bool:
        return ages.is_recurring_date_within_days(value, self.reminder_days, tz=self.timezone)

    def upcoming_birthdays(self, believers: list[Believer]) -> list[dict]:
        return [
            {"id": b.id, "name": b.full_name, "dob": b.dob.isoformat()}
            for b in believers
            if b.dob and self._upcoming(b.dob)
        ]

    def upcoming_anniversaries(self, believers: list[Believer]) -> list[dict]:
        """
        Married believers whose wedding date comes up soon.

        A linked couple appears once, named "A — B" after whichever partner
        is seen first.
        """
        by_id = {b.id: b for b in believers}
        seen = set()
        results = []
        for b in believers:
            if not b.wedding_date or b.marital_status != MaritalStatus.MARRIED.value:
                continue
            if not self._upcoming(b.wedding_date):
                continue

            key = tuple(sorted((b.id, b.spouse_id))) if b.spouse_id else (b.id,)
            if key in seen:
                continue
            seen.add(key)

            partner = by_id.get(b.spouse_id)
            spouse_name = partner.full_name if partner else b.spouse_name
            results.append({
                "id": b.id,
                "name": b.full_name,
                "couple_name": f"{b.full_name} — {spouse_name}" if spouse_name else b.full_name,
                "wedding_date": b.wedding_date.isoformat(),
            })
        return results

    def summary(self) -> dict:
        """Counts plus reminder lists, as served by GET /api/dashboard."""
        families = self.store.families
        believers = self.store.believers

        total_believers = believers.count_documents()
        baptized = believers.count_documents({"baptized": "Yes"})
        married = believers.count_documents({"marital_status": MaritalStatus.MARRIED.value})
        everyone = believers.find_many()

        return {
            "total_families": families.count_documents(),
            "total_believers": total_believers,
            "active_members": believers.count_documents({"membership_status": Status.ACTIVE.value}),
            "youth_count": believers.count_documents({"member_type": MemberType.YOUTH.value}),
            "children_count": believers.count_documents({"member_type": MemberType.CHILD.value}),
            "married_couples": married // 2,
            "students_count": believers.count_documents({"occupation_category": "Student"}),
            "employed_count": believers.count_documents({"occupation_category": EMPLOYED_OCCUPATIONS}),
            "baptized_percentage": round(baptized / total_believers * 100, 1) if total_believers else 0,
            "birthdays_this_month": sum(
                1 for b in everyone if b.dob and ages.is_in_current_month(b.dob, tz=self.timezone)
            ),
            "upcoming_birthdays": self.upcoming_birthdays(everyone),
            "upcoming_anniversaries": self.upcoming_anniversaries(everyone),
        }
