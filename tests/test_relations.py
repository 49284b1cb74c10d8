"""Tests for RelationshipManager: heads, spouse links, age rules and trash."""

import pytest

from church_bms.errors import ConflictError, NotFoundError, ValidationError
from church_bms.relations import RelationshipManager

from factories import dob_for_age, family_attrs, head_attrs, member_attrs, wife_attrs


def assert_single_head(store, family):
    """Exactly one live head, it is the family's head_id and it is Self."""
    heads = store.believers.find_many({"family_id": family.id, "is_head": True})
    assert len(heads) == 1
    assert heads[0].id == store.families.get(family.id).head_id
    assert heads[0].relationship_to_head == "Self"


def assert_minor_guard(believer):
    assert believer.marital_status == "Single"
    assert believer.spouse_id is None
    assert believer.wedding_date is None


class TestCreateFamilyWithHead:
    """Family and head are created together."""

    def test_creates_family_and_head(self, store, manager):
        family, head = manager.create_family_with_head(family_attrs(), head_attrs())

        assert family.family_code == "FAM-0001"
        assert family.head_id == head.id
        assert family.family_status == "Active"
        assert head.is_head
        assert head.relationship_to_head == "Self"
        assert head.family_id == family.id
        assert head.membership_status == "Active"
        assert_single_head(store, family)

    def test_minor_head_forced_single(self, manager):
        """Head aged 16 sent as Married is stored Single without wedding date."""
        family, head = manager.create_family_with_head(family_attrs(), head_attrs(
            dob=dob_for_age(16),
            marital_status="Married",
            wedding_date="2020-01-01",
            spouse_name="Someone",
            member_type="Youth",
            occupation_category="Student",
        ))

        assert_minor_guard(head)
        assert head.spouse_name is None
        assert head.to_dict()["wedding_date"] is None

    def test_married_head_keeps_wedding_date(self, manager):
        _, head = manager.create_family_with_head(family_attrs(), head_attrs(wedding_date="2001-06-10"))
        assert head.marital_status == "Married"
        assert head.wedding_date.isoformat() == "2001-06-10"

    def test_missing_head_field(self, store, manager):
        attrs = head_attrs()
        del attrs["full_name"]
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(), attrs)
        assert exc.value.message == "Head full name is required."
        assert store.families.count_documents(include_deleted=True) == 0

    def test_head_marital_status_required(self, manager):
        attrs = head_attrs()
        del attrs["marital_status"]
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(), attrs)
        assert exc.value.field == "marital_status"

    def test_missing_family_field(self, manager):
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(village="  "), head_attrs())
        assert exc.value.message == "Village is required."

    def test_invalid_district(self, manager):
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(district="Bangalore"), head_attrs())
        assert exc.value.message == "Invalid district selected."

    @pytest.mark.parametrize("field,value", [
        ("gender", "Unknown"),
        ("member_type", "Elder"),
        ("baptized", "Maybe"),
        ("occupation_category", "Astronaut"),
        ("marital_status", "Divorced"),
    ])
    def test_enum_values_checked(self, manager, field, value):
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(), head_attrs(**{field: value}))
        assert exc.value.field == field

    def test_phone_must_be_ten_digits(self, manager):
        with pytest.raises(ValidationError) as exc:
            manager.create_family_with_head(family_attrs(), head_attrs(phone="98765"))
        assert exc.value.message == "Phone must be exactly 10 digits."

    def test_email_normalized(self, manager):
        _, head = manager.create_family_with_head(family_attrs(), head_attrs(email="  Sam@Example.COM "))
        assert head.email == "sam@example.com"

    def test_invalid_and_future_dob(self, manager):
        with pytest.raises(ValidationError):
            manager.create_family_with_head(family_attrs(), head_attrs(dob="yesterday"))
        with pytest.raises(ValidationError):
            manager.create_family_with_head(family_attrs(), head_attrs(dob="2999-01-01"))

    def test_education_only_for_students(self, manager):
        _, employed = manager.create_family_with_head(
            family_attrs(), head_attrs(education_level="College"))
        _, student = manager.create_family_with_head(
            family_attrs(), head_attrs(occupation_category="Student", education_level="College"))
        assert employed.education_level is None
        assert student.education_level == "College"

    def test_unbaptized_drops_baptized_date(self, manager):
        _, head = manager.create_family_with_head(
            family_attrs(), head_attrs(baptized="No", baptized_date="2000-01-01"))
        assert head.baptized_date is None

    def test_failure_rolls_back_family(self, store, manager, monkeypatch):
        """A head insert failure leaves no family and consumes no code."""
        def boom(doc):
            raise RuntimeError("disk full")

        monkeypatch.setattr(store.believers, "insert", boom)
        with pytest.raises(RuntimeError):
            manager.create_family_with_head(family_attrs(), head_attrs())
        monkeypatch.undo()

        assert store.families.count_documents(include_deleted=True) == 0
        family, _ = manager.create_family_with_head(family_attrs(), head_attrs())
        assert family.family_code == "FAM-0001"


class TestAddMember:
    """Adding non-head members."""

    def test_add_child(self, store, manager, family):
        fam, head = family
        son = manager.add_member(fam.id, member_attrs())

        assert son.family_id == fam.id
        assert not son.is_head
        assert son.relationship_to_head == "Son"
        assert store.believers.get(head.id).spouse_id is None
        assert_single_head(store, fam)

    def test_wife_linked_both_ways(self, store, manager, family):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())
        head = store.believers.get(head.id)

        assert wife.marital_status == "Married"
        assert wife.spouse_id == head.id
        assert wife.spouse_name == head.full_name
        assert head.spouse_id == wife.id
        assert head.spouse_name == wife.full_name

    def test_husband_marks_unmarried_head_married(self, store, manager):
        """Female head aged 24, unmarried, gets a Husband aged 25."""
        fam, head = manager.create_family_with_head(family_attrs(), head_attrs(
            full_name="Priya Thomas", gender="Female", dob=dob_for_age(24), marital_status="Single",
        ))
        husband = manager.add_member(fam.id, member_attrs(
            "Husband", full_name="Thomas Raj", dob=dob_for_age(25), marital_status="Single",
        ))
        head = store.believers.get(head.id)

        assert head.spouse_id == husband.id
        assert head.marital_status == "Married"
        assert husband.spouse_id == head.id
        assert husband.marital_status == "Married"

    def test_second_spouse_conflict(self, store, manager, family):
        fam, _ = family
        manager.add_member(fam.id, wife_attrs())
        before = store.believers.count_documents()

        with pytest.raises(ConflictError) as exc:
            manager.add_member(fam.id, wife_attrs(full_name="Second Wife", dob=dob_for_age(30)))

        assert exc.value.code == "SPOUSE_EXISTS"
        assert '"Mary Samuel"' in exc.value.message
        assert store.believers.count_documents() == before

    def test_minor_cannot_be_spouse(self, store, manager, family):
        fam, head = family
        with pytest.raises(ValidationError) as exc:
            manager.add_member(fam.id, wife_attrs(dob=dob_for_age(17)))
        assert exc.value.message == "A person under 18 cannot be added as Wife or Husband."
        assert store.believers.get(head.id).spouse_id is None

    def test_minor_head_cannot_get_spouse(self, manager):
        fam, _ = manager.create_family_with_head(family_attrs(), head_attrs(
            dob=dob_for_age(17), member_type="Youth", occupation_category="Student",
        ))
        with pytest.raises(ValidationError):
            manager.add_member(fam.id, wife_attrs())

    def test_minor_member_forced_single(self, manager, family):
        fam, _ = family
        child = manager.add_member(fam.id, member_attrs(
            dob=dob_for_age(10), marital_status="Married", spouse_name="Nobody",
            wedding_date="2020-01-01", member_type="Child", occupation_category="Student",
        ))
        assert_minor_guard(child)
        assert child.spouse_name is None

    def test_infant_occupation_forced(self, manager, family):
        fam, _ = family
        baby = manager.add_member(fam.id, member_attrs(
            "Daughter", dob=dob_for_age(3), gender="Female", member_type="Child",
            occupation_category="Student", education_level="School",
        ))
        assert baby.occupation_category == "Child"
        assert baby.education_level is None

    @pytest.mark.parametrize("relationship", [None, "", "Self", "Cousin"])
    def test_relationship_required(self, manager, family, relationship):
        fam, _ = family
        with pytest.raises(ValidationError) as exc:
            manager.add_member(fam.id, member_attrs(relationship))
        assert exc.value.field == "relationship_to_head"

    def test_other_needs_custom_label(self, manager, family):
        fam, _ = family
        with pytest.raises(ValidationError):
            manager.add_member(fam.id, member_attrs("Other"))
        uncle = manager.add_member(fam.id, member_attrs("Other", relation_custom="Uncle"))
        assert uncle.relation_custom == "Uncle"

    def test_custom_label_dropped_for_fixed_relations(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs(relation_custom="ignored"))
        assert son.relation_custom is None

    def test_married_needs_spouse_reference(self, manager, family):
        fam, _ = family
        with pytest.raises(ValidationError):
            manager.add_member(fam.id, member_attrs(marital_status="Married"))
        son = manager.add_member(fam.id, member_attrs(marital_status="Married", spouse_name="Anita"))
        assert son.spouse_id is None
        assert son.spouse_name == "Anita"

    def test_spouse_id_links_back(self, store, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        daughter_in_law = manager.add_member(fam.id, member_attrs(
            "Other", relation_custom="Daughter-in-law", full_name="Anita", gender="Female",
            marital_status="Married", spouse_id=son.id,
        ))
        son = store.believers.get(son.id)

        assert daughter_in_law.spouse_id == son.id
        assert daughter_in_law.spouse_name == "Joel Samuel"
        assert son.spouse_id == daughter_in_law.id
        assert son.spouse_name == "Anita"

    def test_spouse_already_paired_stays_one_directional(self, store, manager, family, capsys):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())
        other = manager.add_member(fam.id, member_attrs(
            "Other", relation_custom="Friend", marital_status="Married", spouse_id=head.id,
        ))

        assert other.spouse_id == head.id
        assert store.believers.get(head.id).spouse_id == wife.id
        assert "one-directional" in capsys.readouterr().out

    def test_spouse_target_must_exist(self, manager, family):
        fam, _ = family
        with pytest.raises(NotFoundError):
            manager.add_member(fam.id, member_attrs(marital_status="Married", spouse_id=999))

    def test_unknown_or_trashed_family(self, manager, family):
        fam, _ = family
        with pytest.raises(NotFoundError):
            manager.add_member(999, member_attrs())
        manager.delete_family(fam.id)
        with pytest.raises(NotFoundError) as exc:
            manager.add_member(fam.id, member_attrs())
        assert exc.value.message == "Family not found."


class TestUpdateBeliever:
    """Patching believers."""

    def test_locked_fields_rejected(self, store, manager, family):
        fam, head = family
        with pytest.raises(ValidationError) as exc:
            manager.update_believer(head.id, {"family_id": 5, "is_head": False, "full_name": "X"})
        assert exc.value.message == "Cannot edit: family_id, is_head."
        assert exc.value.code == "LOCKED_FIELD"
        assert store.believers.get(head.id).full_name == "Samuel Devaraj"

    def test_relationship_is_locked(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        with pytest.raises(ValidationError):
            manager.update_believer(son.id, {"relationship_to_head": "Daughter"})

    def test_simple_update(self, manager, family):
        _, head = family
        updated = manager.update_believer(head.id, {
            "full_name": "  Samuel D ",
            "phone": "9876543210",
            "email": "SAM@CHURCH.ORG",
            "membership_status": "Inactive",
        })
        assert updated.full_name == "Samuel D"
        assert updated.phone == "9876543210"
        assert updated.email == "sam@church.org"
        assert updated.membership_status == "Inactive"

    def test_unknown_keys_ignored(self, manager, family):
        _, head = family
        updated = manager.update_believer(head.id, {"id": 99, "is_deleted": True, "nickname": "Sam"})
        assert updated.id == head.id
        assert not updated.is_deleted

    @pytest.mark.parametrize("patch", [
        {"full_name": ""},
        {"phone": "12-34"},
        {"gender": "Robot"},
        {"dob": "not-a-date"},
        {"marital_status": None},
    ])
    def test_invalid_values(self, manager, family, patch):
        _, head = family
        with pytest.raises(ValidationError):
            manager.update_believer(head.id, patch)

    def test_becoming_minor_clears_spouse_on_both_sides(self, store, manager, family):
        """dob moved so the believer is 15: Single, unlinked, partner unlinked."""
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs(wedding_date="2010-05-01"))

        updated = manager.update_believer(wife.id, {"dob": dob_for_age(15)})
        head = store.believers.get(head.id)

        assert_minor_guard(updated)
        assert head.spouse_id is None
        assert head.spouse_name == "Mary Samuel"

    def test_minor_cannot_be_made_married(self, manager, family):
        fam, _ = family
        child = manager.add_member(fam.id, member_attrs(
            dob=dob_for_age(12), member_type="Child", occupation_category="Student"))
        updated = manager.update_believer(child.id, {"marital_status": "Married", "wedding_date": "2020-02-02"})
        assert_minor_guard(updated)

    def test_linked_spouse_must_stay_married(self, store, manager, family):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())
        for status in ("Single", "Widowed"):
            with pytest.raises(ValidationError) as exc:
                manager.update_believer(wife.id, {"marital_status": status})
            assert exc.value.field == "marital_status"

        wife = store.believers.get(wife.id)
        assert wife.marital_status == "Married"
        assert wife.spouse_id == head.id
        assert manager.update_believer(wife.id, {"marital_status": "Married"}).marital_status == "Married"

    def test_occupation_rederived_from_dob(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        updated = manager.update_believer(son.id, {"dob": dob_for_age(4)})
        assert updated.occupation_category == "Child"

    def test_education_cleared_when_no_longer_student(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs(occupation_category="Student", education_level="College"))
        assert son.education_level == "College"
        updated = manager.update_believer(son.id, {"occupation_category": "Employed"})
        assert updated.education_level is None

    def test_empty_strings_leave_optional_dates(self, manager, family):
        _, head = family
        manager.update_believer(head.id, {"join_date": "2015-01-01"})
        updated = manager.update_believer(head.id, {"join_date": "", "education_level": ""})
        assert updated.join_date.isoformat() == "2015-01-01"

    def test_unbaptized_clears_date(self, manager, family):
        _, head = family
        manager.update_believer(head.id, {"baptized_date": "1999-09-09"})
        updated = manager.update_believer(head.id, {"baptized": "No"})
        assert updated.baptized_date is None

    def test_cannot_marry_self(self, manager, family):
        _, head = family
        with pytest.raises(ValidationError):
            manager.update_believer(head.id, {"spouse_id": head.id})

    def test_spouse_change_moves_links(self, store, manager, family):
        fam, _ = family
        joel = manager.add_member(fam.id, member_attrs())
        anita = manager.add_member(fam.id, member_attrs(
            "Other", relation_custom="Friend", full_name="Anita", gender="Female"))
        rekha = manager.add_member(fam.id, member_attrs(
            "Other", relation_custom="Friend", full_name="Rekha", gender="Female"))

        manager.update_believer(joel.id, {"spouse_id": anita.id, "marital_status": "Married"})
        assert store.believers.get(anita.id).spouse_id == joel.id

        updated = manager.update_believer(joel.id, {"spouse_id": str(rekha.id)})
        anita = store.believers.get(anita.id)
        rekha = store.believers.get(rekha.id)

        assert updated.spouse_id == rekha.id
        assert updated.spouse_name == "Rekha"
        assert rekha.spouse_id == joel.id
        assert anita.spouse_id is None
        assert anita.spouse_name == "Joel Samuel"

    def test_clearing_spouse_unlinks_partner(self, store, manager, family):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())
        manager.update_believer(wife.id, {"spouse_id": ""})
        assert store.believers.get(head.id).spouse_id is None

    def test_minor_spouse_target_rejected(self, manager, family):
        fam, head = family
        child = manager.add_member(fam.id, member_attrs(
            dob=dob_for_age(9), member_type="Child", occupation_category="Student"))
        with pytest.raises(ValidationError):
            manager.update_believer(head.id, {"spouse_id": child.id})

    def test_missing_or_trashed(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        manager.delete_believer(son.id)
        with pytest.raises(NotFoundError):
            manager.update_believer(son.id, {"full_name": "X"})
        with pytest.raises(NotFoundError):
            manager.update_believer(999, {"full_name": "X"})


class TestDeleteAndRestoreBeliever:
    """Believer trash lifecycle."""

    def test_head_cannot_be_deleted(self, store, manager, family):
        _, head = family
        with pytest.raises(ConflictError) as exc:
            manager.delete_believer(head.id)
        assert exc.value.code == "IS_HEAD"
        assert store.believers.get(head.id) is not None

    def test_delete_detaches_spouse(self, store, manager, family):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())

        trashed = manager.delete_believer(wife.id)
        head = store.believers.get(head.id)

        assert trashed.is_deleted
        assert trashed.deleted_at is not None
        assert trashed.spouse_id is None
        assert trashed.spouse_name == "Samuel Devaraj"
        assert head.spouse_id is None
        assert head.spouse_name == "Mary Samuel"

    def test_head_can_remarry_after_spouse_deleted(self, manager, family):
        fam, _ = family
        wife = manager.add_member(fam.id, wife_attrs())
        manager.delete_believer(wife.id)
        second = manager.add_member(fam.id, wife_attrs(full_name="Ruth"))
        assert second.spouse_id is not None

    def test_delete_clears_one_directional_links(self, store, manager, family):
        fam, head = family
        son = manager.add_member(fam.id, member_attrs())
        manager.add_member(fam.id, member_attrs(
            "Other", relation_custom="Daughter-in-law", full_name="Anita", gender="Female",
            marital_status="Married", spouse_id=son.id,
        ))
        manager.update_believer(head.id, {"spouse_id": son.id})
        assert store.believers.get(head.id).spouse_id == son.id

        manager.delete_believer(son.id)
        head = store.believers.get(head.id)
        assert head.spouse_id is None
        assert head.spouse_name == "Joel Samuel"

        wife = manager.add_member(fam.id, wife_attrs())
        assert wife.spouse_id == head.id
        assert store.believers.get(head.id).spouse_id == wife.id

    def test_restore(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        manager.delete_believer(son.id)
        restored = manager.restore_believer(son.id)
        assert not restored.is_deleted
        assert restored.deleted_at is None

    def test_restore_requires_trashed(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        with pytest.raises(NotFoundError) as exc:
            manager.restore_believer(son.id)
        assert exc.value.message == "Trashed believer not found."

    def test_restore_blocked_while_family_trashed(self, store, manager, family):
        """Every retry fails the same way until the family comes back."""
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        manager.delete_believer(son.id)
        manager.delete_family(fam.id)

        for _ in range(3):
            with pytest.raises(ConflictError) as exc:
                manager.restore_believer(son.id)
            assert exc.value.code == "FAMILY_TRASHED"
            assert store.believers.get(son.id, include_deleted=True).is_deleted

        manager.restore_family(fam.id)
        assert store.believers.get(son.id) is not None

    def test_delete_missing(self, manager):
        with pytest.raises(NotFoundError):
            manager.delete_believer(999)

    def test_permanent_delete_only_from_trash(self, store, manager, family):
        fam, head = family
        wife = manager.add_member(fam.id, wife_attrs())
        with pytest.raises(NotFoundError):
            manager.permanent_delete_believer(wife.id)

        manager.delete_believer(wife.id)
        manager.permanent_delete_believer(wife.id)

        assert store.believers.get(wife.id, include_deleted=True) is None
        assert store.believers.get(head.id).spouse_name == "Mary Samuel"

    def test_empty_trash(self, store, manager, family):
        fam, _ = family
        for name in ("A", "B"):
            member = manager.add_member(fam.id, member_attrs(full_name=name))
            manager.delete_believer(member.id)
        manager.add_member(fam.id, member_attrs(full_name="Kept"))

        assert manager.empty_believer_trash() == 2
        assert store.believers.count_documents() == 2


class TestFamilyLifecycle:
    """Family soft delete, restore and permanent delete."""

    def test_delete_and_restore_round_trip(self, store, manager, family):
        """Family with 3 members: cascade delete, new code on restore."""
        fam, head = family
        manager.add_member(fam.id, wife_attrs())
        manager.add_member(fam.id, member_attrs())
        original_code = fam.family_code

        assert manager.delete_family(fam.id) == 3

        trashed = store.families.get(fam.id, include_deleted=True)
        members = store.believers.find_many({"family_id": fam.id}, include_deleted=True)
        assert trashed.is_deleted
        assert trashed.family_code is None
        assert len(members) == 3
        assert all(m.is_deleted for m in members)
        assert {m.deleted_at for m in members} == {trashed.deleted_at}

        restored, count = manager.restore_family(fam.id)
        members = store.believers.find_many({"family_id": fam.id}, include_deleted=True)

        assert count == 3
        assert not restored.is_deleted
        assert restored.deleted_at is None
        assert restored.family_code is not None
        assert restored.family_code != original_code
        assert all(not m.is_deleted and m.deleted_at is None for m in members)
        assert_single_head(store, restored)

    def test_delete_missing_family(self, manager):
        with pytest.raises(NotFoundError):
            manager.delete_family(42)

    def test_restore_requires_trashed(self, manager, family):
        fam, _ = family
        with pytest.raises(NotFoundError) as exc:
            manager.restore_family(fam.id)
        assert exc.value.message == "Trashed family not found."

    def test_restore_brings_back_earlier_trashed_members(self, store, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        manager.delete_believer(son.id)
        manager.delete_family(fam.id)

        _, count = manager.restore_family(fam.id)

        assert count == 2
        assert store.believers.get(son.id) is not None

    def test_cascade_scope_keeps_earlier_trashed_members(self, store, family):
        fam, _ = family
        manager = RelationshipManager(store, restore_scope="cascade")
        son = manager.add_member(fam.id, member_attrs())
        manager.delete_believer(son.id)
        manager.delete_family(fam.id)

        _, count = manager.restore_family(fam.id)

        assert count == 1
        assert store.believers.get(son.id) is None
        assert store.believers.get(son.id, include_deleted=True).is_deleted

    def test_restore_without_head_conflicts(self, store, manager, family):
        fam, head = family
        manager.delete_family(fam.id)
        manager.permanent_delete_believer(head.id)

        with pytest.raises(ConflictError) as exc:
            manager.restore_family(fam.id)
        assert exc.value.code == "HEAD_MISSING"
        assert store.families.get(fam.id, include_deleted=True).is_deleted

    def test_permanent_delete(self, store, manager, family):
        fam, _ = family
        manager.add_member(fam.id, member_attrs())
        with pytest.raises(NotFoundError) as exc:
            manager.permanent_delete_family(fam.id)
        assert exc.value.message == "Family not found in trash."

        manager.delete_family(fam.id)
        assert manager.permanent_delete_family(fam.id) == 2
        assert store.families.get(fam.id, include_deleted=True) is None
        assert store.believers.count_documents(include_deleted=True) == 0

    def test_permanent_delete_clears_links_from_other_families(self, store, manager, family):
        fam, _ = family
        joel = manager.add_member(fam.id, member_attrs())
        other, _ = manager.create_family_with_head(
            family_attrs(village="Sawyerpuram"), head_attrs(full_name="Daniel Jebaraj"))
        ruth = manager.add_member(other.id, member_attrs(
            "Daughter", full_name="Ruth Daniel", gender="Female",
            marital_status="Married", spouse_id=joel.id,
        ))

        manager.delete_family(fam.id)
        manager.permanent_delete_family(fam.id)
        ruth = store.believers.get(ruth.id)

        assert ruth.spouse_id is None
        assert ruth.spouse_name == "Joel Samuel"

    def test_update_family(self, manager, family):
        fam, _ = family
        updated = manager.update_family(fam.id, {"village": " Sawyerpuram ", "family_status": "Inactive"})
        assert updated.village == "Sawyerpuram"
        assert updated.family_status == "Inactive"
        assert updated.family_code == fam.family_code

    @pytest.mark.parametrize("patch", [
        {"address": ""},
        {"district": "Mumbai"},
        {"family_status": "Dormant"},
    ])
    def test_update_family_invalid(self, manager, family, patch):
        fam, _ = family
        with pytest.raises(ValidationError):
            manager.update_family(fam.id, patch)

    def test_update_trashed_family(self, manager, family):
        fam, _ = family
        manager.delete_family(fam.id)
        with pytest.raises(NotFoundError):
            manager.update_family(fam.id, {"village": "X"})


class TestAssignNewHead:
    """Moving the head role to another member."""

    def test_promote_member(self, store, manager, family):
        fam, head = family
        son = manager.add_member(fam.id, member_attrs())

        updated, new_head = manager.assign_new_head(fam.id, son.id)
        old = store.believers.get(head.id)

        assert updated.head_id == son.id
        assert new_head.is_head
        assert new_head.relationship_to_head == "Self"
        assert not old.is_head
        assert old.relationship_to_head == "Self"
        assert_single_head(store, updated)

    def test_previous_head_relationship(self, store, manager, family):
        fam, head = family
        son = manager.add_member(fam.id, member_attrs())
        manager.assign_new_head(fam.id, son.id, previous_head_relationship="Father")
        assert store.believers.get(head.id).relationship_to_head == "Father"

    def test_custom_relation_cleared_on_promotion(self, manager, family):
        fam, _ = family
        uncle = manager.add_member(fam.id, member_attrs("Other", relation_custom="Uncle"))
        _, new_head = manager.assign_new_head(fam.id, str(uncle.id))
        assert new_head.relation_custom is None

    def test_old_head_deletable_afterwards(self, store, manager, family):
        fam, head = family
        son = manager.add_member(fam.id, member_attrs())
        manager.assign_new_head(fam.id, son.id, previous_head_relationship="Father")
        manager.delete_believer(head.id)
        assert store.believers.get(head.id) is None

    def test_same_head_is_noop(self, manager, family):
        fam, head = family
        updated, new_head = manager.assign_new_head(fam.id, head.id)
        assert updated.head_id == head.id
        assert new_head.is_head

    def test_member_of_other_family(self, manager, family):
        fam, _ = family
        _, stranger = manager.create_family_with_head(family_attrs(), head_attrs(full_name="Other Head"))
        with pytest.raises(NotFoundError) as exc:
            manager.assign_new_head(fam.id, stranger.id)
        assert exc.value.message == "Believer not found in this family."

    @pytest.mark.parametrize("new_head_id", [None, ""])
    def test_new_head_required(self, manager, family, new_head_id):
        fam, _ = family
        with pytest.raises(ValidationError):
            manager.assign_new_head(fam.id, new_head_id)

    def test_previous_head_cannot_stay_self(self, manager, family):
        fam, _ = family
        son = manager.add_member(fam.id, member_attrs())
        with pytest.raises(ValidationError):
            manager.assign_new_head(fam.id, son.id, previous_head_relationship="Self")
