"""
Seed script for Church BMS - Populates the database with sample families.

This script:
1. Clears all existing families and believers
2. Creates sample families with their heads through RelationshipManager,
   so every rule (spouse links, minors, family codes) is applied
3. Adds spouses, children and parents to each family

Run this script to start with a clean slate:
    python seed_data.py
"""

from collections import defaultdict

from church_bms.config import settings
from church_bms.relations import RelationshipManager
from church_bms.store import EntityStore


SAMPLE_FAMILIES = [
    {
        "family": {"address": "12, Church Street", "village": "Nazareth", "district": "Thoothukudi"},
        "head": {
            "full_name": "Samuel Devaraj", "dob": "1975-03-14", "gender": "Male",
            "phone": "9876543210", "marital_status": "Married", "wedding_date": "2001-06-10",
            "baptized": "Yes", "baptized_date": "1990-04-15", "member_type": "Member",
            "occupation_category": "Business",
        },
        "members": [
            {
                "full_name": "Mary Samuel", "dob": "1979-08-22", "gender": "Female",
                "relationship_to_head": "Wife", "wedding_date": "2001-06-10",
                "baptized": "Yes", "member_type": "Member", "occupation_category": "House-Wife",
            },
            {
                "full_name": "Joel Samuel", "dob": "2005-01-30", "gender": "Male",
                "relationship_to_head": "Son", "marital_status": "Single",
                "baptized": "Yes", "member_type": "Youth",
                "occupation_category": "Student", "education_level": "College",
            },
            {
                "full_name": "Grace Samuel", "dob": "2021-11-05", "gender": "Female",
                "relationship_to_head": "Daughter", "marital_status": "Single",
                "baptized": "No", "member_type": "Child", "occupation_category": "Child",
            },
        ],
    },
    {
        "family": {"address": "4/221, Main Road", "village": "Sawyerpuram", "district": "Thoothukudi"},
        "head": {
            "full_name": "Daniel Jebaraj", "dob": "1968-12-01", "gender": "Male",
            "phone": "9443012345", "marital_status": "Widowed",
            "baptized": "Yes", "member_type": "Member", "occupation_category": "Agriculture",
        },
        "members": [
            {
                "full_name": "Ruth Daniel", "dob": "1996-05-19", "gender": "Female",
                "relationship_to_head": "Daughter", "marital_status": "Single",
                "baptized": "Yes", "member_type": "Youth", "occupation_category": "Employed",
            },
            {
                "full_name": "Esther Jebaraj", "dob": "1944-02-29", "gender": "Female",
                "relationship_to_head": "Mother", "marital_status": "Widowed",
                "baptized": "Yes", "member_type": "Member", "occupation_category": "Retired",
            },
        ],
    },
    {
        "family": {"address": "7, Bishop Heber Road", "village": "Tiruchirappalli", "district": "Tiruchirappalli"},
        "head": {
            "full_name": "Priya Thomas", "dob": "1985-07-07", "gender": "Female",
            "email": "Priya.Thomas@Example.com", "marital_status": "Married", "wedding_date": "2010-01-25",
            "baptized": "Yes", "member_type": "Member", "occupation_category": "Ministry",
        },
        "members": [
            {
                "full_name": "Thomas Raj", "dob": "1982-10-12", "gender": "Male",
                "relationship_to_head": "Husband", "wedding_date": "2010-01-25",
                "baptized": "Yes", "member_type": "Member", "occupation_category": "Employed",
            },
            {
                "full_name": "Anand Raj", "dob": "1960-04-03", "gender": "Male",
                "relationship_to_head": "Other", "relation_custom": "Uncle", "marital_status": "Single",
                "baptized": "No", "member_type": "Member", "occupation_category": "Non-Worker",
            },
        ],
    },
]


def seed_sample_data(store: EntityStore):
    """Create the sample families."""
    print("=" * 80)
    print("SEEDING SAMPLE FAMILY DATA")
    print("=" * 80)

    manager = RelationshipManager(store)
    for sample in SAMPLE_FAMILIES:
        family, head = manager.create_family_with_head(sample["family"], sample["head"])
        print(f"\n✅ {family.family_code}: {head.full_name} ({family.village})")
        for attrs in sample["members"]:
            member = manager.add_member(family.id, attrs)
            print(f"   + {member.full_name} ({member.relationship_to_head})")


def print_summary(store: EntityStore):
    """Print every family with its members."""
    families = defaultdict(list)
    codes = {f.id: f.family_code for f in store.families.find_many()}
    for believer in store.believers.find_many(order_by="family_id"):
        families[codes.get(believer.family_id)].append(believer)

    print("\n" + "=" * 80)
    print("SEED COMPLETE! 🎉")
    print("=" * 80)
    for family_code, members in sorted(families.items()):
        print(f"\n  {family_code}:")
        for member in members:
            marker = " (head)" if member.is_head else ""
            print(f"    - {member.full_name}, {member.age}{marker}")

    print("\nYou can now:")
    print("  1. Start the API: python run_api.py")
    print(f"  2. Open http://localhost:{settings.server.port}/docs")
    print("\nTo reset and re-seed: python seed_data.py")
    print("=" * 80)


def main():
    """Main function."""
    store = EntityStore()

    # Step 1: Clear database
    print(f"Clearing {store.db_path}")
    store.clear()

    # Step 2: Seed sample data
    seed_sample_data(store)
    print_summary(store)


if __name__ == "__main__":
    main()
