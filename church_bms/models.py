"""
Data models for the church registry.

Models:
- Family: household with a generated code (FAM-0001) and a head believer
- Believer: individual member linked to exactly one family

These are pure data structures - NO database logic here.
The API and tool servers use to_dict() for responses.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from church_bms import ages


class Relationship(str, Enum):
    """Relationship of a believer to the family head."""
    SELF = "Self"
    WIFE = "Wife"
    HUSBAND = "Husband"
    SON = "Son"
    DAUGHTER = "Daughter"
    FATHER = "Father"
    MOTHER = "Mother"
    OTHER = "Other"


class MaritalStatus(str, Enum):
    SINGLE = "Single"
    MARRIED = "Married"
    WIDOWED = "Widowed"


class MemberType(str, Enum):
    MEMBER = "Member"
    YOUTH = "Youth"
    CHILD = "Child"


class Status(str, Enum):
    """Shared by family status and membership status."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


SPOUSE_RELATIONS = (Relationship.WIFE.value, Relationship.HUSBAND.value)

# Tamil Nadu districts (alphabetical)
TN_DISTRICTS = [
    "Ariyalur", "Chengalpattu", "Chennai", "Coimbatore", "Cuddalore",
    "Dharmapuri", "Dindigul", "Erode", "Kallakurichi", "Kancheepuram",
    "Kanyakumari", "Karur", "Krishnagiri", "Madurai", "Mayiladuthurai",
    "Nagapattinam", "Namakkal", "Nilgiris", "Perambalur", "Pudukkottai",
    "Ramanathapuram", "Ranipet", "Salem", "Sivaganga", "Tenkasi",
    "Thanjavur", "Theni", "Thoothukudi", "Tiruchirappalli", "Tirunelveli",
    "Tirupathur", "Tiruppur", "Tiruvallur", "Tiruvannamalai", "Tiruvarur",
    "Vellore", "Viluppuram", "Virudhunagar",
]

GENDER_OPTIONS = ["Male", "Female", "Other"]
BAPTIZED_OPTIONS = ["Yes", "No"]
EDUCATION_LEVELS = ["School", "College"]
OCCUPATION_OPTIONS = [
    "Child", "Student", "Ministry", "Employed", "Self-Employed", "Business",
    "Agriculture", "Daily wages", "House-Wife", "Non-Worker", "Retired",
]
EMPLOYED_OCCUPATIONS = ["Employed", "Self-Employed", "Business", "Agriculture", "Daily wages"]


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Family:
    """Household record; head_id references the head Believer."""
    id: Optional[int] = None
    family_code: Optional[str] = None      # FAM-0001, None while trashed
    address: str = ""
    village: str = ""
    district: str = ""
    family_status: str = Status.ACTIVE.value
    head_id: Optional[int] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API and tool responses."""
        return {
            "id": self.id,
            "family_code": self.family_code,
            "address": self.address,
            "village": self.village,
            "district": self.district,
            "family_status": self.family_status,
            "head_id": self.head_id,
            "is_deleted": self.is_deleted,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Believer:
    """Individual member of a family."""

    # Identity
    id: Optional[int] = None
    family_id: Optional[int] = None
    full_name: str = ""
    dob: Optional[date] = None
    gender: str = ""

    # Contact
    phone: Optional[str] = None
    email: Optional[str] = None

    # Membership
    member_type: str = MemberType.MEMBER.value
    membership_status: str = Status.ACTIVE.value
    join_date: Optional[date] = None
    baptized: str = "No"
    baptized_date: Optional[date] = None

    # Relationships
    relationship_to_head: str = Relationship.OTHER.value
    relation_custom: Optional[str] = None
    is_head: bool = False
    marital_status: str = MaritalStatus.SINGLE.value
    spouse_id: Optional[int] = None
    spouse_name: Optional[str] = None
    wedding_date: Optional[date] = None

    # Occupation
    occupation_category: str = "Non-Worker"
    education_level: Optional[str] = None

    # Meta
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def age(self) -> Optional[int]:
        """Age in completed years, in the registry timezone."""
        if not self.dob:
            return None
        return ages.age(self.dob)

    def to_dict(self) -> dict:
        """Convert to dictionary for API and tool responses."""
        return {
            "id": self.id,
            "family_id": self.family_id,
            "full_name": self.full_name,
            "dob": _iso(self.dob),
            "age": self.age,
            "gender": self.gender,
            "phone": self.phone,
            "email": self.email,
            "member_type": self.member_type,
            "membership_status": self.membership_status,
            "join_date": _iso(self.join_date),
            "baptized": self.baptized,
            "baptized_date": _iso(self.baptized_date),
            "relationship_to_head": self.relationship_to_head,
            "relation_custom": self.relation_custom,
            "is_head": self.is_head,
            "marital_status": self.marital_status,
            "spouse_id": self.spouse_id,
            "spouse_name": self.spouse_name,
            "wedding_date": _iso(self.wedding_date),
            "occupation_category": self.occupation_category,
            "education_level": self.education_level,
            "is_deleted": self.is_deleted,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
