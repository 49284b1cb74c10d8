"""
Request models for the HTTP API.

These only check the payload's shape. Field rules (required fields, enum
values, phone format, age rules) live in RelationshipManager so the API and
the tool server enforce the same thing. Handlers pass
model_dump(exclude_unset=True) on, so an omitted field is "leave as is".
"""

from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FamilyFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: Optional[str] = None
    village: Optional[str] = None
    district: Optional[str] = None
    family_status: Optional[str] = Field(default=None, validation_alias=AliasChoices("family_status", "status"))


class BelieverFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    member_type: Optional[str] = None
    membership_status: Optional[str] = None
    join_date: Optional[str] = None
    baptized: Optional[str] = None
    baptized_date: Optional[str] = None

    marital_status: Optional[str] = None
    wedding_date: Optional[str] = None
    spouse_id: Optional[Union[int, str]] = None
    spouse_name: Optional[str] = None

    occupation_category: Optional[str] = None
    education_level: Optional[str] = None


class MemberFields(BelieverFields):
    relationship_to_head: Optional[str] = None
    relation_custom: Optional[str] = None


class BelieverPatch(MemberFields):
    # Locked fields are accepted here only so the manager can reject them
    family_id: Optional[Any] = None
    is_head: Optional[Any] = None


class CreateFamilyRequest(BaseModel):
    family: FamilyFields = FamilyFields()
    head: BelieverFields = BelieverFields()


class AssignHeadRequest(BaseModel):
    new_head_id: Optional[Union[int, str]] = None
    previous_head_relationship: Optional[str] = None
