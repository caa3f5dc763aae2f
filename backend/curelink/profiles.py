from __future__ import annotations

import json
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from curelink import models


class PatientProfile(BaseModel):
    role: Literal["patient"] = "patient"
    date_of_birth: str | None = None
    blood_group: str | None = None
    allergies: list[str] = Field(default_factory=list)
    emergency_contact: str | None = None
    address: str | None = None
    profile_image: str | None = None


class DoctorProfile(BaseModel):
    role: Literal["doctor"] = "doctor"
    specialization: str | None = None
    experience: int | None = None
    qualification: str | None = None
    hospital_affiliation: str | None = None
    consultation_fee: float | None = None
    available_online: bool = False
    address: str | None = None
    rating_average: float | None = None
    rating_count: int = 0
    bio: str | None = None
    profile_image: str | None = None


class PharmacyProfile(BaseModel):
    role: Literal["pharmacy"] = "pharmacy"
    pharmacy_name: str | None = None
    license_number: str | None = None
    address: str | None = None
    operating_hours: str | None = None
    contact_number: str | None = None
    profile_image: str | None = None


class HospitalProfile(BaseModel):
    role: Literal["hospital"] = "hospital"
    hospital_name: str | None = None
    license_number: str | None = None
    address: str | None = None
    emergency_contact: str | None = None
    ambulance_count: int | None = None
    facilities: list[str] = Field(default_factory=list)
    available_beds: int | None = None
    operating_hours: str | None = None
    website: str | None = None
    profile_image: str | None = None


Profile = Annotated[
    Union[PatientProfile, DoctorProfile, PharmacyProfile, HospitalProfile],
    Field(discriminator="role"),
]
ROLES = ("patient", "doctor", "pharmacy", "hospital")

_PROFILE_ADAPTER = TypeAdapter(Profile)


def parse_profile(role: str, data: dict | None) -> Profile:
    payload = dict(data or {})
    payload["role"] = role
    return _PROFILE_ADAPTER.validate_python(payload)


def load_profile(user: models.User) -> Profile:
    try:
        data = json.loads(user.profile_json or "{}")
    except json.JSONDecodeError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    return parse_profile(user.role, data)


def store_profile(user: models.User, profile: Profile) -> None:
    if profile.role != user.role:
        raise ValueError(f"profile role {profile.role!r} does not match user role {user.role!r}")
    user.profile_json = profile.model_dump_json(exclude={"role"})


def display_name(user: models.User) -> str:
    profile = load_profile(user)
    fallback = user.name or user.email
    if isinstance(profile, PharmacyProfile):
        return profile.pharmacy_name or fallback
    if isinstance(profile, HospitalProfile):
        return profile.hospital_name or fallback
    if isinstance(profile, (DoctorProfile, PatientProfile)):
        return fallback
    raise TypeError(f"Unhandled profile type: {type(profile).__name__}")
