from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional

from app.core.config import DEFAULT_FORM_BACKGROUND

# Scalar fields in the order the registration form collects them
FORM_FIELDS = [
    "first_name",
    "last_name",
    "blood_group",
    "company_name",
    "designation",
    "birth_date",
    "industry",
    "email",
    "office_address",
    "facebook",
    "linkedin",
    "instagram",
    "change_background_colour",
    "phone_number",
    "company_website",
]

FILE_FIELDS = ["profile_pics", "company_logo"]

REQUIRED_FIELDS = ["first_name", "last_name"]

BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "O+", "O-", "AB+", "AB-"]

# Values the API uses for "no image"
EMPTY_IMAGE_VALUES = ("", "null")


def normalize_image_ref(value: Optional[str]) -> Optional[str]:
    """Collapses every "no image" spelling to None."""
    if value is None:
        return None
    value = str(value).strip()
    if value in EMPTY_IMAGE_VALUES:
        return None
    return value


class _RecordBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_empty(cls, value, info):
        # The API sends null for blank text columns
        if value is None and info.field_name not in ("id", "profile_pics", "company_logo", "created_at"):
            return ""
        return value


class RegistrationSummary(_RecordBase):
    """Fields shown on the admin list cards."""
    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    blood_group: str = ""


class GalleryEntry(_RecordBase):
    """Fields shown next to each QR code in the gallery."""
    id: int
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    profile_pics: Optional[str] = None
    change_background_colour: str = ""

    @field_validator("profile_pics", mode="after")
    @classmethod
    def _normalize_images(cls, value):
        return normalize_image_ref(value)


class Registration(_RecordBase):
    """A registrant's profile as stored by the registrations API."""
    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    company_name: str = ""
    designation: str = ""
    industry: str = ""
    office_address: str = ""
    blood_group: str = ""
    birth_date: str = ""
    facebook: str = ""
    linkedin: str = ""
    instagram: str = ""
    company_website: str = ""
    change_background_colour: str = ""
    profile_pics: Optional[str] = Field(None, description="Relative path or absolute URL")
    company_logo: Optional[str] = Field(None, description="Relative path or absolute URL")
    created_at: Optional[str] = None

    @field_validator("profile_pics", "company_logo", mode="after")
    @classmethod
    def _normalize_images(cls, value):
        return normalize_image_ref(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def form_values(self) -> dict:
        """Scalar fields keyed for the edit form."""
        return {name: getattr(self, name) for name in FORM_FIELDS}


class BulkUploadResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    created: List[Any] = []


def blank_form() -> dict:
    values = {name: "" for name in FORM_FIELDS}
    values["change_background_colour"] = DEFAULT_FORM_BACKGROUND
    return values


def missing_required(values: dict) -> List[str]:
    """Names of required form fields that are blank."""
    return [name for name in REQUIRED_FIELDS if not (values.get(name) or "").strip()]
