"""Student records and school-wide settings, consumed read-only by the renderers."""

from dataclasses import dataclass, fields
from datetime import date
from typing import Dict, Mapping, Optional

from idcard_studio.errors import ConfigurationError

# camelCase wire key -> dataclass attribute
_WIRE_KEYS = {
    "nameEnglish": "name_english",
    "nameBengali": "name_bengali",
    "idNumber": "id_number",
    "class": "class_name",
    "section": "section",
    "rollNumber": "roll_number",
    "fatherName": "father_name",
    "motherName": "mother_name",
    "dateOfBirth": "date_of_birth",
    "address": "address",
    "phoneNumber": "phone_number",
    "photoUrl": "photo_url",
    "bloodGroup": "blood_group",
    "status": "status",
    "session": "session",
    "admissionDate": "admission_date",
}


@dataclass(frozen=True)
class StudentRecord:
    name_english: str
    id_number: str
    class_name: str
    name_bengali: Optional[str] = None
    section: Optional[str] = None
    roll_number: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    photo_url: Optional[str] = None
    blood_group: Optional[str] = None
    status: Optional[str] = "active"
    session: Optional[str] = None
    admission_date: Optional[str] = None

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in _WIRE_KEYS.items()}

    @classmethod
    def from_dict(cls, d: Mapping) -> "StudentRecord":
        """Build a record from camelCase (API) or snake_case keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in d.items():
            attr = _WIRE_KEYS.get(key, key)
            if attr in known:
                kwargs[attr] = None if value is None else str(value)
        for required in ("name_english", "id_number", "class_name"):
            if not kwargs.get(required):
                raise ConfigurationError(f"Student record is missing {required!r}")
        return cls(**kwargs)


# Storage keys of the settings table -> keys used for substitution
_SETTING_ALIASES = {
    "school_name_english": "schoolNameEnglish",
    "school_name_bengali": "schoolNameBengali",
    "valid_till": "validTill",
    "academic_year": "academicYear",
    "session_year": "sessionYear",
    "school_logo": "schoolLogo",
}

DEFAULT_SCHOOL_SETTINGS = {
    "schoolNameEnglish": "School Name",
    "schoolNameBengali": "স্কুলের নাম",
    "validTill": "",
}


def normalize_settings(raw: Optional[Mapping] = None) -> Dict[str, str]:
    """Flatten school settings into the camelCase keys the engine reads.

    ``raw`` may be a mapping or the list of ``{"key", "value"}`` rows the
    settings table returns.
    """
    if raw is None:
        raw = {}
    elif not isinstance(raw, Mapping):
        raw = {row["key"]: row.get("value") for row in raw}

    settings = dict(DEFAULT_SCHOOL_SETTINGS)
    for key, value in raw.items():
        if value is None:
            continue
        settings[_SETTING_ALIASES.get(key, key)] = str(value)
    settings.setdefault("academicYear", str(date.today().year))
    return settings
