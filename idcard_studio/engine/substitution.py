"""Resolves ``{{token}}`` placeholders against a student and school settings.

Substitution is a single ``re.sub`` pass: text inserted for one token is
never scanned again, so a student named ``{{schoolName}}`` prints literally.
Tokens outside the vocabulary are left exactly as written.
"""

import re
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional

from idcard_studio.models.student import StudentRecord

TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")

STUDENT_PHOTO = "studentPhoto"
SCHOOL_LOGO = "schoolLogo"
IMAGE_TOKENS = (STUDENT_PHOTO, SCHOOL_LOGO)

_PLACEHOLDER_LABELS = {STUDENT_PHOTO: "Photo", SCHOOL_LOGO: "Logo"}


def _text(value) -> str:
    return "" if value is None else str(value)


def _setting(settings: Mapping, *keys: str) -> str:
    for key in keys:
        value = settings.get(key)
        if value:
            return str(value)
    return ""


def student_details(student: StudentRecord) -> str:
    """Multi-line summary block; empty lines are dropped, order is fixed."""
    class_line = _text(student.class_name)
    if class_line and student.section:
        class_line = f"{class_line}-{student.section}"
    lines = [
        _text(student.name_english),
        _text(student.name_bengali),
        f"ID: {student.id_number}" if student.id_number else "",
        f"Class: {class_line}" if class_line else "",
        f"Roll: {student.roll_number}" if student.roll_number else "",
    ]
    return "\n".join(line for line in lines if line)


def _year(settings: Mapping) -> str:
    """Four-digit year; a ranged academic year such as 2025-2026 is not used."""
    year = _setting(settings, "year")
    if year:
        return year
    academic = _setting(settings, "academicYear").strip()
    if re.fullmatch(r"\d{4}", academic):
        return academic
    return str(date.today().year)


_RESOLVERS: Dict[str, Callable[[StudentRecord, Mapping], str]] = {
    "studentName": lambda s, cfg: _text(s.name_english),
    "studentNameBengali": lambda s, cfg: _text(s.name_bengali),
    "idNumber": lambda s, cfg: _text(s.id_number),
    "class": lambda s, cfg: _text(s.class_name),
    "section": lambda s, cfg: _text(s.section),
    "rollNumber": lambda s, cfg: _text(s.roll_number),
    "fatherName": lambda s, cfg: _text(s.father_name),
    "motherName": lambda s, cfg: _text(s.mother_name),
    "dateOfBirth": lambda s, cfg: _text(s.date_of_birth),
    "address": lambda s, cfg: _text(s.address),
    "phoneNumber": lambda s, cfg: _text(s.phone_number),
    "bloodGroup": lambda s, cfg: _text(s.blood_group),
    "schoolName": lambda s, cfg: _setting(cfg, "schoolNameEnglish", "schoolName"),
    "schoolNameBengali": lambda s, cfg: _setting(cfg, "schoolNameBengali"),
    "validTill": lambda s, cfg: _setting(cfg, "validTill"),
    "year": lambda s, cfg: _year(cfg),
    "studentDetails": lambda s, cfg: student_details(s),
    "studentInfo": lambda s, cfg: student_details(s),
    STUDENT_PHOTO: lambda s, cfg: _text(s.photo_url),
    SCHOOL_LOGO: lambda s, cfg: _setting(cfg, SCHOOL_LOGO),
}

KNOWN_TOKENS = frozenset(_RESOLVERS)


def resolve(content: str, student: Optional[StudentRecord],
            settings: Optional[Mapping] = None) -> str:
    """Substitute every recognised token in ``content``.

    With no student selected the content is returned untouched.
    """
    if student is None or not content:
        return content
    settings = settings or {}

    def _replace(match: "re.Match[str]") -> str:
        resolver = _RESOLVERS.get(match.group(1))
        if resolver is None:
            return match.group(0)
        return resolver(student, settings)

    return TOKEN_RE.sub(_replace, content)


def find_tokens(content: str) -> List[str]:
    """Token names in order of appearance (duplicates kept)."""
    return TOKEN_RE.findall(content or "")


def unknown_tokens(content: str) -> List[str]:
    return [name for name in find_tokens(content) if name not in KNOWN_TOKENS]


def _single_token(content: str) -> Optional[str]:
    m = TOKEN_RE.fullmatch((content or "").strip())
    return m.group(1) if m else None


def resolve_image_source(content: str, student: Optional[StudentRecord],
                         settings: Optional[Mapping] = None) -> Optional[str]:
    """URL or path an image element should show, or None for a placeholder."""
    settings = settings or {}
    token = _single_token(content)
    if token == STUDENT_PHOTO:
        if student is None:
            return None
        return student.photo_url or None
    if token == SCHOOL_LOGO:
        return _setting(settings, SCHOOL_LOGO) or None
    if student is None and find_tokens(content):
        return None
    source = resolve(content, student, settings).strip()
    if not source or TOKEN_RE.search(source):
        return None
    return source


def placeholder_label(content: str) -> str:
    """Neutral label drawn in the box of an image that has no source."""
    return _PLACEHOLDER_LABELS.get(_single_token(content), "Image")
