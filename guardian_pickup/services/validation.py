"""
Field validation for guardian records and profiles.

Validators return a field -> message map rather than raising, so every
problem with a submission is reported at once.
"""

import re
from typing import Dict, List, Optional

GUARDIAN_RELATIONS = [
    ("Driver", "driver"),
    ("Grandparent", "grandparent"),
    ("Uncle", "uncle"),
    ("Aunt", "aunt"),
    ("Sibling", "sibling"),
    ("Family Friend", "family_friend"),
    ("Caregiver", "caregiver"),
    ("Relative", "relative"),
    ("Other", "other"),
]
RELATION_VALUES = frozenset(value for _, value in GUARDIAN_RELATIONS)

NAME_MAX_LENGTH = 100
RELATION_MAX_LENGTH = 50

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PROFILE_LIMITS = {
    "email": 254,
    "national_id": 50,
    "emergency_contact": 100,
    "address": 500,
    "photo_url": 500,
}


def relation_choices() -> List[Dict[str, str]]:
    """Relation categories for pickers."""
    return [{"label": label, "value": value} for label, value in GUARDIAN_RELATIONS]


def normalize_relation(relation: Optional[str]) -> str:
    """'Family Friend' -> 'family_friend'."""
    return re.sub(r"\s+", "_", (relation or "").strip().lower())


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None:
        return None
    compact = re.sub(r"\s", "", phone)
    return compact or None


def validate_guardian_data(
    student_id: Optional[int],
    name: Optional[str],
    relation: Optional[str],
    phone: Optional[str] = None
) -> Dict[str, str]:
    """
    Validate the fields of a new guardian.

    Returns:
        Map of field name to error message; empty when valid
    """
    errors = {}

    clean_name = (name or "").strip()
    if not clean_name:
        errors["name"] = "Guardian name is required"
    elif len(clean_name) > NAME_MAX_LENGTH:
        errors["name"] = f"Guardian name must be less than {NAME_MAX_LENGTH} characters"

    clean_relation = (relation or "").strip()
    if not clean_relation:
        errors["relation"] = "Relation to student is required"
    elif len(clean_relation) > RELATION_MAX_LENGTH:
        errors["relation"] = f"Relation must be less than {RELATION_MAX_LENGTH} characters"
    elif normalize_relation(clean_relation) not in RELATION_VALUES:
        errors["relation"] = "Relation must be one of: " + ", ".join(sorted(RELATION_VALUES))

    if student_id is None or student_id == "":
        errors["student_id"] = "Student selection is required"
    elif not is_student_id(student_id):
        errors["student_id"] = "Student ID must be a positive number"

    compact_phone = normalize_phone(phone)
    if compact_phone and not PHONE_PATTERN.match(compact_phone):
        errors["phone"] = "Please enter a valid phone number"

    return errors


def validate_profile_fields(fields: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Validate guardian self-service profile fields that are present."""
    errors = {}

    for name, value in fields.items():
        if name not in PROFILE_LIMITS:
            errors[name] = "Unknown profile field"
            continue
        if value is None:
            continue
        if len(value) > PROFILE_LIMITS[name]:
            errors[name] = f"Must be at most {PROFILE_LIMITS[name]} characters"

    email = fields.get("email")
    if email and "email" not in errors and not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"

    contact = fields.get("emergency_contact")
    if contact and "emergency_contact" not in errors:
        if not re.search(r"\d", contact):
            errors["emergency_contact"] = "Emergency contact must include a phone number"

    return errors


def is_student_id(value) -> bool:
    """Positive integer, or a string of digits."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, str):
        return value.strip().isdigit() and int(value) > 0
    return False


PHOTO_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
}
PHOTO_MAX_BYTES = 5 * 1024 * 1024


def validate_photo(content: bytes, content_type: Optional[str]) -> Dict[str, str]:
    if content_type not in PHOTO_CONTENT_TYPES:
        return {"photo": "Photo must be a JPEG, PNG, WebP or HEIC image"}
    if not content:
        return {"photo": "Photo is empty"}
    if len(content) > PHOTO_MAX_BYTES:
        return {"photo": f"Photo must be at most {PHOTO_MAX_BYTES // (1024 * 1024)} MB"}
    return {}
