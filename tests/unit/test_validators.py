"""
Unit tests for guardian and profile field validation.
"""

import pytest

from guardian_pickup.services.validation import (
    GUARDIAN_RELATIONS,
    normalize_phone,
    normalize_relation,
    relation_choices,
    validate_guardian_data,
    validate_photo,
    validate_profile_fields,
)


@pytest.mark.unit
class TestGuardianData:
    """Test validation of new guardian fields."""

    def test_valid_guardian(self):
        assert validate_guardian_data(123, "John Driver", "driver", "+15551234567") == {}

    def test_phone_is_optional(self):
        assert validate_guardian_data(123, "John Driver", "driver") == {}
        assert validate_guardian_data(123, "John Driver", "driver", "") == {}

    def test_all_required_fields_reported_at_once(self):
        errors = validate_guardian_data(None, "", None)

        assert errors == {
            "name": "Guardian name is required",
            "relation": "Relation to student is required",
            "student_id": "Student selection is required",
        }

    @pytest.mark.parametrize("student_id", ["abc", "12a", -4, 0, 1.5, True])
    def test_non_numeric_student_id(self, student_id):
        errors = validate_guardian_data(student_id, "John Driver", "driver")

        assert errors == {"student_id": "Student ID must be a positive number"}

    def test_numeric_string_student_id(self):
        assert validate_guardian_data("123", "John Driver", "driver") == {}

    def test_whitespace_name_is_missing(self):
        errors = validate_guardian_data(123, "   ", "driver")

        assert errors["name"] == "Guardian name is required"

    def test_name_too_long(self):
        errors = validate_guardian_data(123, "x" * 101, "driver")

        assert "name" in errors

    def test_unknown_relation(self):
        errors = validate_guardian_data(123, "John Driver", "neighbour")

        assert "relation" in errors
        assert "driver" in errors["relation"]

    @pytest.mark.parametrize("relation", ["Family Friend", "family_friend", " Grandparent ", "OTHER"])
    def test_relation_labels_and_values_accepted(self, relation):
        assert validate_guardian_data(123, "Jane", relation) == {}

    @pytest.mark.parametrize("phone", ["abc", "+0123", "12345678901234567", "+1-555-123"])
    def test_invalid_phone(self, phone):
        errors = validate_guardian_data(123, "John Driver", "driver", phone)

        assert errors == {"phone": "Please enter a valid phone number"}

    def test_phone_with_spaces_accepted(self):
        assert validate_guardian_data(123, "John Driver", "driver", "+1 555 123 4567") == {}


@pytest.mark.unit
class TestNormalization:

    def test_normalize_relation(self):
        assert normalize_relation("Family Friend") == "family_friend"
        assert normalize_relation("  Driver ") == "driver"
        assert normalize_relation(None) == ""

    def test_normalize_phone(self):
        assert normalize_phone("+1 555 123 4567") == "+15551234567"
        assert normalize_phone("   ") is None
        assert normalize_phone(None) is None

    def test_relation_choices(self):
        choices = relation_choices()

        assert len(choices) == len(GUARDIAN_RELATIONS) == 9
        assert choices[0] == {"label": "Driver", "value": "driver"}
        assert {"label": "Family Friend", "value": "family_friend"} in choices


@pytest.mark.unit
class TestProfileFields:
    """Test validation of guardian self-service profile fields."""

    def test_valid_profile(self):
        assert validate_profile_fields({
            "email": "john@example.com",
            "national_id": "A1234567",
            "emergency_contact": "Mary +15550001111",
            "address": "1 Main St",
            "photo_url": "https://cdn.school.com/p/1.jpg",
        }) == {}

    def test_none_values_clear_fields(self):
        assert validate_profile_fields({"email": None, "address": None}) == {}

    def test_unknown_field_rejected(self):
        errors = validate_profile_fields({"qr_token": "x", "status": "1"})

        assert errors == {"qr_token": "Unknown profile field", "status": "Unknown profile field"}

    def test_invalid_email(self):
        errors = validate_profile_fields({"email": "not-an-email"})

        assert errors == {"email": "Please enter a valid email address"}

    def test_emergency_contact_needs_a_number(self):
        errors = validate_profile_fields({"emergency_contact": "Call my wife"})

        assert "emergency_contact" in errors

    def test_length_limits(self):
        errors = validate_profile_fields({"national_id": "9" * 51, "address": "a" * 501})

        assert set(errors) == {"national_id", "address"}


@pytest.mark.unit
class TestPhotoValidation:

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp", "image/heic"])
    def test_accepted_types(self, content_type):
        assert validate_photo(b"img", content_type) == {}

    @pytest.mark.parametrize("content_type", [None, "text/plain", "image/gif", "application/pdf"])
    def test_rejected_types(self, content_type):
        assert "photo" in validate_photo(b"img", content_type)

    def test_empty(self):
        assert validate_photo(b"", "image/jpeg") == {"photo": "Photo is empty"}
