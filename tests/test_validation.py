from datetime import date

import pytest

from services.validation import (
    age_on,
    blank_field_errors,
    is_valid_birthdate,
    is_valid_email,
    is_valid_phone,
    is_valid_postal_code,
    validate_password,
    validate_registration_form,
    validate_user_form,
)

TODAY = date(2025, 6, 1)


@pytest.mark.parametrize("email, valid", [
    ("juan@example.com", True),
    ("juan@example", False),
    ("juan example@x.com", False),
    ("", False),
    ("a@b.co\n", False),
    (None, False),
    (123, False),
])
def test_email(email, valid):
    assert is_valid_email(email) is valid


@pytest.mark.parametrize("phone, valid", [
    ("09171234567", True),
    ("0917 123 4567", True),
    ("9171234567", False),
    ("0817123456", False),
    ("091712345678", False),
    ("09" + "١" * 9, False),
    ("09171234567\n", True),  # whitespace is stripped before matching
    (9171234567, False),
])
def test_phone(phone, valid):
    assert is_valid_phone(phone) is valid


def test_password_rules_report_each_failure():
    assert validate_password("Abc1") == (False, "Password must be at least 8 characters long")
    assert validate_password("abcdefg1") == (False, "Password must contain both uppercase and lowercase letters")
    assert validate_password("Abcdefgh") == (False, "Password must contain at least one number")
    assert validate_password("Abcdefg1") == (True, "")
    assert validate_password("Abcdefg١")[0] is False
    assert validate_password(12345678) == (False, "Password must be at least 8 characters long")


def test_postal_code():
    assert is_valid_postal_code("4114")
    assert not is_valid_postal_code("411")
    assert not is_valid_postal_code("41a4")
    assert not is_valid_postal_code("4114\n")
    assert not is_valid_postal_code("٤١١٤")
    assert not is_valid_postal_code(4114)


def test_birthdate_leap_years():
    assert is_valid_birthdate(29, "February", 2000, TODAY)
    assert is_valid_birthdate(29, 2, 2024, TODAY)
    assert not is_valid_birthdate(29, "Feb", 2023, TODAY)
    assert not is_valid_birthdate(29, "February", 1900, TODAY)
    assert not is_valid_birthdate(31, "April", 1990, TODAY)
    assert not is_valid_birthdate(1, "January", 1919, TODAY)
    assert not is_valid_birthdate(1, "January", 2026, TODAY)
    assert not is_valid_birthdate(1, "Smarch", 1990, TODAY)
    assert not is_valid_birthdate("١", "March", 1990, TODAY)
    assert not is_valid_birthdate(1, [3], 1990, TODAY)


def test_age_on_counts_full_years():
    assert age_on(date(2007, 6, 1), TODAY) == 18
    assert age_on(date(2007, 6, 2), TODAY) == 17


def _admin_form(**overrides):
    form = {
        "username": "juan",
        "email": "juan@example.com",
        "password": "Secret123",
        "first_name": "Juan",
        "last_name": "Cruz",
        "phone_number": "09171234567",
        "birthday": "1990-01-05",
        "house_number": "12",
        "street_name": "Rizal St",
        "barangay": "Malabon",
        "city_municipality": "Dasmarinas",
        "province": "Cavite",
        "postal_code": "4114",
        "user_type": "passenger",
    }
    form.update(overrides)
    return form


def test_user_form_create_valid():
    assert validate_user_form(_admin_form(), "create", TODAY) == {}


def test_user_form_create_requires_fields():
    errors = validate_user_form({"email": "juan@example.com"}, "create", TODAY)
    assert errors["username"] == "username is required"
    assert errors["password"] == "password is required"
    assert "email" not in errors


def test_user_form_update_checks_only_present_fields():
    assert validate_user_form({"first_name": "Pedro"}, "update", TODAY) == {}
    errors = validate_user_form({"postal_code": "12"}, "update", TODAY)
    assert errors == {"postal_code": "Postal code must be 4 digits"}


def test_user_form_driver_minimum_age():
    errors = validate_user_form(_admin_form(user_type="driver", birthday="2010-01-01"), "create", TODAY)
    assert errors["birthday"] == "User must be at least 18 years old"


def test_user_form_discount_needs_document_and_type():
    errors = validate_user_form(_admin_form(discount_applied=True, discount_type="Veteran"), "create", TODAY)
    assert "discount_file_path" in errors
    assert "discount_type" in errors


def _registration(**overrides):
    form = {
        "firstName": "Maria",
        "lastName": "Santos",
        "email": "maria@example.com",
        "phoneNumber": "09181234567",
        "gender": "female",
        "password": "Secret123",
        "confirmPassword": "Secret123",
        "houseNumber": "1",
        "streetName": "Mabini",
        "barangay": "Langkaan",
        "city": "Dasmarinas",
        "province": "Cavite",
        "postalCode": "4114",
        "birthDay": "15",
        "birthMonth": "March",
        "birthYear": "1995",
        "userType": "passenger",
    }
    form.update(overrides)
    return form


def test_registration_valid():
    assert validate_registration_form(_registration(), TODAY) == {}


def test_registration_errors():
    errors = validate_registration_form(
        _registration(firstName="M", confirmPassword="Other123", birthDay="31", birthMonth="June"),
        TODAY,
    )
    assert errors["firstName"] == "First name must be at least 2 characters"
    assert errors["confirmPassword"] == "Passwords do not match"
    assert errors["birthDay"] == "Please enter a valid birth date"


def test_registration_non_string_values_are_errors():
    errors = validate_registration_form(
        _registration(firstName=42, postalCode=4114, email=["x"], password=None, phoneNumber=9171234567),
        TODAY,
    )
    assert errors["firstName"] == "First name must be at least 2 characters"
    assert errors["postalCode"] == "Please enter a valid 4-digit postal code"
    assert errors["email"] == "Please enter a valid email address"
    assert errors["password"] == "Password is required"
    assert errors["phoneNumber"] == "Please enter a valid Philippine phone number"


def test_blank_field_errors():
    assert blank_field_errors({"email": None, "name": None}, ("email", "password")) == {"email": "email is required"}
    assert blank_field_errors({"plate_number": "  "}, ("plate_number",)) == {"plate_number": "plate number is required"}
    assert blank_field_errors({"email": "a@b.co"}, ("email",)) == {}


def test_registration_driver_rules():
    errors = validate_registration_form(_registration(userType="driver", birthYear="2010"), TODAY)
    assert errors["birthYear"] == "Driver must be at least 18 years old"
    assert errors["driversLicense"] == "Driver's license is required for driver accounts"
