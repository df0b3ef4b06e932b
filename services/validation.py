"""
Form validation rules shared by the admin panel, the mobile sign-up flow and
the API itself.

The browser and the app are not a trust boundary, so the API runs the same
checks on every write. Functions here are pure: they return booleans or
field -> message dicts and never raise on bad input.

Patterns are applied with fullmatch and spell digits as [0-9], so they accept
exactly what the JavaScript forms accept (no Unicode digits, no trailing
newline).
"""
import re
from datetime import date
from typing import Iterable, Optional

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_RE = re.compile(r"09[0-9]{9}")
POSTAL_CODE_RE = re.compile(r"[0-9]{4}")

MIN_PASSWORD_LENGTH = 8
MIN_USER_AGE = 13
MIN_DRIVER_AGE = 18
MIN_BIRTH_YEAR = 1920

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
DAYS_IN_MONTH = [31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]

USER_TYPES = ("passenger", "driver", "admin")
DISCOUNT_TYPES = ("PWD", "Senior Citizen", "Student", "Pregnant")

USER_REQUIRED_FIELDS = [
    "username", "email", "first_name", "last_name",
    "phone_number", "birthday", "house_number", "street_name",
    "barangay", "city_municipality", "province", "postal_code",
]


def is_valid_email(email: Optional[str]) -> bool:
    return isinstance(email, str) and EMAIL_RE.fullmatch(email) is not None


def is_valid_phone(phone: Optional[str]) -> bool:
    """Philippine mobile number, 09XXXXXXXXX; whitespace such as '0917 123 4567' is ignored."""
    if not isinstance(phone, str):
        return False
    return PHONE_RE.fullmatch(normalize_phone(phone)) is not None


def normalize_phone(phone: str) -> str:
    return re.sub(r"\s", "", phone)


def validate_password(password: Optional[str]) -> tuple[bool, str]:
    if not isinstance(password, str):
        password = ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, "Password must be at least 8 characters long"
    if not re.search(r"[A-Z]", password) or not re.search(r"[a-z]", password):
        return False, "Password must contain both uppercase and lowercase letters"
    if not re.search(r"[0-9]", password):
        return False, "Password must contain at least one number"
    return True, ""


def is_valid_postal_code(postal_code: Optional[str]) -> bool:
    return isinstance(postal_code, str) and POSTAL_CODE_RE.fullmatch(postal_code) is not None


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def _as_int(value) -> Optional[int]:
    """An int, or a string of ASCII digits; anything else -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"[0-9]+", value.strip()):
        return int(value.strip())
    return None


def month_number(month) -> Optional[int]:
    """Accept 1-12 (int or numeric string) or an English month name."""
    n = _as_int(month)
    if n is not None:
        return n if 1 <= n <= 12 else None
    if not isinstance(month, str) or not month.strip():
        return None
    m = month.strip().lower()
    for i, name in enumerate(MONTH_NAMES):
        if m in (name.lower(), name[:3].lower()):
            return i + 1
    return None


def is_valid_birthdate(day, month, year, today: Optional[date] = None) -> bool:
    today = today or date.today()
    day_num = _as_int(day)
    year_num = _as_int(year)
    if day_num is None or year_num is None:
        return False
    month_num = month_number(month)
    if month_num is None:
        return False
    if year_num < MIN_BIRTH_YEAR or year_num > today.year:
        return False
    if day_num < 1 or day_num > DAYS_IN_MONTH[month_num - 1]:
        return False
    if month_num == 2 and day_num == 29:
        return is_leap_year(year_num)
    return True


def age_on(birthdate: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years


def parse_iso_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def blank_field_errors(data: dict, required: Iterable[str]) -> dict[str, str]:
    """Partial updates may omit a required column but not blank it or set it to null."""
    return {
        field: f"{field.replace('_', ' ')} is required"
        for field in required
        if field in data and _blank(data[field])
    }


def validate_user_form(form: dict, mode: str = "create", today: Optional[date] = None) -> dict[str, str]:
    """
    Admin user form rules.

    mode="create": every required field plus a password must be present.
    mode="update": only the fields present in `form` are checked.
    """
    errors: dict[str, str] = {}

    if mode == "create":
        for field in USER_REQUIRED_FIELDS + ["password"]:
            if _blank(form.get(field)):
                errors[field] = f"{field.replace('_', ' ')} is required"

    def present(field):
        return field in form and not _blank(form.get(field))

    if present("email") and not is_valid_email(form["email"]):
        errors["email"] = "Invalid email format"

    if present("phone_number") and not is_valid_phone(form["phone_number"]):
        errors["phone_number"] = "Phone number must be 11 digits starting with 09 (e.g., 09xx xxx xxxx)"

    if present("password"):
        valid, message = validate_password(form["password"])
        if not valid:
            errors["password"] = message

    if present("postal_code") and not is_valid_postal_code(str(form["postal_code"])):
        errors["postal_code"] = "Postal code must be 4 digits"

    if present("birthday"):
        birthdate = parse_iso_date(form["birthday"])
        if birthdate is None:
            errors["birthday"] = "Birthday must be a valid date (YYYY-MM-DD)"
        else:
            min_age = MIN_DRIVER_AGE if form.get("user_type") == "driver" else MIN_USER_AGE
            if age_on(birthdate, today) < min_age:
                errors["birthday"] = f"User must be at least {min_age} years old"

    if present("user_type") and form["user_type"] not in USER_TYPES:
        errors["user_type"] = "User type must be passenger, driver or admin"

    if form.get("discount_applied") and form.get("user_type", "passenger") == "passenger":
        if _blank(form.get("discount_file_path")):
            errors["discount_file_path"] = "Supporting document is required when applying for discount"
        if _blank(form.get("discount_type")):
            errors["discount_type"] = "Discount type is required when applying for discount"
        elif form["discount_type"] not in DISCOUNT_TYPES:
            errors["discount_type"] = "Discount type must be PWD, Senior Citizen, Student or Pregnant"

    return errors


def validate_registration_form(form: dict, today: Optional[date] = None) -> dict[str, str]:
    """Self-service sign-up rules (camelCase keys, as the sign-up screens send them)."""
    errors: dict[str, str] = {}

    for field, label in (("firstName", "First name"), ("lastName", "Last name")):
        value = form.get(field)
        if _blank(value):
            errors[field] = f"{label} is required"
        elif not isinstance(value, str) or len(value.strip()) < 2:
            errors[field] = f"{label} must be at least 2 characters"

    if _blank(form.get("email")):
        errors["email"] = "Email is required"
    elif not is_valid_email(form["email"]):
        errors["email"] = "Please enter a valid email address"

    if _blank(form.get("phoneNumber")):
        errors["phoneNumber"] = "Phone number is required"
    elif not is_valid_phone(form["phoneNumber"]):
        errors["phoneNumber"] = "Please enter a valid Philippine phone number"

    if _blank(form.get("gender")):
        errors["gender"] = "Gender is required"

    if _blank(form.get("password")):
        errors["password"] = "Password is required"
    else:
        valid, message = validate_password(form["password"])
        if not valid:
            errors["password"] = message

    if _blank(form.get("confirmPassword")):
        errors["confirmPassword"] = "Please confirm your password"
    elif form.get("password") != form.get("confirmPassword"):
        errors["confirmPassword"] = "Passwords do not match"

    for field, label in (
        ("houseNumber", "House/Building number"),
        ("streetName", "Street name"),
        ("barangay", "Barangay"),
        ("city", "City/Municipality"),
        ("province", "Province"),
    ):
        if _blank(form.get(field)):
            errors[field] = f"{label} is required"

    if _blank(form.get("postalCode")):
        errors["postalCode"] = "Postal code is required"
    elif not is_valid_postal_code(form["postalCode"]):
        errors["postalCode"] = "Please enter a valid 4-digit postal code"

    day, month, year = form.get("birthDay"), form.get("birthMonth"), form.get("birthYear")
    if _blank(day) or _blank(month) or _blank(year):
        if _blank(month):
            errors["birthMonth"] = "Birth month is required"
        if _blank(day):
            errors["birthDay"] = "Birth day is required"
        if _blank(year):
            errors["birthYear"] = "Birth year is required"
    elif not is_valid_birthdate(day, month, year, today):
        errors["birthDay"] = "Please enter a valid birth date"
    else:
        birthdate = date(_as_int(year), month_number(month), _as_int(day))
        is_driver = form.get("userType") == "driver"
        min_age = MIN_DRIVER_AGE if is_driver else MIN_USER_AGE
        if age_on(birthdate, today) < min_age:
            who = "Driver" if is_driver else "User"
            errors["birthYear"] = f"{who} must be at least {min_age} years old"

    if form.get("userType") == "driver" and not form.get("driversLicense"):
        errors["driversLicense"] = "Driver's license is required for driver accounts"

    return errors
