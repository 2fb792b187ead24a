"""
Input Validation
================
Phone number and OTP code validation. Pure functions, no state.
"""

import re

from .errors import InvalidOTPError, InvalidPhoneNumberError

PHONE_PATTERN = re.compile(r'^\+[1-9]\d{6,14}$')
PHONE_MIN_LENGTH = 8
PHONE_MAX_LENGTH = 20
SUSPICIOUS_SEQUENCES = ("..", "--")


def validate_phone(raw: str) -> str:
    """
    Validate and normalize an international phone number.

    Rules:
    - Surrounding whitespace is trimmed
    - 8 to 20 characters after trimming
    - No ".." or "--" sequences
    - "+" then a nonzero digit then 6-14 more digits

    Args:
        raw: Phone number as received

    Returns:
        The trimmed phone number

    Raises:
        InvalidPhoneNumberError: If any rule fails
    """
    if not isinstance(raw, str):
        raise InvalidPhoneNumberError()

    phone = raw.strip()

    if not PHONE_MIN_LENGTH <= len(phone) <= PHONE_MAX_LENGTH:
        raise InvalidPhoneNumberError()

    if any(seq in phone for seq in SUSPICIOUS_SEQUENCES):
        raise InvalidPhoneNumberError()

    # re.match with $ would accept a trailing newline
    if not PHONE_PATTERN.fullmatch(phone):
        raise InvalidPhoneNumberError()

    return phone


def is_valid_phone(raw: str) -> bool:
    try:
        validate_phone(raw)
    except InvalidPhoneNumberError:
        return False
    return True


def validate_otp_code(raw: str, expected_length: int) -> str:
    """
    Check a submitted code is exactly ``expected_length`` ASCII digits.

    Raises:
        InvalidOTPError: If the code is malformed
    """
    if not isinstance(raw, str):
        raise InvalidOTPError()

    code = raw.strip()

    if len(code) != expected_length:
        raise InvalidOTPError()

    # str.isdigit() also accepts non-ASCII digits such as "٣"
    if any(ch < "0" or ch > "9" for ch in code):
        raise InvalidOTPError()

    return code
