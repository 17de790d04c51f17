"""
Helpers for coercing loosely-typed request values (form fields, query params).
"""
from .exceptions import ValidationError

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off', '')


def parse_bool(value, default: bool = False) -> bool:
    """
    Parse a boolean from JSON or form input.

    Raises:
        ValueError: for strings that are neither true-ish nor false-ish
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f'Not a boolean: {value!r}')


def parse_int(value) -> int:
    """
    Parse an integer from JSON or form input. Whole floats ("30.0") are accepted.

    Raises:
        ValueError: for booleans, non-numeric strings and fractional numbers
    """
    if isinstance(value, bool):
        raise ValueError(f'Not an integer: {value!r}')
    if isinstance(value, int):
        return value
    number = float(str(value).strip())
    if not number.is_integer():
        raise ValueError(f'Not an integer: {value!r}')
    return int(number)


def request_object(data) -> dict:
    """
    Check that a decoded request body is a JSON object.

    None (no body or unparseable JSON) becomes {}.

    Raises:
        ValidationError: for arrays, strings and other non-object bodies
    """
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data
