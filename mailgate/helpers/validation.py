"""Input validation helpers for API endpoints.

All validators raise ``ValueError`` with a user-facing message; the
blueprint turns that into a VALIDATION_ERROR response.
"""


def validate_string(value, field_name, min_len=1, max_len=1000, allow_empty=False):
    """Validate string input for API endpoints.

    Args:
        value: Value to validate
        field_name: Field name for error messages
        min_len: Minimum length (default: 1)
        max_len: Maximum length (default: 1000)
        allow_empty: Allow empty strings (default: False)

    Returns:
        Cleaned string or None if allow_empty=True and value is empty

    Raises:
        ValueError: If validation fails
    """
    if value is None:
        if allow_empty:
            return None
        raise ValueError(f"{field_name} is required")

    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    value = value.strip()

    if len(value) == 0:
        if allow_empty:
            return None
        raise ValueError(f"{field_name} must not be empty")

    if len(value) < min_len:
        raise ValueError(f"{field_name} must be at least {min_len} characters long")

    if len(value) > max_len:
        raise ValueError(f"{field_name} must be at most {max_len} characters long")

    return value


def validate_integer(value, field_name, min_val=None, max_val=None):
    """Validate integer input for API endpoints.

    Args:
        value: Value to validate (int or numeric string)
        field_name: Field name for error messages
        min_val: Minimum value (optional)
        max_val: Maximum value (optional)

    Returns:
        Integer value

    Raises:
        ValueError: If validation fails
    """
    if value is None:
        raise ValueError(f"{field_name} is required")

    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")

    if not isinstance(value, int):
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise ValueError(f"{field_name} must be a number")

    if min_val is not None and value < min_val:
        raise ValueError(f"{field_name} must be at least {min_val}")

    if max_val is not None and value > max_val:
        raise ValueError(f"{field_name} must be at most {max_val}")

    return value


def validate_port(value, field_name, default):
    """Optional port: missing/empty/0 → default, otherwise 1..65535."""
    if value is None or value == "":
        return default
    if value == 0 and not isinstance(value, bool):
        return default
    return validate_integer(value, field_name, min_val=1, max_val=65535)


def validate_flag(value, default=True):
    """Secure flags: everything except an explicit false keeps the default."""
    if value is False:
        return False
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off"):
        return False
    return default


def validate_email(value, field_name):
    """Validate email address.

    Returns:
        Normalized email address (stripped)

    Raises:
        ValueError: If validation fails
    """
    if value is None or not isinstance(value, str):
        raise ValueError(f"{field_name} is required")

    value = value.strip()

    if len(value) == 0:
        raise ValueError(f"{field_name} must not be empty")

    if len(value) > 320:  # RFC 5321 Maximum
        raise ValueError(f"{field_name} is too long (max. 320 characters)")

    if "@" not in value:
        raise ValueError(f"{field_name} is not a valid email address")

    local_part, domain = value.rsplit("@", 1)

    if not local_part or not domain:
        raise ValueError(f"{field_name} is not a valid email address")

    return value
