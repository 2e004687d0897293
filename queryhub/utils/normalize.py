import re
from queryhub.models.records import QueryType

_NON_DIGITS = re.compile(r"\D")


def normalize(query_type: QueryType, value) -> str:
    """Canonical form used for duplicate and protection matching.

    Identity and phone numbers keep digits only; names are trimmed and
    lowercased.
    """
    text = str(value).strip().lower()
    if QueryType(query_type).is_numeric:
        return _NON_DIGITS.sub("", text)
    return text


def mask_identity(value: str) -> str:
    """First three digits, a mask, then the last two digits"""
    digits = _NON_DIGITS.sub("", str(value))
    if len(digits) >= 11:
        return digits[:3] + "***" + digits[-2:]
    if len(digits) > 2:
        return "***" + digits[-2:]
    return "***"


def mask_value(query_type: QueryType, value: str) -> str:
    """Log-safe rendering of any query value"""
    query_type = QueryType(query_type)
    if query_type == QueryType.IDENTITY:
        return mask_identity(value)
    if query_type == QueryType.PHONE_NUMBER:
        digits = _NON_DIGITS.sub("", str(value))
        if len(digits) < 4:
            return "***"
        return digits[:2] + "***" + digits[-2:]
    text = str(value).strip()
    if len(text) < 4:
        return "***"
    return text[:2] + "***"


def display_parameter(query_type: QueryType, value: str) -> str:
    """Stored display form: identity numbers are masked, everything else kept"""
    if QueryType(query_type) == QueryType.IDENTITY:
        return mask_identity(value)
    return value
