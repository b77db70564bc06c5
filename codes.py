import random
import re
import string

from pydantic import AnyUrl, TypeAdapter, ValidationError

SHORT_CODE_LENGTH = 6
ALPHABET = string.ascii_letters + string.digits
SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,50}$")

_url_adapter = TypeAdapter(AnyUrl)


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    return ''.join(random.choices(ALPHABET, k=length))


def is_valid_url(value: str) -> bool:
    """Accept only well-formed absolute URLs (a scheme is mandatory)."""
    if not value or value != value.strip():
        return False
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def is_valid_slug(value: str) -> bool:
    return bool(value) and SLUG_PATTERN.fullmatch(value) is not None
