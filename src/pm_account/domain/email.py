"""Email normalization — users are identified by email, case-insensitively."""

from pydantic import EmailStr, TypeAdapter, ValidationError

from src.pm_common.errors import InvalidEmailError

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """Trim and lower-case; raise InvalidEmailError if it is not an address.

    Request schemas already type the field as ``EmailStr``; this is the same
    check for callers that bypass the HTTP layer.
    """
    if not isinstance(email, str):
        raise InvalidEmailError(str(email))
    try:
        validated = _EMAIL_ADAPTER.validate_python(email.strip())
    except ValidationError as exc:
        raise InvalidEmailError(email) from exc
    return validated.lower()
