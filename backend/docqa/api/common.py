"""Response schemas and parameter helpers shared by routers."""

import uuid

from pydantic import BaseModel

from backend.docqa.errors import ValidationError


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = True


def parse_id(raw: str | None) -> uuid.UUID:
    """Parse a required ``?id=`` query parameter.

    Raises:
        ValidationError: If the id is missing or not a UUID
    """
    if not raw:
        raise ValidationError("No id provided")
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise ValidationError("Invalid id") from e
