"""
Error taxonomy for the shortlink service.

Each error carries the HTTP status it maps to. Client errors expose their
message; server errors (expose = False) are logged and answered with a
generic message by the exception handler in main.py.
"""

from typing import Optional

from fastapi import status


class ShortlinkError(Exception):
    """Base class for all domain errors"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    expose = False
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidFormat(ShortlinkError):
    """Malformed slug, target URL or request body"""
    status_code = status.HTTP_400_BAD_REQUEST
    expose = True
    public_message = "Invalid input"


class SlugTaken(ShortlinkError):
    """Slug already belongs to another record"""
    status_code = status.HTTP_409_CONFLICT
    expose = True
    public_message = "Slug is already in use"

    def __init__(self, slug: str):
        super().__init__(f"Slug '{slug}' is already in use")
        self.slug = slug


class NotFound(ShortlinkError):
    status_code = status.HTTP_404_NOT_FOUND
    expose = True
    public_message = "Not found"


class Unauthorized(ShortlinkError):
    status_code = status.HTTP_401_UNAUTHORIZED
    expose = True
    public_message = "Unauthorized"


class ExhaustedRetries(ShortlinkError):
    """
    No free slug was found within the attempt budget.

    Signals slug-space pressure, so it is reported as a server failure.
    """
    public_message = "Failed to generate unique slug. Please try again."

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate unique slug after {attempts} attempts")
        self.attempts = attempts


class Internal(ShortlinkError):
    """Unexpected store or IO failure"""
