# marketplace/core/errors.py
"""
Error taxonomy shared by services and routers.

Every error is an HTTPException so services keep raising the same way
they always have; the handlers in main.py render them into the
{success: false, error} envelope.
"""
from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
        )


class InvalidInput(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class InvalidCoordinate(InvalidInput):
    default_detail = "Coordinates are out of valid range"


class InvalidTransition(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid status transition"


class Unauthorized(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed to perform this action"


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictingTransition(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order status changed concurrently; reload and retry"


class InternalError(MarketplaceError):
    pass
