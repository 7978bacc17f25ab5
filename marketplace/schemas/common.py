# marketplace/schemas/common.py
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope returned by every endpoint:

        {"success": true, "data": ..., "message": "..."}
        {"success": false, "error": "..."}
    """

    success: bool = True
    data: T | None = None
    error: str | None = None
    message: str | None = None
