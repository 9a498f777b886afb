"""Response envelope shared by every API endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Uniform envelope: {success, data?, error?, message?}.

    Routes declare response_model_exclude_none=True so absent keys are
    omitted rather than sent as null.
    """

    success: bool = True
    data: T | None = None
    error: str | None = None
    message: str | None = None
