"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned with 4xx/5xx statuses."""

    success: bool = False
    error: str
    message: str
