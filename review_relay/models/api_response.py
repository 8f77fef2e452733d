"""API response envelope shared by both services."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """Error member of a failed response."""

    code: str
    message: str
    details: Optional[Any] = None


class ApiResponse(BaseModel):
    """Uniform envelope: ``{success, data | error, requestId}``."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None
    request_id: Optional[str] = Field(default=None, alias="requestId")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def success_response(data: Any, request_id: Optional[str] = None) -> dict:
    """Build a success envelope."""
    return ApiResponse(success=True, data=data, request_id=request_id).to_dict()


def error_response(
    code: str,
    message: str,
    details: Optional[Any] = None,
    request_id: Optional[str] = None,
) -> dict:
    """Build an error envelope."""
    return ApiResponse(
        success=False,
        error=ErrorBody(code=code, message=message, details=details),
        request_id=request_id,
    ).to_dict()
