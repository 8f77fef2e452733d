"""Analysis request/result contract between the gateway and the analysis service."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError


DEFAULT_MAX_DIFF_SIZE = 1_000_000


class Severity(str, Enum):
    """Severity level of a review finding."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Finding(BaseModel):
    """One structured review comment anchored to a file and line."""

    model_config = ConfigDict(use_enum_values=True)

    file: str
    line: int
    severity: Severity
    message: str


class AnalysisRequest(BaseModel):
    """
    Request accepted by the analysis service.

    The diff ceiling is supplied through the validation context
    (``{"max_diff_size": n}``) so it follows the running service's settings.
    """

    model_config = ConfigDict(populate_by_name=True)

    repo: str = Field(min_length=1)
    pr_number: int = Field(alias="prNumber", gt=0, strict=True)
    diff: str = Field(min_length=1)
    language: Optional[str] = None

    @field_validator("diff")
    @classmethod
    def _check_diff_size(cls, value: str, info: ValidationInfo) -> str:
        context = info.context or {}
        max_size = context.get("max_diff_size", DEFAULT_MAX_DIFF_SIZE)
        if len(value) > max_size:
            raise PydanticCustomError(
                "diff_too_large",
                "Diff exceeds maximum size of {max_size} characters",
                {"max_size": max_size},
            )
        return value


class AnalysisResult(BaseModel):
    """Validated review returned by the analysis service."""

    summary: str = Field(min_length=1)
    comments: List[Finding] = []
