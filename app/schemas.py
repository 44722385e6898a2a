"""Error response schemas for the HTTP surface."""

from pydantic import BaseModel, Field

from meal_analyzer import AnalyzerError


class ErrorDetail(BaseModel):
    """Error detail structure."""

    type: str = Field(description="Stable error kind identifier")
    message: str = Field(description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Structured error response format."""

    error: ErrorDetail = Field(description="Error details")

    @classmethod
    def from_exception(cls, exc: AnalyzerError) -> "ErrorResponse":
        return cls(error=ErrorDetail(type=exc.error_type, message=exc.message))
