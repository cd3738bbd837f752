"""
Back-office ledger - common schemas
Response envelope and shared types.
"""

from typing import Any, Generic, TypeVar, Optional

from pydantic import BaseModel, Field


T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Response metadata"""
    total: Optional[int] = None


class SuccessResponse(BaseModel, Generic[T]):
    """Success envelope"""
    data: T
    meta: Optional[ResponseMeta] = None


class ErrorDetail(BaseModel):
    """Error body"""
    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[dict[str, Any]] = Field(None, description="Extra details")


class ErrorResponse(BaseModel):
    """Error envelope"""
    error: ErrorDetail
