"""Response envelopes and shared schema configuration."""
from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CamelModel(BaseModel):
    """Base model exposing camelCase names on the wire."""

    model_config = CAMEL_CONFIG


class DataResponse(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT


class ListResponse(BaseModel, Generic[DataT]):
    success: bool = True
    data: list[DataT]
    count: int


class PageResponse(BaseModel, Generic[DataT]):
    success: bool = True
    data: list[DataT]
    count: int = Field(..., description="Total number of matching records")
    page: int
    limit: int


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


__all__ = [
    "CAMEL_CONFIG",
    "CamelModel",
    "DataResponse",
    "ErrorResponse",
    "HealthResponse",
    "ListResponse",
    "PageResponse",
]
