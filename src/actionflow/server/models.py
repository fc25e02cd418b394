"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)


class PointerResponse(BaseModel):
    pointer: str | None


class ErrorResponse(BaseModel):
    kind: str
    message: str
