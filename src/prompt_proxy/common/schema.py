"""Pydantic models for request/response bodies."""
from __future__ import annotations
from typing import Any, Optional

from pydantic import BaseModel

MAX_PROMPT_CHARS = 50_000


class GenerateIn(BaseModel):
    # Optional so a missing prompt gets the same 400 as an empty one
    prompt: Optional[str] = None


class GenerateOut(BaseModel):
    text: str


class HealthOut(BaseModel):
    status: str
    message: str
    timestamp: str


class ServiceInfo(BaseModel):
    name: str
    version: str
    endpoints: dict[str, Any]
