from typing import Any

from pydantic import BaseModel, Field


class ChainRequest(BaseModel):
    skills: list[str] = Field(default_factory=list)
    text: str = ""
    context: dict = Field(default_factory=dict)


class ChainResponse(BaseModel):
    ok: bool = True
    results: list[dict]
    synthesized: Any = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    code: str
