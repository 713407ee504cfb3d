from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator


class GenerationRequest(BaseModel):
    prompt: StrictStr

    model_config = ConfigDict(extra="ignore")

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be empty")
        return value
