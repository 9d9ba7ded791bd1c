"""Schemas for agent turns."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AgentCommand(BaseModel):
    tool: str = Field(min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)


class AgentTurnRequest(BaseModel):
    user_id: UUID
    message: Optional[str] = Field(default=None, max_length=4000)
    command: Optional[AgentCommand] = None

    @model_validator(mode="after")
    def _one_input(self) -> "AgentTurnRequest":
        if (self.message is None) == (self.command is None):
            raise ValueError("Provide exactly one of message or command")
        if self.message is not None and not self.message.strip():
            raise ValueError("message must not be empty")
        return self
