"""Request-scoped data model for a single generation call. All models are immutable."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkflowStep(IntEnum):
    """The three sequential steps of the writing workflow."""

    STRATEGIST = 1  # outline -> logic blueprint
    COMPOSER = 2  # blueprint -> prose
    REVIEWER = 3  # prose -> critical review


class StreamTermination(str, Enum):
    """How a provider stream finished normally."""

    SENTINEL = "sentinel"  # explicit [DONE] line
    EOF = "eof"  # connection closed


class ProviderConfig(BaseModel):
    """Credential, endpoint and model. Never persisted by the streaming layer."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(repr=False, description="Secret credential")
    base_url: str = Field(description="Endpoint base, e.g. https://api.openai.com/v1")
    model: str = Field(description="Model identifier")


class GenerationRequest(BaseModel):
    """Everything needed to run one workflow step. Built fresh per invocation."""

    model_config = ConfigDict(frozen=True)

    step: WorkflowStep
    user_input: str = ""
    blueprint: Optional[str] = Field(default=None, description="Prior step-1 output")
    composed_text: Optional[str] = Field(default=None, description="Prior step-2 output")
    reference_text: Optional[str] = Field(default=None, description="Style sample text")
    provider: ProviderConfig


# One or more code points; emission order is the only ordering.
StreamFragment = str
