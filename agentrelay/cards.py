"""Pydantic models describing remote agent discovery cards."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AgentSkill(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class AgentCard(BaseModel):
    """Metadata an agent publishes about itself.

    Cards come from heterogeneous agents, so unknown fields are kept and only
    ``name`` is required.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Identity
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    version: Optional[str] = None
    type: Optional[str] = None

    # Capabilities
    capabilities: List[str] = Field(default_factory=list)
    skills: List[AgentSkill] = Field(default_factory=list)
    supported_task_types: List[str] = Field(
        default_factory=list, alias="supportedTaskTypes"
    )

    # Addressing
    url: Optional[str] = None
    endpoint: Optional[str] = None
    status: Optional[str] = None

    @field_validator("capabilities", mode="before")
    @classmethod
    def _flatten_capabilities(cls, v: Any) -> Any:
        # A2A cards publish capabilities as {"streaming": true, ...}
        if isinstance(v, dict):
            return [name for name, enabled in v.items() if enabled]
        return v or []
