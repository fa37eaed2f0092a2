"""
tools/builtin.py — Built-in Tools

A small set of side-effect-free tools that are always available. They give
the planner something real to target out of the box and double as a reference
for writing tool modules: define a payload model, an async handler taking
(payload, identity), and register them in register(registry).
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from intentflow.tools.registry import ToolRegistry
from intentflow.tools.types import ToolDefinition, ToolMetadata, ToolResult


class EchoPayload(BaseModel):
    text: str = Field(description="Text to echo back")


class CurrentTimePayload(BaseModel):
    timezone: str = Field(default="UTC", description="IANA timezone name, e.g. Europe/Berlin")


async def echo(payload: EchoPayload, identity: str) -> dict:
    return {"text": payload.text}


async def current_time(payload: CurrentTimePayload, identity: str) -> ToolResult:
    try:
        tz = ZoneInfo(payload.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return ToolResult.failure(
            "current_time",
            f"Unknown timezone '{payload.timezone}'",
            payload=payload.model_dump(),
        )
    now = datetime.now(timezone.utc).astimezone(tz)
    return ToolResult.success(
        "current_time",
        data={"timezone": payload.timezone, "iso": now.isoformat()},
    )


def register(registry: ToolRegistry) -> None:
    registry.register(ToolDefinition(
        metadata=ToolMetadata(
            name="echo",
            description="Repeat the given text back to the user",
            examples=["Say hello world back to me"],
            category="utility",
        ),
        handler=echo,
        payload_model=EchoPayload,
    ))
    registry.register(ToolDefinition(
        metadata=ToolMetadata(
            name="current_time",
            description="Get the current date and time in a timezone",
            examples=["What time is it in Tokyo?"],
            category="utility",
        ),
        handler=current_time,
        payload_model=CurrentTimePayload,
    ))
