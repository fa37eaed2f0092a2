"""
brain/ — LLM clients and the text-generation boundary.

    from intentflow.brain import TextGenerator, GenerateOptions, StructuredOutput
"""

from intentflow.brain.generator import TextGenerator, decode_json
from intentflow.brain.llm_client import BaseLLMClient, ResilientLLMClient, create_llm_client
from intentflow.brain.types import (
    GenerateOptions,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    StructuredOutput,
)

__all__ = [
    "TextGenerator",
    "decode_json",
    "BaseLLMClient",
    "ResilientLLMClient",
    "create_llm_client",
    "GenerateOptions",
    "LLMConfig",
    "LLMResponse",
    "Message",
    "Provider",
    "Role",
    "StructuredOutput",
]
