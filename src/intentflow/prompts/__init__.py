from intentflow.prompts.generator import PromptGenerator, RenderedPrompt, render
from intentflow.prompts.library import PromptKind, PromptLibrary, PromptVariant, builtin_variant_id

__all__ = [
    "PromptGenerator",
    "RenderedPrompt",
    "render",
    "PromptKind",
    "PromptLibrary",
    "PromptVariant",
    "builtin_variant_id",
]
