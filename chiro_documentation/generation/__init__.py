"""
Generation Layer - SOAP Drafts and Provider Style

This layer turns a transcript into a reviewable SOAP draft and rewrites it in
the provider's learned style.

Submodules:
    prompt_builder.py → Prompt construction for the LLM-backed AI service
    style.py          → Preference-driven rewrite of a SOAP draft
    draft_engine.py   → Draft generation and review lifecycle

Dependency Rule:
    This layer depends on: core, clients (capabilities), repository
    This layer is used by: pipeline (orchestrator)

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.generation.draft_engine import DraftNoteEngine
from chiro_documentation.generation.prompt_builder import PromptBuilder
from chiro_documentation.generation.style import apply_provider_style

__all__ = [
    "DraftNoteEngine",
    "PromptBuilder",
    "apply_provider_style",
]
