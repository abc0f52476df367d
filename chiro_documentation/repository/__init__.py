"""
Repository Layer - Documentation Record Storage

This layer is the persistence boundary: engines read and write whole records
through the DocumentationStore protocol and never own storage.

Submodules:
    record_store.py → Store protocol + in-memory implementation

Dependency Rule:
    This layer depends on: core (models, exceptions)
    This layer is used by: transcription, generation, coding, compliance, learning

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.repository.record_store import (
    DocumentationStore,
    InMemoryDocumentationStore,
)

__all__ = [
    "DocumentationStore",
    "InMemoryDocumentationStore",
]
