"""
Transcription Layer - Recording Sessions and Transcript Heuristics

Submodules:
    heuristics.py      → Speaker / medical-term keyword classifiers
    session_manager.py → Recording lifecycle state machine

Dependency Rule:
    This layer depends on: core, clients (capabilities), repository

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.transcription.heuristics import (
    SpeakerVocabulary,
    detect_medical_terms,
    detect_speaker,
)
from chiro_documentation.transcription.session_manager import TranscriptionSessionManager

__all__ = [
    "SpeakerVocabulary",
    "detect_medical_terms",
    "detect_speaker",
    "TranscriptionSessionManager",
]
