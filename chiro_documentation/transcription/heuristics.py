"""
Transcript Heuristics - Speaker and Medical-Term Detection

Pure keyword classifiers over a single transcript chunk. They stand in for a
real diarization / clinical NLP backend: the session manager only needs
"which speaker said this" and "which vocabulary terms appear", so a better
backend can replace these functions without touching the state machine.

Author: Shubham Singh
Date: October 2026
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from chiro_documentation.core.constants import (
    MEDICAL_TERMS,
    PATIENT_SPEAKER_PATTERNS,
    PROVIDER_SPEAKER_PATTERNS,
)
from chiro_documentation.core.enums import SpeakerRole


@dataclass(frozen=True)
class SpeakerVocabulary:
    """Phrase lists the heuristics match against (injectable for tests)."""

    provider_phrases: Tuple[str, ...]
    patient_phrases: Tuple[str, ...]
    medical_terms: Tuple[str, ...]

    @classmethod
    def default(cls) -> "SpeakerVocabulary":
        return cls(
            provider_phrases=PROVIDER_SPEAKER_PATTERNS,
            patient_phrases=PATIENT_SPEAKER_PATTERNS,
            medical_terms=MEDICAL_TERMS,
        )


def detect_speaker(text: str, vocabulary: Optional[SpeakerVocabulary] = None) -> SpeakerRole:
    """
    Guess who spoke a chunk from indicator phrases.

    Provider phrases are checked first, so a chunk containing both kinds
    is attributed to the provider. Matching is a case-insensitive substring
    test.

    Example:
        >>> detect_speaker("I recommend ice therapy")
        <SpeakerRole.PROVIDER: 'provider'>
        >>> detect_speaker("It hurts when I bend")
        <SpeakerRole.PATIENT: 'patient'>
    """
    vocabulary = vocabulary or SpeakerVocabulary.default()
    lowered = text.lower()

    if any(phrase in lowered for phrase in vocabulary.provider_phrases):
        return SpeakerRole.PROVIDER
    if any(phrase in lowered for phrase in vocabulary.patient_phrases):
        return SpeakerRole.PATIENT
    return SpeakerRole.UNKNOWN


def detect_medical_terms(text: str, vocabulary: Optional[SpeakerVocabulary] = None) -> List[str]:
    """
    Return every vocabulary term found in the text, in vocabulary order.

    Substring scan with no word boundaries: "rom" matches inside "from".
    """
    vocabulary = vocabulary or SpeakerVocabulary.default()
    lowered = text.lower()
    return [term for term in vocabulary.medical_terms if term in lowered]


def merge_terms(existing: Iterable[str], new_terms: Iterable[str]) -> List[str]:
    """Order-preserving union of two term lists."""
    merged = list(existing)
    for term in new_terms:
        if term not in merged:
            merged.append(term)
    return merged
