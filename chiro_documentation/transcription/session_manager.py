"""
Transcription Session Manager - Recording Lifecycle FSM

This module owns the lifecycle of an encounter's recording:

    start ──► RECORDING ◄──► PAUSED
                  │             │
                  └──── stop ───┴──► COMPLETED (terminal)

Each audio chunk is sent to the transcription capability, attributed to a
speaker, and appended to the session as a segment plus a speaker-tagged
transcript line.

Concurrency:
    - At most one RECORDING/PAUSED session per encounter. Enforced by the
      store's atomic `create_session`, not by a lock here.
    - Writes to one session are serialized with a lock keyed by session id,
      so chunks for the same session never interleave in this process. A
      lock lives only while some call holds or waits on it.

Failure policy:
    - A chunk that fails to transcribe aborts `ingest_chunk` with InternalError.
    - A final chunk that fails during `stop` is logged and ignored; the
      session still completes with the transcript it already has.

Pipeline Position:
    Audio → [TranscriptionSessionManager] → DraftNoteEngine
             ^^^^^^^^^^^^^^^^^^^^^^^^^^^^
             You are here

Author: Shubham Singh
Date: October 2026
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from loguru import logger

from chiro_documentation.clients.capabilities import TranscriptionCapability
from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.constants import DEFAULT_SPEAKER_LABELS
from chiro_documentation.core.enums import SessionStatus, SpeakerRole, TranscriptionMode
from chiro_documentation.core.exceptions import BadRequestError, InternalError, NotFoundError
from chiro_documentation.core.models import (
    TranscriptionSession,
    TranscriptionStats,
    TranscriptSegment,
)
from chiro_documentation.repository.record_store import DocumentationStore
from chiro_documentation.transcription.heuristics import (
    SpeakerVocabulary,
    detect_medical_terms,
    detect_speaker,
    merge_terms,
)


class TranscriptionSessionManager:
    """
    Recording state machine for transcription sessions.

    What it does:
        Guards every lifecycle operation by the session's current status,
        accumulates segments, transcript, running accuracy and medical terms,
        and completes the session with duration bookkeeping.

    Running accuracy:
        accuracy_1 = confidence_1
        accuracy_k = (accuracy_{k-1} + confidence_k) / 2
        A two-point average, not a mean over all chunks.

    Example:
        >>> manager = TranscriptionSessionManager(store, ai_service)
        >>> session = manager.start("enc-1")
        >>> manager.ingest_chunk(session.id, audio_b64, chunk_index=0)
        >>> manager.stop(session.id)
    """

    def __init__(
        self,
        store: DocumentationStore,
        transcriber: TranscriptionCapability,
        config: Optional[EngineConfiguration] = None,
        vocabulary: Optional[SpeakerVocabulary] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._transcriber = transcriber
        self._config = config or EngineConfiguration()
        self._vocabulary = vocabulary or SpeakerVocabulary.default()
        self._clock = clock

        self._locks_guard = threading.Lock()
        # session id -> [lock, callers holding or waiting on it]
        self._session_locks: Dict[str, List[Any]] = {}

        logger.info(
            f"TranscriptionSessionManager initialized | "
            f"Chunk duration: {self._config.chunk_duration_seconds}s"
        )

    # =========================================================================
    # STAGE 1: LIFECYCLE
    # =========================================================================

    def start(
        self,
        encounter_id: str,
        mode: TranscriptionMode = TranscriptionMode.AMBIENT,
        language: Optional[str] = None,
    ) -> TranscriptionSession:
        """
        Start a RECORDING session for an encounter.

        Raises:
            ConflictError: If the encounter already has a RECORDING/PAUSED session
        """
        session = TranscriptionSession(
            encounter_id=encounter_id,
            status=SessionStatus.RECORDING,
            mode=TranscriptionMode(mode),
            language=language or self._config.default_language,
            speaker_labels=dict(DEFAULT_SPEAKER_LABELS),
            speaker_count=len(DEFAULT_SPEAKER_LABELS),
            started_at=self._clock(),
        )
        self._store.create_session(session)

        logger.info(
            f"Transcription started | Session: {session.id} | "
            f"Encounter: {encounter_id} | Mode: {session.mode.value}"
        )
        return session

    def pause(self, session_id: str) -> TranscriptionSession:
        """RECORDING → PAUSED. Raises NotFoundError if the session is not recording."""
        with self._lock_for(session_id):
            session = self._require_status(
                session_id, SessionStatus.RECORDING, "Active recording session not found"
            )
            session.status = SessionStatus.PAUSED
            self._store.save_session(session)

        logger.info(f"Transcription paused | Session: {session_id}")
        return session

    def resume(self, session_id: str) -> TranscriptionSession:
        """PAUSED → RECORDING. Raises NotFoundError if the session is not paused."""
        with self._lock_for(session_id):
            session = self._require_status(
                session_id, SessionStatus.PAUSED, "Paused session not found"
            )
            session.status = SessionStatus.RECORDING
            self._store.save_session(session)

        logger.info(f"Transcription resumed | Session: {session_id}")
        return session

    def ingest_chunk(
        self,
        session_id: str,
        audio_base64: str,
        chunk_index: int,
        speaker_hint: Optional[Union[SpeakerRole, str]] = None,
        mime_type: str = "audio/webm",
    ) -> TranscriptSegment:
        """
        Transcribe one chunk and append it to a RECORDING session.

        STAGE 1.1: Guard status
        STAGE 1.2: Transcribe (failure aborts the call)
        STAGE 1.3: Resolve speaker (hint, else phrase heuristic)
        STAGE 1.4: Append segment, transcript line, terms, accuracy

        Raises:
            NotFoundError: If the session is missing or not RECORDING
            BadRequestError: If the speaker hint is not a known role
            InternalError: If the transcription capability fails
        """
        hinted_speaker = self._parse_speaker_hint(speaker_hint)

        with self._lock_for(session_id):
            # STAGE 1.1: Guard status
            session = self._require_status(
                session_id, SessionStatus.RECORDING, "Active recording session not found"
            )

            # STAGE 1.2: Transcribe
            try:
                result = self._transcriber.transcribe(audio_base64, mime_type)
            except Exception as e:
                logger.error(
                    f"Chunk transcription failed | Session: {session_id} | "
                    f"Chunk: {chunk_index} | Error: {e}"
                )
                raise InternalError(
                    "Failed to transcribe audio chunk",
                    context={"session_id": session_id, "chunk_index": chunk_index},
                ) from e

            # STAGE 1.3: Resolve speaker
            speaker = hinted_speaker or detect_speaker(result.text, self._vocabulary)

            # STAGE 1.4: Append
            duration = self._config.chunk_duration_seconds
            segment = TranscriptSegment(
                speaker=speaker,
                text=result.text,
                start_time=chunk_index * duration,
                end_time=(chunk_index + 1) * duration,
                confidence=result.confidence,
                chunk_index=chunk_index,
            )
            line = f"[{speaker.value.upper()}]: {result.text}"

            session.segments.append(segment)
            session.full_transcript = (
                f"{session.full_transcript}\n{line}" if session.full_transcript else line
            )
            session.medical_terms = merge_terms(
                session.medical_terms, detect_medical_terms(result.text, self._vocabulary)
            )
            session.accuracy = (
                result.confidence
                if session.accuracy is None
                else (session.accuracy + result.confidence) / 2
            )
            self._store.save_session(session)

        logger.debug(
            f"Chunk ingested | Session: {session_id} | Chunk: {chunk_index} | "
            f"Speaker: {speaker.value} | Accuracy: {session.accuracy:.3f}"
        )
        return segment

    def stop(
        self,
        session_id: str,
        final_audio_base64: Optional[str] = None,
        mime_type: str = "audio/wav",
    ) -> TranscriptionSession:
        """
        Complete a session, optionally transcribing one trailing chunk.

        The trailing chunk is appended after a blank line and gets no segment.
        Its failure is logged and ignored.

        Raises:
            NotFoundError: If the session does not exist
            BadRequestError: If the session is already COMPLETED
        """
        with self._lock_for(session_id):
            session = self._get(session_id)
            if session.status == SessionStatus.COMPLETED:
                raise BadRequestError(
                    "Transcription is already completed", context={"session_id": session_id}
                )

            transcript = session.full_transcript or ""
            if final_audio_base64:
                try:
                    result = self._transcriber.transcribe(final_audio_base64, mime_type)
                    if result.text:
                        transcript = f"{transcript}\n\n{result.text}" if transcript else result.text
                except Exception as e:
                    logger.warning(
                        f"Final chunk transcription failed, completing without it | "
                        f"Session: {session_id} | Error: {e}"
                    )

            ended_at = self._clock()
            audio_duration = round((ended_at - session.started_at).total_seconds())

            session.status = SessionStatus.COMPLETED
            session.full_transcript = transcript
            session.ended_at = ended_at
            session.audio_duration = audio_duration
            session.processing_ms = audio_duration * 1000
            self._store.save_session(session)

        logger.info(
            f"Transcription completed | Session: {session_id} | "
            f"Duration: {audio_duration}s | Segments: {session.segment_count}"
        )
        return session

    # =========================================================================
    # STAGE 2: PROVIDER CORRECTIONS
    # =========================================================================

    def update_transcript(
        self,
        session_id: str,
        transcript: str,
        corrected_terms: Optional[List[Dict[str, str]]] = None,
    ) -> TranscriptionSession:
        """Replace the transcript text (allowed in any status) and log corrections."""
        with self._lock_for(session_id):
            session = self._get(session_id)
            session.full_transcript = transcript
            if corrected_terms:
                session.corrected_terms.extend(dict(term) for term in corrected_terms)
            self._store.save_session(session)

        logger.info(
            f"Transcript edited | Session: {session_id} | "
            f"Corrections: {len(corrected_terms or [])}"
        )
        return session

    def update_speaker_labels(self, session_id: str, labels: Dict[str, str]) -> TranscriptionSession:
        with self._lock_for(session_id):
            session = self._get(session_id)
            session.speaker_labels = dict(labels)
            session.speaker_count = len(labels)
            self._store.save_session(session)
        return session

    def toggle_ambient_mode(
        self, encounter_id: str, enabled: bool
    ) -> Optional[TranscriptionSession]:
        """
        Switch continuous listening on or off for an encounter.

        Enabling resumes a PAUSED session, returns a RECORDING one as-is, or
        starts a new AMBIENT session. Disabling completes the active session
        and returns it, or returns None if there is none.
        """
        active = self._store.find_active_session(encounter_id)

        if enabled:
            if active is None:
                return self.start(encounter_id, mode=TranscriptionMode.AMBIENT)
            if active.status == SessionStatus.PAUSED:
                return self.resume(active.id)
            return active

        if active is None:
            return None
        return self.stop(active.id)

    # =========================================================================
    # STAGE 3: QUERIES
    # =========================================================================

    def get_session(self, session_id: str) -> TranscriptionSession:
        return self._get(session_id)

    def get_active_session(self, encounter_id: str) -> Optional[TranscriptionSession]:
        return self._store.find_active_session(encounter_id)

    def list_sessions(self, encounter_id: Optional[str] = None) -> List[TranscriptionSession]:
        return self._store.list_sessions(encounter_id)

    def statistics(self, encounter_ids: Optional[List[str]] = None) -> TranscriptionStats:
        """Totals plus average duration and accuracy over completed sessions."""
        sessions = self._store.list_sessions()
        if encounter_ids is not None:
            wanted = set(encounter_ids)
            sessions = [s for s in sessions if s.encounter_id in wanted]

        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
        durations = [s.audio_duration for s in completed if s.audio_duration is not None]
        accuracies = [s.accuracy for s in completed if s.accuracy is not None]

        return TranscriptionStats(
            total_sessions=len(sessions),
            completed_sessions=len(completed),
            average_duration=sum(durations) / len(durations) if durations else None,
            average_accuracy=sum(accuracies) / len(accuracies) if accuracies else None,
        )

    # =========================================================================
    # STAGE 4: HELPERS
    # =========================================================================

    @contextmanager
    def _lock_for(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock; the entry is dropped once no caller uses it."""
        with self._locks_guard:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = self._session_locks[session_id] = [threading.Lock(), 0]
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._session_locks[session_id]

    def _get(self, session_id: str) -> TranscriptionSession:
        session = self._store.get_session(session_id)
        if session is None:
            raise NotFoundError("session", session_id, "Transcription session not found")
        return session

    def _require_status(
        self, session_id: str, status: SessionStatus, message: str
    ) -> TranscriptionSession:
        session = self._store.get_session(session_id)
        if session is None or session.status != status:
            raise NotFoundError("session", session_id, message)
        return session

    @staticmethod
    def _parse_speaker_hint(
        speaker_hint: Optional[Union[SpeakerRole, str]],
    ) -> Optional[SpeakerRole]:
        if not speaker_hint:
            return None
        try:
            return SpeakerRole(str(getattr(speaker_hint, "value", speaker_hint)).lower())
        except ValueError:
            raise BadRequestError(
                f"Unknown speaker hint: {speaker_hint}",
                context={"allowed": ", ".join(r.value for r in SpeakerRole)},
            )
