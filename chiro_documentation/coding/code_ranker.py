"""
Code Suggestion Ranker - Billing Codes with Confidence Blending and Risk Scoring

This module requests ICD-10 and CPT candidates from the coding capability and
turns each one into a persisted, ranked CodeSuggestion:

    candidates ──► blend confidence with provider history
               ──► specificity check (ICD-10)
               ──► coding-risk heuristic
               ──► modifiers (CPT)
               ──► supporting text
               ──► rank = position in the model's list (1-based, per type)

After the batch is stored, the provider decides each suggestion once:

    PENDING ──► ACCEPTED | REJECTED | MODIFIED

Re-running `suggest` appends a new batch; earlier batches are not touched.

Pipeline Position:
    DraftNoteEngine → [CodeSuggestionRanker] → ComplianceEngine
                       ^^^^^^^^^^^^^^^^^^^^
                       You are here

Author: Shubham Singh
Date: October 2026
"""

from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger

from chiro_documentation.clients.capabilities import CodingCapability
from chiro_documentation.coding.risk import (
    CodingTables,
    assess_coding_risk,
    blend_confidence,
    build_acceptance_history,
    check_code_specificity,
    extract_relevant_text,
    suggest_modifiers,
)
from chiro_documentation.core.enums import (
    AuditRiskLevel,
    CodeFlagType,
    CodeType,
    EncounterType,
    SuggestionStatus,
)
from chiro_documentation.core.exceptions import BadRequestError, NotFoundError
from chiro_documentation.core.models import (
    AcceptanceStats,
    CodeCandidate,
    CodeStats,
    CodeSuggestion,
)
from chiro_documentation.repository.record_store import DocumentationStore

CODE_TYPE_ORDER = {CodeType.ICD10: 0, CodeType.CPT: 1, CodeType.MODIFIER: 2}


class CodeSuggestionRanker:
    """
    Produces and tracks billing-code suggestions for an encounter.

    What it does:
        Runs the coding capability once per `suggest` call, scores every
        candidate with the deterministic heuristics in `coding.risk`, and
        stores the batch. Provider decisions feed the acceptance history
        that later batches blend into their confidences.

    History keys:
        "{code_type}:{code}", e.g. "CPT:98941" or "ICD10:M54.50".

    Example:
        >>> ranker = CodeSuggestionRanker(store, ai_service)
        >>> batch = ranker.suggest("enc-1", soap_text, EncounterType.FOLLOW_UP)
        >>> ranker.accept(batch[0].id)
    """

    def __init__(
        self,
        store: DocumentationStore,
        coder: CodingCapability,
        tables: Optional[CodingTables] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._coder = coder
        self._tables = tables or CodingTables.default()
        self._clock = clock
        logger.info("CodeSuggestionRanker initialized")

    @property
    def _provider_name(self) -> str:
        return getattr(self._coder, "provider_name", type(self._coder).__name__)

    # =========================================================================
    # STAGE 1: SUGGESTION RUN
    # =========================================================================

    def suggest(
        self,
        encounter_id: str,
        soap_text: str,
        encounter_type: Union[EncounterType, str] = EncounterType.FOLLOW_UP,
        historical_acceptance: Optional[Mapping[str, AcceptanceStats]] = None,
        provider_id: Optional[str] = None,
        optimize_specificity: bool = True,
        include_modifiers: bool = True,
        learn_from_provider: bool = True,
    ) -> List[CodeSuggestion]:
        """
        Request, score, rank and store a batch of code suggestions.

        Args:
            soap_text: Note text the codes must be supported by
            historical_acceptance: Explicit history keyed "{type}:{code}";
                when omitted and `learn_from_provider` is set, it is built
                from the provider's earlier decisions
            optimize_specificity: Run the ICD-10 specificity check
            include_modifiers: Suggest CPT modifiers

        Returns:
            ICD-10 suggestions followed by CPT suggestions, each in model order

        Raises:
            BadRequestError: If there is no SOAP text
            AIServiceError: If the coding capability fails
        """
        if not soap_text or not soap_text.strip():
            raise BadRequestError(
                "No SOAP note found for this encounter. Generate or create a SOAP note first.",
                context={"encounter_id": encounter_id},
            )

        history: Mapping[str, AcceptanceStats] = historical_acceptance or {}
        if historical_acceptance is None and learn_from_provider and provider_id:
            history = build_acceptance_history(
                self._store.list_suggestions(provider_id=provider_id)
            )

        candidates = self._coder.suggest_codes(soap_text, EncounterType.coerce(encounter_type))

        suggestions: List[CodeSuggestion] = []
        for code_type, batch in ((CodeType.ICD10, candidates.icd10), (CodeType.CPT, candidates.cpt)):
            for rank, candidate in enumerate(batch, start=1):
                suggestions.append(
                    self._score(
                        candidate,
                        code_type,
                        soap_text,
                        history,
                        encounter_id=encounter_id,
                        provider_id=provider_id,
                        rank=rank,
                        optimize_specificity=optimize_specificity,
                        include_modifiers=include_modifiers,
                    )
                )
        self._store.add_suggestions(suggestions)

        flagged = [s.code for s in suggestions if s.upcoding_risk or s.downcoding_risk]
        if flagged:
            logger.warning(f"Coding risk flagged | Encounter: {encounter_id} | Codes: {flagged}")
        logger.info(
            f"Code suggestions created | Encounter: {encounter_id} | "
            f"ICD-10: {len(candidates.icd10)} | CPT: {len(candidates.cpt)} | "
            f"History entries: {len(history)}"
        )
        return suggestions

    def _score(
        self,
        candidate: CodeCandidate,
        code_type: CodeType,
        soap_text: str,
        history: Mapping[str, AcceptanceStats],
        encounter_id: str,
        provider_id: Optional[str],
        rank: int,
        optimize_specificity: bool,
        include_modifiers: bool,
    ) -> CodeSuggestion:
        specificity = (
            check_code_specificity(candidate.code, code_type, self._tables)
            if optimize_specificity
            else None
        )
        risk = assess_coding_risk(
            candidate.code, soap_text, code_type, candidate.description, self._tables
        )
        modifiers = (
            suggest_modifiers(candidate.code, soap_text, self._tables)
            if include_modifiers and code_type == CodeType.CPT
            else []
        )

        return CodeSuggestion(
            encounter_id=encounter_id,
            code_type=code_type,
            code=candidate.code,
            description=candidate.description,
            provider_id=provider_id,
            reasoning=candidate.rationale,
            confidence=blend_confidence(
                candidate.confidence, history.get(f"{code_type.value}:{candidate.code}")
            ),
            rank=rank,
            is_chiro_common=candidate.is_chiro_common,
            specificity_ok=specificity is None,
            specificity_issue=specificity.issue if specificity else None,
            alternatives=list(specificity.alternatives) if specificity else [],
            modifiers=modifiers,
            upcoding_risk=risk.upcoding_risk,
            downcoding_risk=risk.downcoding_risk,
            audit_risk=risk.audit_risk,
            relevant_text=extract_relevant_text(soap_text, candidate.code, self._tables),
            ai_model_used=self._provider_name,
            created_at=self._clock(),
        )

    # =========================================================================
    # STAGE 2: PROVIDER DECISIONS
    # =========================================================================

    def accept(self, suggestion_id: str) -> CodeSuggestion:
        suggestion = self._require_pending(suggestion_id)
        return self._decide(suggestion, SuggestionStatus.ACCEPTED)

    def reject(self, suggestion_id: str, reason: Optional[str] = None) -> CodeSuggestion:
        suggestion = self._require_pending(suggestion_id)
        suggestion.modify_reason = reason
        return self._decide(suggestion, SuggestionStatus.REJECTED)

    def modify(
        self, suggestion_id: str, modified_code: str, reason: Optional[str] = None
    ) -> CodeSuggestion:
        """Accept with a different code. Allowed while PENDING or already accepted."""
        suggestion = self._get(suggestion_id)
        if suggestion.status == SuggestionStatus.REJECTED:
            raise BadRequestError(
                "Rejected code suggestion cannot be modified",
                context={"suggestion_id": suggestion_id},
            )
        if not modified_code or not modified_code.strip():
            raise BadRequestError("Modified code is required", context={"suggestion_id": suggestion_id})

        suggestion.modified_code = modified_code.strip().upper()
        suggestion.modify_reason = reason
        return self._decide(suggestion, SuggestionStatus.MODIFIED)

    def accept_all(
        self, encounter_id: str, code_type: Optional[Union[CodeType, str]] = None
    ) -> int:
        """Accept every PENDING suggestion for the encounter; returns the count."""
        wanted = CodeType(code_type) if code_type else None
        pending = [
            s
            for s in self._store.list_suggestions(encounter_id=encounter_id)
            if s.status == SuggestionStatus.PENDING and (wanted is None or s.code_type == wanted)
        ]
        decided_at = self._clock()
        for suggestion in pending:
            suggestion.status = SuggestionStatus.ACCEPTED
            suggestion.decided_at = decided_at
            self._store.save_suggestion(suggestion)

        logger.info(
            f"Code suggestions accepted in bulk | Encounter: {encounter_id} | "
            f"Type: {wanted.value if wanted else 'all'} | Count: {len(pending)}"
        )
        return len(pending)

    def flag(
        self,
        suggestion_id: str,
        flag_type: Union[CodeFlagType, str],
        note: Optional[str] = None,
    ) -> CodeSuggestion:
        """
        Record a reviewer concern on a suggestion.

            upcoding   → upcoding risk, audit risk high
            downcoding → downcoding risk, audit risk medium
            audit      → audit risk high
        """
        flag_type = CodeFlagType(flag_type)
        suggestion = self._get(suggestion_id)

        if flag_type == CodeFlagType.UPCODING:
            suggestion.upcoding_risk = True
            suggestion.audit_risk = AuditRiskLevel.HIGH
        elif flag_type == CodeFlagType.DOWNCODING:
            suggestion.downcoding_risk = True
            suggestion.audit_risk = AuditRiskLevel.MEDIUM
        else:
            suggestion.audit_risk = AuditRiskLevel.HIGH

        suggestion.flags.append(
            {"type": flag_type.value, "note": note, "flagged_at": self._clock().isoformat()}
        )
        self._store.save_suggestion(suggestion)

        logger.warning(
            f"Code suggestion flagged | Suggestion: {suggestion_id} | "
            f"Code: {suggestion.code} | Flag: {flag_type.value}"
        )
        return suggestion

    # =========================================================================
    # STAGE 3: QUERIES
    # =========================================================================

    def get_suggestion(self, suggestion_id: str) -> CodeSuggestion:
        return self._get(suggestion_id)

    def list_suggestions(
        self,
        encounter_id: str,
        status: Optional[Union[SuggestionStatus, str]] = None,
        code_type: Optional[Union[CodeType, str]] = None,
    ) -> List[CodeSuggestion]:
        wanted_status = SuggestionStatus(status) if status else None
        wanted_type = CodeType(code_type) if code_type else None
        suggestions = [
            s
            for s in self._store.list_suggestions(encounter_id=encounter_id)
            if (wanted_status is None or s.status == wanted_status)
            and (wanted_type is None or s.code_type == wanted_type)
        ]
        return sorted(suggestions, key=lambda s: (CODE_TYPE_ORDER[s.code_type], s.rank))

    def acceptance_history(self, provider_id: str) -> Dict[str, AcceptanceStats]:
        return build_acceptance_history(self._store.list_suggestions(provider_id=provider_id))

    def statistics(self) -> CodeStats:
        suggestions = self._store.list_suggestions()
        total = len(suggestions)
        by_status = Counter(s.status for s in suggestions)
        by_type = Counter(s.code_type for s in suggestions)
        accepted = by_status[SuggestionStatus.ACCEPTED]
        modified = by_status[SuggestionStatus.MODIFIED]

        return CodeStats(
            total_suggestions=total,
            accepted_count=accepted,
            rejected_count=by_status[SuggestionStatus.REJECTED],
            modified_count=modified,
            acceptance_rate=round((accepted + modified) / total * 100, 1) if total else 0.0,
            average_confidence=sum(s.confidence for s in suggestions) / total if total else 0.0,
            icd10_count=by_type[CodeType.ICD10],
            cpt_count=by_type[CodeType.CPT],
            flagged_count=sum(
                1
                for s in suggestions
                if s.upcoding_risk or s.downcoding_risk or s.audit_risk == AuditRiskLevel.HIGH
            ),
        )

    def top_codes(
        self,
        code_type: Union[CodeType, str],
        provider_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[Tuple[str, str, int]]:
        """Most often kept codes as (code, description, usage_count)."""
        wanted = CodeType(code_type)
        kept = [
            s
            for s in self._store.list_suggestions(provider_id=provider_id)
            if s.code_type == wanted and s.is_accepted
        ]
        counts = Counter((s.code, s.description) for s in kept)
        return [(code, description, n) for (code, description), n in counts.most_common(limit)]

    # =========================================================================
    # STAGE 4: HELPERS
    # =========================================================================

    def _get(self, suggestion_id: str) -> CodeSuggestion:
        suggestion = self._store.get_suggestion(suggestion_id)
        if suggestion is None:
            raise NotFoundError("suggestion", suggestion_id, "Code suggestion not found")
        return suggestion

    def _require_pending(self, suggestion_id: str) -> CodeSuggestion:
        suggestion = self._get(suggestion_id)
        if suggestion.status != SuggestionStatus.PENDING:
            raise BadRequestError(
                "Code suggestion has already been decided",
                context={"suggestion_id": suggestion_id, "status": suggestion.status.value},
            )
        return suggestion

    def _decide(self, suggestion: CodeSuggestion, status: SuggestionStatus) -> CodeSuggestion:
        suggestion.status = status
        suggestion.decided_at = self._clock()
        self._store.save_suggestion(suggestion)
        logger.info(
            f"Code suggestion decided | Suggestion: {suggestion.id} | "
            f"Code: {suggestion.code} -> {suggestion.final_code} | Status: {status.value}"
        )
        return suggestion
