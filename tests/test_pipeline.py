import base64
import io
import sys

import pytest
from loguru import logger

from chiro_documentation import DocumentationPipeline
from chiro_documentation.clients.mock_service import MockDocumentationService
from chiro_documentation.core.config import EngineConfiguration
from chiro_documentation.core.enums import AuditRiskLevel, IssueSeverity
from chiro_documentation.core.exceptions import (
    BadRequestError,
    ConfigurationError,
    NotFoundError,
)
from chiro_documentation.core.models import SoapContent
from chiro_documentation.pipeline import configure_logging

from conftest import FakeAIService, candidate

AUDIO = base64.b64encode(b"chunk").decode("ascii")

TWO_REGION_NOTE = SoapContent(
    subjective="Patient reports stiffness 6/10 since last visit.",
    objective="Cervical and lumbar restrictions on palpation.",
    assessment="Segmental dysfunction, improving.",
    plan="Adjustment performed. Return in one week.",
)


def record(pipeline, encounter_id="enc-1", chunks=2):
    session = pipeline.transcription.start(encounter_id)
    for index in range(chunks):
        pipeline.transcription.ingest_chunk(session.id, AUDIO, index)
    return pipeline.transcription.stop(session.id)


def test_mock_backend_end_to_end(config):
    pipeline = DocumentationPipeline(config)
    assert isinstance(pipeline.ai_service, MockDocumentationService)

    session = record(pipeline, "enc-demo")
    assert session.segment_count == 2
    assert session.accuracy == pytest.approx(0.92)

    draft = pipeline.generate_draft_from_session(session.id, provider_id="dr-1")
    assert draft.transcription_id == session.id
    assert draft.content.subjective.startswith("[DEMO] ")

    pipeline.drafts.approve(draft.id, reviewer_id="dr-1")
    note = pipeline.drafts.apply(draft.id)
    assert pipeline.store.get_clinical_note("enc-demo") == note

    suggestions = pipeline.codes.suggest("enc-demo", note.content.to_text(), provider_id="dr-1")
    assert {s.code for s in suggestions} == {"M54.50", "99213", "98941"}
    assert pipeline.codes.accept_all("enc-demo") == len(suggestions)

    report = pipeline.compliance.check("enc-demo", pre_billing_gate=True)
    gate = pipeline.compliance.pre_billing_gate("enc-demo")
    assert report.encounter_id == "enc-demo"
    assert gate.unresolved_count == len(report.issues)
    assert "Insufficient Documentation for 98941" not in [i.title for i in report.issues]


def test_upcoded_cmt_blocks_billing(config):
    ai = FakeAIService(
        transcripts=[("Patient reports stiffness in the neck and low back.", 0.9)],
        soap=TWO_REGION_NOTE,
        cpt=[candidate("98942")],
    )
    pipeline = DocumentationPipeline(config, ai_service=ai)

    session = record(pipeline, chunks=1)
    draft = pipeline.generate_draft_from_session(session.id, encounter_type="FOLLOW_UP")
    pipeline.drafts.approve(draft.id)
    note = pipeline.drafts.apply(draft.id)

    (suggestion,) = pipeline.codes.suggest("enc-1", note.content.to_text())
    assert suggestion.upcoding_risk
    assert suggestion.audit_risk == AuditRiskLevel.HIGH
    pipeline.codes.accept(suggestion.id)

    report = pipeline.compliance.check("enc-1", pre_billing_gate=True)
    cmt = [i for i in report.issues if i.title == "Insufficient Documentation for 98942"]
    assert len(cmt) == 1
    assert cmt[0].severity == IssueSeverity.ERROR
    assert cmt[0].description.endswith("Only 2 regions documented.")

    gate = pipeline.compliance.pre_billing_gate("enc-1")
    assert not gate.can_proceed
    assert gate.requires_review

    pipeline.compliance.resolve(cmt[0].id, "Documented thoracic findings")
    assert pipeline.compliance.pre_billing_gate("enc-1").error_count == gate.error_count - 1


def test_draft_from_session_requires_completed_transcript(config, fake_ai):
    pipeline = DocumentationPipeline(config, ai_service=fake_ai)

    with pytest.raises(NotFoundError):
        pipeline.generate_draft_from_session("missing")

    active = pipeline.transcription.start("enc-1")
    with pytest.raises(BadRequestError):
        pipeline.generate_draft_from_session(active.id)

    empty = pipeline.transcription.stop(active.id)
    with pytest.raises(BadRequestError):
        pipeline.generate_draft_from_session(empty.id)
    assert fake_ai.soap_contexts == []


def test_engines_share_one_store(config, fake_ai):
    pipeline = DocumentationPipeline(config, ai_service=fake_ai)
    session = pipeline.transcription.start("enc-1")

    assert pipeline.store.get_session(session.id) is not None
    assert pipeline.config is config


@pytest.mark.parametrize(
    "overrides",
    [
        {"ai_provider": "openai"},
        {"ai_provider": "gemini"},
        {"ai_provider": "anthropic"},
    ],
)
def test_backend_selection_errors(overrides):
    with pytest.raises(ConfigurationError):
        DocumentationPipeline(EngineConfiguration(**overrides))


def test_configure_logging_sets_level(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stderr", stream)

    configure_logging("warning")
    logger.info("routine message")
    logger.warning("billing blocked")

    output = stream.getvalue()
    assert "billing blocked" in output
    assert "routine message" not in output
