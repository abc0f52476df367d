"""
Compliance Layer - Documentation Audit and Billing Gate

This layer checks SOAP notes against documentation requirements before
they are billed.

Submodules:
    rules.py             → Rule tables and deterministic checks
    compliance_engine.py → Full check runs, billing gate, issue resolution

Dependency Rule:
    This layer depends on: core, clients (capabilities), coding (region counting), repository
    This layer is used by: pipeline

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.compliance.compliance_engine import ComplianceEngine
from chiro_documentation.compliance.rules import (
    ComplianceChecks,
    ComplianceRules,
    compliance_score,
    jaccard_similarity,
    map_ai_severity,
)

__all__ = [
    "ComplianceChecks",
    "ComplianceEngine",
    "ComplianceRules",
    "compliance_score",
    "jaccard_similarity",
    "map_ai_severity",
]
