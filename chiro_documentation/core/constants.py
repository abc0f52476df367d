"""
Constants for Clinical Documentation Automation

This module holds the static lookup tables the heuristics and rule engines
run on. Every table is immutable (tuples and read-only mappings); components
receive them bundled into frozen rule objects so tests can substitute
smaller tables.

Constant Categories:
    Transcription  → speaker indicator phrases, medical vocabulary
    Coding         → specificity table, code keywords, modifier code sets
    Compliance     → required/critical elements, element variations,
                     necessity and goal keywords, payer requirements,
                     audit-risk weights, suggestion/example texts, tips
    Learning       → closing-phrase patterns, abbreviation pairs

Author: Shubham Singh
Date: October 2026
"""

from types import MappingProxyType
from typing import Mapping, Tuple


# =============================================================================
# STAGE 1: TRANSCRIPTION VOCABULARY
# =============================================================================
# Ordered phrase lists; provider indicators are checked before patient ones.

PROVIDER_SPEAKER_PATTERNS: Tuple[str, ...] = (
    "i recommend",
    "my assessment",
    "let me examine",
    "i'll adjust",
    "the diagnosis",
    "your x-ray shows",
    "based on my examination",
    "i'm going to",
    "treatment plan",
)

PATIENT_SPEAKER_PATTERNS: Tuple[str, ...] = (
    "it hurts",
    "i feel",
    "my pain",
    "i've been having",
    "it started",
    "when i",
    "i can't",
    "i noticed",
    "my symptoms",
)

MEDICAL_TERMS: Tuple[str, ...] = (
    "subluxation",
    "vertebra",
    "cervical",
    "thoracic",
    "lumbar",
    "sacral",
    "sciatica",
    "herniated",
    "disc",
    "spinal",
    "adjustment",
    "manipulation",
    "radiculopathy",
    "stenosis",
    "scoliosis",
    "kyphosis",
    "lordosis",
    "facet",
    "palpation",
    "range of motion",
    "rom",
    "flexion",
    "extension",
    "rotation",
    "lateral bend",
    "paresthesia",
    "numbness",
    "tingling",
    "weakness",
    "myalgia",
    "arthralgia",
    "inflammation",
    "edema",
    "spasm",
    "trigger point",
    "referred pain",
    "acute",
    "chronic",
    "bilateral",
    "unilateral",
)

DEFAULT_SPEAKER_LABELS: Mapping[str, str] = MappingProxyType(
    {"SPEAKER_1": "provider", "SPEAKER_2": "patient"}
)


# =============================================================================
# STAGE 2: CODING TABLES
# =============================================================================

# -------------------------------------------------------------------------
# 2.1 Codes that need more specificity: code -> (issue, ((alt, desc, reason), ...))
# -------------------------------------------------------------------------
UNSPECIFIED_CODES: Mapping[str, Tuple[str, Tuple[Tuple[str, str, str], ...]]] = MappingProxyType(
    {
        "M54.50": (
            "Unspecified low back pain - consider more specific laterality",
            (
                ("M54.51", "Vertebrogenic low back pain", "If related to vertebral origin"),
                ("M54.59", "Other low back pain", "If not vertebrogenic"),
            ),
        ),
        "M54.5": (
            "Unspecified low back pain - needs 5th character",
            (
                ("M54.50", "Low back pain, unspecified", "Default unspecified"),
                ("M54.51", "Vertebrogenic low back pain", "If related to vertebral origin"),
            ),
        ),
        "M54.2": (
            "Cervicalgia - consider specific segment if known",
            (("M54.2", "Cervicalgia", "Appropriate if segment not specified"),),
        ),
        "M99.00": (
            "Segmental dysfunction - specify region",
            (
                ("M99.01", "Segmental dysfunction - cervical", "For cervical findings"),
                ("M99.02", "Segmental dysfunction - thoracic", "For thoracic findings"),
                ("M99.03", "Segmental dysfunction - lumbar", "For lumbar findings"),
                ("M99.04", "Segmental dysfunction - sacral", "For sacral findings"),
            ),
        ),
    }
)

# -------------------------------------------------------------------------
# 2.2 Keywords used to pull supporting text for a code
# -------------------------------------------------------------------------
CODE_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        # ICD-10
        "M54.50": ("low back", "lumbar", "lumbago"),
        "M54.51": ("vertebrogenic", "vertebral", "spinal"),
        "M54.2": ("neck", "cervical", "cervicalgia"),
        "M99.01": ("cervical", "c-spine", "subluxation"),
        "M99.02": ("thoracic", "t-spine"),
        "M99.03": ("lumbar", "l-spine"),
        "M99.04": ("sacral", "sacrum", "si joint"),
        "M62.830": ("spasm", "muscle spasm"),
        # CPT
        "98940": ("adjustment", "manipulation", "1-2 region"),
        "98941": ("adjustment", "manipulation", "3-4 region"),
        "98942": ("adjustment", "manipulation", "5+ region"),
        "97110": ("exercise", "therapeutic exercise"),
        "97140": ("manual therapy", "mobilization"),
        "99213": ("established", "follow-up"),
        "99203": ("new patient", "initial"),
    }
)

SPINAL_REGIONS: Tuple[str, ...] = ("cervical", "thoracic", "lumbar", "sacral", "pelvic")

# Chiropractic manipulative treatment codes and the region count each requires.
CMT_MINIMUM_REGIONS: Mapping[str, int] = MappingProxyType({"98940": 1, "98941": 3, "98942": 5})

BILATERAL_PROCEDURE_CODES: Tuple[str, ...] = ("97110", "97140", "97530", "97112")
THERAPY_CODE_PREFIXES: Tuple[str, ...] = ("971", "989")
HIGH_LEVEL_EM_CODES: Tuple[str, ...] = ("99214", "99215")

# E/M code whose short, non-complex documentation suggests upcoding.
HIGH_COMPLEXITY_EM_CODE = "99215"
COMPLEXITY_KEYWORDS: Tuple[str, ...] = ("complex", "multiple")
COMPLEX_DOCUMENTATION_MIN_CHARS = 500

# -------------------------------------------------------------------------
# 2.3 Modifier texts: modifier -> (description, reason)
# -------------------------------------------------------------------------
MODIFIER_TEXTS: Mapping[str, Tuple[str, str]] = MappingProxyType(
    {
        "50": ("Bilateral procedure", "Documentation indicates bilateral treatment"),
        "59": (
            "Distinct procedural service",
            "May need if performed during same session as another procedure",
        ),
        "GP": (
            "Services delivered under physical therapy plan",
            "Required for Medicare claims for therapy services",
        ),
        "AT": ("Acute treatment", "Required for Medicare chiropractic manipulation claims"),
    }
)
DISTINCT_SERVICE_KEYWORDS: Tuple[str, ...] = ("separate", "distinct")
SUPPORTING_TEXT_MAX_CHARS = 200


# =============================================================================
# STAGE 3: COMPLIANCE TABLES
# =============================================================================

# -------------------------------------------------------------------------
# 3.1 Required elements per encounter type and section
# -------------------------------------------------------------------------
REQUIRED_ELEMENTS: Mapping[str, Mapping[str, Tuple[str, ...]]] = MappingProxyType(
    {
        "INITIAL_EVAL": MappingProxyType(
            {
                "subjective": (
                    "chief complaint",
                    "history",
                    "duration",
                    "pain level",
                    "mechanism of injury",
                ),
                "objective": (
                    "examination findings",
                    "range of motion",
                    "palpation",
                    "neurological",
                    "orthopedic tests",
                ),
                "assessment": ("diagnosis", "prognosis", "medical necessity"),
                "plan": ("treatment plan", "frequency", "duration", "goals"),
            }
        ),
        "FOLLOW_UP": MappingProxyType(
            {
                "subjective": ("progress", "pain level", "functional status"),
                "objective": ("examination findings", "range of motion", "palpation"),
                "assessment": ("response to treatment", "modified assessment"),
                "plan": ("continued treatment", "modifications", "progress notes"),
            }
        ),
        "RE_EVALUATION": MappingProxyType(
            {
                "subjective": ("progress since initial", "current complaints", "functional changes"),
                "objective": ("comparative findings", "range of motion", "outcome measures"),
                "assessment": ("progress assessment", "continued necessity"),
                "plan": ("updated goals", "revised plan", "discharge criteria"),
            }
        ),
        "DISCHARGE": MappingProxyType(
            {
                "subjective": ("final status", "patient satisfaction", "residual symptoms"),
                "objective": ("final examination", "outcome measurements"),
                "assessment": ("treatment outcomes", "goal achievement"),
                "plan": (
                    "home exercise program",
                    "maintenance recommendations",
                    "follow-up",
                ),
            }
        ),
    }
)

# An element is critical when it contains one of these strings.
CRITICAL_ELEMENTS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "INITIAL_EVAL": ("chief complaint", "diagnosis", "treatment plan", "medical necessity"),
        "FOLLOW_UP": ("progress", "examination findings"),
        "RE_EVALUATION": ("progress assessment", "outcome measures", "continued necessity"),
        "DISCHARGE": ("treatment outcomes", "goal achievement"),
    }
)

# -------------------------------------------------------------------------
# 3.2 Textual variants accepted for an element
# -------------------------------------------------------------------------
ELEMENT_VARIATIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "chief complaint": ("chief complaint", "cc", "presenting complaint", "reason for visit"),
        "history": ("history", "hx", "hpi", "history of present illness"),
        "pain level": ("pain level", "pain scale", "/10", "vas", "nprs", "numeric pain"),
        "range of motion": (
            "range of motion",
            "rom",
            "motion",
            "flexion",
            "extension",
            "rotation",
        ),
        "palpation": ("palpation", "palpated", "tenderness", "spasm", "trigger point"),
        "diagnosis": ("diagnosis", "dx", "assessment", "impression"),
        "treatment plan": ("treatment plan", "plan", "recommendation", "treatment"),
        "goals": ("goal", "objective", "target", "outcome"),
        "subluxation": ("subluxation", "segmental dysfunction", "vertebral", "spinal"),
        "medical necessity": (
            "medical necessity",
            "medically necessary",
            "functional limitation",
        ),
        "mechanism of injury": (
            "mechanism of injury",
            "moi",
            "how injury occurred",
            "accident",
            "incident",
        ),
        "work status": (
            "work status",
            "work restrictions",
            "return to work",
            "rtw",
            "light duty",
        ),
        "outcome measures": (
            "outcome",
            "oswestry",
            "ndis",
            "sf-36",
            "dash",
            "functional assessment",
        ),
    }
)

# -------------------------------------------------------------------------
# 3.3 Medical necessity and goal keywords
# -------------------------------------------------------------------------
MEDICAL_NECESSITY_KEYWORDS: Tuple[str, ...] = (
    "medical necessity",
    "medically necessary",
    "functional limitation",
    "functional deficit",
    "daily activities",
    "activities of daily living",
    "adl",
    "work restriction",
    "disability",
    "impairment",
    "pain prevents",
    "unable to",
    "difficulty with",
    "limited in",
    "improvement expected",
    "prognosis",
)

GOAL_KEYWORDS: Tuple[str, ...] = (
    "goal",
    "objective",
    "target",
    "aim",
    "improve",
    "restore",
    "return to",
)

MEDICAL_NECESSITY_SUGGESTED_TEXT = (
    "Treatment is medically necessary to address functional limitations affecting "
    "activities of daily living. Patient demonstrates objective deficits that are "
    "expected to improve with continued care."
)

TREATMENT_GOALS_SUGGESTED_TEXT = (
    "Treatment Goals:\n"
    "- Reduce pain to functional level (≤3/10)\n"
    "- Restore normal range of motion\n"
    "- Return to full work/ADL activities"
)

# -------------------------------------------------------------------------
# 3.4 Payer requirements: payer -> (display name, ((element, section, description, critical), ...))
# -------------------------------------------------------------------------
PAYER_REQUIREMENTS: Mapping[str, Tuple[str, Tuple[Tuple[str, str, str, bool], ...]]] = (
    MappingProxyType(
        {
            "MEDICARE": (
                "Medicare",
                (
                    (
                        "subluxation",
                        "assessment",
                        "Must document subluxation with specific level",
                        True,
                    ),
                    (
                        "medical necessity",
                        "assessment",
                        "Must establish medical necessity for CMT",
                        True,
                    ),
                    (
                        "functional improvement",
                        "objective",
                        "Must document functional improvement or plateau",
                        True,
                    ),
                    (
                        "active treatment",
                        "plan",
                        "Must be active corrective treatment, not maintenance",
                        True,
                    ),
                    (
                        "x-ray findings",
                        "objective",
                        "X-ray findings must support subluxation (if applicable)",
                        False,
                    ),
                ),
            ),
            "BLUE_CROSS": (
                "Blue Cross Blue Shield",
                (
                    ("diagnosis codes", "assessment", "Must include specific ICD-10 codes", True),
                    ("treatment goals", "plan", "Must include measurable treatment goals", True),
                    (
                        "prior auth",
                        "plan",
                        "May require prior authorization after initial visits",
                        False,
                    ),
                ),
            ),
            "UNITED": (
                "United Healthcare",
                (
                    (
                        "outcome measures",
                        "objective",
                        "Must include standardized outcome measures",
                        True,
                    ),
                    ("visit limits", "plan", "Document awareness of visit limits", False),
                ),
            ),
            "AETNA": (
                "Aetna",
                (
                    ("treatment frequency", "plan", "Must justify treatment frequency", True),
                    ("duration", "plan", "Must specify expected treatment duration", True),
                ),
            ),
            "WORKERS_COMP": (
                "Workers Compensation",
                (
                    (
                        "mechanism of injury",
                        "subjective",
                        "Must document work-related mechanism of injury",
                        True,
                    ),
                    (
                        "work status",
                        "plan",
                        "Must document work restrictions and return to work plan",
                        True,
                    ),
                    (
                        "causation",
                        "assessment",
                        "Must establish causal relationship to work injury",
                        True,
                    ),
                    (
                        "maximum medical improvement",
                        "assessment",
                        "Must address MMI if applicable",
                        False,
                    ),
                ),
            ),
            "AUTO_PIP": (
                "Auto/PIP Insurance",
                (
                    (
                        "accident details",
                        "subjective",
                        "Must document accident mechanism and date",
                        True,
                    ),
                    (
                        "causation",
                        "assessment",
                        "Must establish injuries are accident-related",
                        True,
                    ),
                    (
                        "functional impact",
                        "objective",
                        "Must document functional limitations from accident",
                        True,
                    ),
                ),
            ),
        }
    )
)

# -------------------------------------------------------------------------
# 3.5 Audit-risk weights
# -------------------------------------------------------------------------
AUDIT_RISK_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        "missing_element_error": 10,
        "insufficient_medical_necessity": 20,
        "critical_payer_issue": 10,
        "cloned_note": 25,
        "high_code_complexity": 15,
    }
)

SEVERITY_SCORE_DEDUCTIONS: Mapping[str, int] = MappingProxyType(
    {"CRITICAL": 25, "ERROR": 15, "WARNING": 5, "INFO": 1}
)

# -------------------------------------------------------------------------
# 3.6 Guidance texts for missing elements
# -------------------------------------------------------------------------
ELEMENT_SUGGESTIONS: Mapping[str, str] = MappingProxyType(
    {
        "chief complaint": "Document the primary reason for the visit in the patient's own words.",
        "pain level": "Include numeric pain rating (0-10 scale) and location.",
        "range of motion": "Document specific ROM measurements with degrees and any limitations.",
        "diagnosis": "Include specific ICD-10 diagnoses that support medical necessity.",
        "treatment plan": "Detail specific treatments, frequency, and duration.",
        "goals": "Include measurable, time-bound treatment goals.",
        "medical necessity": "Document functional limitations and expected improvement.",
    }
)

ELEMENT_EXAMPLES: Mapping[str, str] = MappingProxyType(
    {
        "pain level": 'Example: "Pain: 7/10 at cervical spine, 5/10 at upper trapezius"',
        "range of motion": (
            'Example: "Cervical ROM: Flexion 35° (N: 45°), Extension 30° '
            '(N: 45°), Rotation R 60°/L 55° (N: 80°)"'
        ),
        "diagnosis": (
            'Example: "1. M54.2 - Cervicalgia 2. M99.01 - Segmental dysfunction, cervical"'
        ),
        "goals": (
            'Example: "Goals: 1) Reduce pain to 3/10 within 4 weeks '
            '2) Restore cervical ROM to 80% of normal"'
        ),
    }
)

# -------------------------------------------------------------------------
# 3.7 General documentation tips per encounter type
# -------------------------------------------------------------------------
COMPLIANCE_TIPS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "INITIAL_EVAL": (
            "Document complete history including onset, mechanism, duration, and "
            "aggravating/relieving factors",
            "Include comprehensive examination findings with objective measurements",
            "Establish medical necessity with clear functional limitations",
            "Set specific, measurable treatment goals",
            "Document diagnosis with appropriate ICD-10 specificity",
        ),
        "FOLLOW_UP": (
            "Compare findings to previous visit to show progress or lack thereof",
            "Update pain levels and functional status each visit",
            "Document patient response to treatment",
            "Modify treatment plan if not progressing as expected",
            "Include objective findings that support continued treatment",
        ),
        "RE_EVALUATION": (
            "Include outcome measure scores and compare to initial",
            "Justify continued treatment with objective findings",
            "Document progress toward goals and revise as needed",
            "Consider discharge criteria and timeline",
            "Address any new complaints or changes",
        ),
        "DISCHARGE": (
            "Document achievement of treatment goals",
            "Include final outcome measurements",
            "Provide home exercise program instructions",
            "Give maintenance care recommendations",
            "Document patient education provided",
        ),
    }
)


# =============================================================================
# STAGE 4: LEARNING TABLES
# =============================================================================

CLOSING_PHRASE_PATTERNS: Tuple[str, ...] = (
    r"will follow up",
    r"return in",
    r"patient tolerated",
    r"continue current",
    r"as needed",
    r"prn",
)

ABBREVIATION_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("c/o", "complains of"),
    ("pt", "patient"),
    ("hx", "history"),
    ("dx", "diagnosis"),
    ("tx", "treatment"),
    ("rx", "prescription"),
    ("rom", "range of motion"),
    ("wdwn", "well-developed, well-nourished"),
    ("wnl", "within normal limits"),
    ("nad", "no acute distress"),
)

# Upper bounds (exclusive) of total average word count per depth tier.
DEPTH_TIER_LIMITS: Tuple[Tuple[str, int], ...] = (
    ("brief", 100),
    ("standard", 200),
    ("detailed", 350),
)

PREFERENCE_EXAMPLE_WINDOW = 10
MIN_NOTES_FOR_STYLE_ANALYSIS = 3
