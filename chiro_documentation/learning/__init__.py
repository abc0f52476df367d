"""
Learning Layer - Provider Preference Learning

Submodules:
    edit_analysis.py      → Observations from single edits and historical notes
    preference_learner.py → Upsert, feedback and queries over stored preferences

Dependency Rule:
    This layer depends on: core, repository
    This layer is used by: pipeline (draft engine reads the stored preferences)

Author: Shubham Singh
Date: October 2026
"""

from chiro_documentation.learning.edit_analysis import (
    LearningTables,
    analyze_edit,
    analyze_historical_style,
)
from chiro_documentation.learning.preference_learner import PreferenceLearner

__all__ = [
    "LearningTables",
    "PreferenceLearner",
    "analyze_edit",
    "analyze_historical_style",
]
