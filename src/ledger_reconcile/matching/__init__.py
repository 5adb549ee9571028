"""Matching, resolution and the reconciliation pipeline."""

from .choosers import (
    Chooser,
    SkipAmbiguousChooser,
    FirstCandidateChooser,
    ScriptedChooser,
)
from .engine import ReconciliationEngine, ReconciliationRun, chooser_for_policy
from .matcher import Matcher, description_similarity
from .resolver import Resolver

__all__ = [
    "Chooser",
    "SkipAmbiguousChooser",
    "FirstCandidateChooser",
    "ScriptedChooser",
    "ReconciliationEngine",
    "ReconciliationRun",
    "chooser_for_policy",
    "Matcher",
    "description_similarity",
    "Resolver",
]
