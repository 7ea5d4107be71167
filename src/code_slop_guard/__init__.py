# SPDX-License-Identifier: Apache-2.0
"""Code Slop Guard.

Flags patterns correlated with low-quality, machine-generated TypeScript and
JavaScript: ``any`` escape hatches, hallucinated React/Next.js imports,
unguarded fetch calls, hedging comments and more. Regex rules and line-based
heuristics only; no parser, no LLM calls.

Usage::

    from code_slop_guard import run_detection

    result = run_detection([("app/page.tsx", source)], quiet=False)
    result.score.total
    result.consolidated
"""

__version__ = "0.1.0"

from code_slop_guard.config import ConfigError, CustomRuleConfig, SlopGuardConfig, load_config, validate_config
from code_slop_guard.core import (
    ConsolidatedIssue,
    DetectionResult,
    Issue,
    ScoreBreakdown,
    SourceFile,
    consolidate,
    run_detection,
    scan_file,
    score_issues,
)
from code_slop_guard.patterns import BUILTIN_RULES, DetectionRule, RuleSet, build_rule_set

__all__ = [
    "BUILTIN_RULES",
    "ConfigError",
    "ConsolidatedIssue",
    "CustomRuleConfig",
    "DetectionResult",
    "DetectionRule",
    "Issue",
    "RuleSet",
    "ScoreBreakdown",
    "SlopGuardConfig",
    "SourceFile",
    "build_rule_set",
    "consolidate",
    "load_config",
    "run_detection",
    "scan_file",
    "score_issues",
    "validate_config",
]
