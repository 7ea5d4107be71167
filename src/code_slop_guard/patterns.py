# SPDX-License-Identifier: Apache-2.0
# Declarative detection rules for TypeScript/JavaScript (React, Next.js) sources.
#
# Each rule is a compiled regex plus metadata. New rules are new table rows,
# never new control flow; the context filter in ``core`` keys its carve-outs on
# rule ids.

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Iterator, Mapping, Sequence

from code_slop_guard.config import ConfigError, CustomRuleConfig, Severity, SEVERITIES, validate_custom_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionRule:
    id: str
    pattern: re.Pattern[str]
    message: str
    severity: Severity
    description: str
    fix: str | None = None
    learn_more: str | None = None
    skip_in_tests: bool = False
    skip_in_mocks: bool = False

    @property
    def tokens(self) -> frozenset[str]:
        return frozenset(self.id.lower().split("_"))

    @property
    def is_permissive_type(self) -> bool:
        """True for rules about the ``any`` escape hatch."""
        return "any" in self.tokens

    @property
    def is_unsafe_cast(self) -> bool:
        return "unsafe" in self.tokens

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "pattern": self.pattern.pattern,
            "message": self.message,
            "severity": self.severity,
            "description": self.description,
            "fix": self.fix,
            "learnMore": self.learn_more,
            "skipTests": self.skip_in_tests,
            "skipMocks": self.skip_in_mocks,
        }


def _rule(
    id: str,
    pattern: str,
    message: str,
    severity: Severity,
    description: str,
    *,
    flags: int = 0,
    **extra: Any,
) -> DetectionRule:
    return DetectionRule(id, re.compile(pattern, flags), message, severity, description, **extra)


_I = re.IGNORECASE

# ---------------------------------------------------------------------------
# Built-in rules (registry order is scan order)
# ---------------------------------------------------------------------------

BUILTIN_RULES: tuple[DetectionRule, ...] = (
    # Axis 1: information utility (noise)
    _rule(
        "redundant_self_explanatory_comment",
        r"const\s+(\w+)\s*=\s*\1\s*;?\s*//.?(?:set|assign|store)\s+\1\b",
        "Redundant comment explaining variable assignment to itself - peak AI slop",
        "high",
        "e.g., const count = count; // assign count to count",
        flags=_I,
    ),
    _rule(
        "excessive_boilerplate_comment",
        r"//\s*This (?:function|component|hook|variable|method).* (?:does|is|handles?|returns?|takes?|processes?)",
        "Boilerplate comment that restates the obvious - adds zero insight",
        "medium",
        "AI-generated comments that explain the obvious",
        flags=_I,
    ),
    _rule(
        "debug_log_with_comment",
        r"console\.(log|debug|info)\([^)]+\)\s*;\s*//\s*(?:debug|temp|test|check|log|print)",
        "Debug log with apologetic comment - AI trying to justify its existence",
        "medium",
        "Debugging code that should not be in production",
        flags=_I,
        skip_in_tests=True,
    ),
    # Axis 2: information quality (hallucinations)
    _rule(
        "hallucinated_react_import",
        r"import\s*\{[^}]*\b(?:useRouter|useParams|useSearchParams|Link|Image|Script)\b[^}]*\}\s*from\s*['\"]react['\"]",
        "Hallucinated React import - these do NOT exist in 'react'",
        "critical",
        "React-specific APIs are NOT in the react package",
        flags=_I,
        fix="Import from correct package: 'next/router', 'next/link', 'next/image', 'next/script'",
        learn_more="https://nextjs.org/docs/api-reference/next/router",
    ),
    _rule(
        "hallucinated_next_import",
        r"import\s*\{[^}]*\b(?:getServerSideProps|getStaticProps|getStaticPaths)\b[^}]*\}\s*from\s*['\"]react['\"]",
        "Next.js API imported from 'react' - 100% AI hallucination",
        "critical",
        "Next.js APIs are NOT in the react package",
        flags=_I,
        fix="These are page-level exports, not imports. Export them from your page file directly.",
        learn_more="https://nextjs.org/docs/basic-features/data-fetching",
    ),
    _rule(
        "todo_implementation_placeholder",
        r"//\s*(?:TODO|FIXME|HACK).*(?:implement|add|finish|complete|your code|logic|here)",
        "AI gave up and wrote a TODO instead of thinking",
        "high",
        "Placeholder comments where AI failed to implement",
        flags=_I,
        fix="Actually implement the logic, or if blocked, document WHY and create a tracking issue",
        learn_more="https://refactoring.guru/smells/comments",
    ),
    _rule(
        "assumption_comment",
        r"\b(assuming|assumes?|presumably|apparently|it seems|seems like)\b.{0,50}\b(that|this|the|it)\b",
        "AI making unverified assumptions - dangerous in production",
        "high",
        "Comments indicating unverified assumptions",
        flags=_I,
    ),
    # Axis 3: style / taste
    _rule(
        "overconfident_comment",
        r"//\s*(obviously|clearly|simply|just|easy|trivial|basically|literally|of course|naturally|certainly|surely)\b",
        "Overconfident comment - AI pretending it understands when it doesn't",
        "high",
        "Overconfident language indicating false certainty",
        flags=_I,
    ),
    _rule(
        "hedging_uncertainty_comment",
        r"//.*\b(should work|hopefully|probably|might work|try this|i think|seems to|attempting to|looks like|appears to)\b",
        "AI hedging its bets - classic sign of low-confidence generation",
        "high",
        "Uncertain language masked as implementation",
        flags=_I,
    ),
    _rule(
        "unnecessary_iife_wrapper",
        r"\bconst\s+\w+\s*=\s*\(\s*async\s*\(\)\s*=>\s*\{[\s\S]*?\}\)\(\)",
        "Unnecessary IIFE wrapper - AI over-engineering a simple async call",
        "medium",
        "Unnecessarily complex function wrapping",
    ),
    _rule(
        "vibe_coded_ternary_abuse",
        r"\?\s*['\"][^'\"]+['\"]\s*:\s*['\"][^'\"]+['\"]\s*\?\s*['\"][^'\"]+['\"]\s*:\s*['\"][^'\"]+['\"]",
        "Nested ternary hell - AI trying to look clever",
        "medium",
        "Overly complex nested ternary operations",
        fix="Extract to a switch statement or a lookup object for better readability",
    ),
    _rule(
        "magic_css_value",
        r"\b(\d{3,4}px|#\w{6}|rgba?\([^)]+\)|hsl\(\d+)",
        "Magic CSS value - extract to design token or const",
        "low",
        "Hardcoded CSS values that should be constants",
        fix="Move to CSS variables, theme tokens, or a constants file",
    ),
    # React hooks
    _rule(
        "useEffect_derived_state",
        r"useEffect\s*\(\s*\(\s*\)\s*=>\s*\{[^}]*set[A-Z]\w*\([^)]*\)",
        "useEffect setting state from props/other state - consider useMemo or compute in render",
        "high",
        "Using useEffect to derive state is often unnecessary",
        fix="If state depends only on props/other state, compute directly or use useMemo instead",
        learn_more="https://react.dev/learn/you-might-not-need-an-effect",
    ),
    _rule(
        "useEffect_empty_deps_suspicious",
        r"useEffect\s*\([^,]+,\s*\[\s*\]\s*\)",
        "useEffect with empty deps - verify this truly should only run on mount",
        "medium",
        "Empty dependency arrays are often a sign of missing dependencies",
        fix="Review if effect depends on any props/state. Use eslint-plugin-react-hooks to catch issues.",
        learn_more="https://react.dev/reference/react/useEffect#specifying-reactive-dependencies",
    ),
    _rule(
        "setState_in_loop",
        r"(?:for|while|forEach|map)\s*\([^)]+\)[^{]*\{[^}]*set[A-Z]\w*\(",
        "setState inside a loop - may cause multiple re-renders",
        "high",
        "Calling setState in a loop triggers multiple re-renders",
        fix="Batch updates by computing the final state outside the loop, then call setState once",
        learn_more="https://react.dev/learn/queueing-a-series-of-state-updates",
    ),
    _rule(
        "useCallback_no_deps",
        r"useCallback\s*\([^,]+,\s*\[\s*\]\s*\)",
        "useCallback with empty deps - the callback never updates",
        "medium",
        "Empty deps means the callback is stale and may use outdated values",
        fix="Add all values used inside the callback to the dependency array",
        learn_more="https://react.dev/reference/react/useCallback",
    ),
    # Type system escape hatches
    _rule(
        "any_type_usage",
        r":\s*any\b",
        "Found 'any' type usage. Replace with specific type or unknown.",
        "high",
        "Detects : any type annotations",
        fix="Replace with 'unknown' and use type guards to narrow, or define a proper interface",
        learn_more="https://www.typescriptlang.org/docs/handbook/2/narrowing.html",
    ),
    _rule(
        "array_any_type",
        r"Array\s*<\s*any\s*>",
        "Found Array<any> type usage. Replace with specific type or unknown[].",
        "high",
        "Detects Array<any> patterns",
    ),
    _rule(
        "generic_any_type",
        r"<\s*any\s*>",
        "Found generic <any> type usage. Replace with specific type or unknown.",
        "high",
        "Detects generic type parameters with any",
    ),
    _rule(
        "function_param_any_type",
        r"\(\s*.*\s*:\s*any\s*\)",
        "Found function parameter with 'any' type. Replace with specific type or unknown.",
        "high",
        "Detects function parameters with any type",
    ),
    _rule(
        "unsafe_type_assertion",
        r"\s+as\s+any\b",
        "Found unsafe 'as any' type assertion. Use proper type guards or validation.",
        "high",
        "Detects unsafe as any assertions",
        fix="Use 'as unknown as TargetType' or implement a runtime type guard with validation",
        learn_more="https://www.typescriptlang.org/docs/handbook/2/narrowing.html#using-type-predicates",
    ),
    _rule(
        "unsafe_double_type_assertion",
        r"as\s+\w+\s+as\s+\w+",
        "Found unsafe double type assertion. Consider using 'as unknown as Type' for safe conversions.",
        "high",
        "Detects unsafe double type assertions",
    ),
    _rule(
        "index_signature_any",
        r"\[\s*[\"'`]?(\w+)[\"'`]?[^\]]*\]\s*:\s*any",
        "Found index signature with 'any' type. Replace with specific type or unknown.",
        "high",
        "Detects index signatures with any type",
    ),
    # Runtime hygiene
    _rule(
        "missing_error_handling",
        r"(fetch|axios|http)\s*\(",
        "Potential missing error handling for promise. Consider adding try/catch or .catch().",
        "medium",
        "Detects calls that might need error handling",
        fix="Wrap in try/catch or add .catch() handler. Consider React Query or SWR for data fetching.",
        learn_more="https://developer.mozilla.org/en-US/docs/Web/JavaScript/Reference/Statements/try...catch",
        skip_in_tests=True,
    ),
    _rule(
        "production_console_log",
        r"console\.(log|warn|error|info|debug|trace)\(",
        "Found console logging in production code. Remove before deployment.",
        "medium",
        "Detects console logs in production code",
        skip_in_tests=True,
        skip_in_mocks=True,
    ),
    _rule(
        "todo_comment",
        r"(TODO|FIXME|HACK|XXX|BUG)\b",
        "Found TODO/FIXME/HACK comment indicating incomplete implementation.",
        "medium",
        "Detects incomplete implementation markers",
    ),
    _rule(
        "unsafe_member_access",
        r"\.\s*any\s*\[",
        "Found potentially unsafe member access on 'any' type.",
        "high",
        "Detects unsafe member access patterns",
    ),
)


@dataclass(frozen=True)
class RuleSet:
    """Ordered, read-only collection of active rules."""

    rules: tuple[DetectionRule, ...]

    def __iter__(self) -> Iterator[DetectionRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.id == rule_id for rule in self.rules)

    def get(self, rule_id: str) -> DetectionRule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    @property
    def ids(self) -> list[str]:
        return [rule.id for rule in self.rules]


DEFAULT_RULE_SET = RuleSet(BUILTIN_RULES)


def _from_config(item: CustomRuleConfig) -> DetectionRule:
    return DetectionRule(
        id=item.id,
        pattern=re.compile(item.pattern, re.IGNORECASE),
        message=item.message,
        severity=item.severity,
        description=item.description or item.message,
        fix=item.fix,
        learn_more=item.learn_more,
    )


def build_rule_set(
    custom_rules: Sequence[CustomRuleConfig | Mapping[str, Any]] | None = None,
    severity_overrides: Mapping[str, str] | None = None,
) -> RuleSet:
    """Built-in rules, then custom rules in declaration order, then severity overrides.

    Raises:
        ConfigError: if any custom rule is malformed or reuses a rule id, or an
            override names an unknown severity. Nothing is built in that case.
    """
    custom = validate_custom_rules(custom_rules or [])
    seen = {rule.id for rule in BUILTIN_RULES}
    for index, item in enumerate(custom):
        if item.id in seen:
            raise ConfigError(f"customPatterns[{index}] (id={item.id!r}).id: duplicates an existing rule id")
        seen.add(item.id)

    overrides = dict(severity_overrides or {})
    for rule_id, severity in overrides.items():
        if severity not in SEVERITIES:
            raise ConfigError(f"severityOverrides.{rule_id} must be one of: {', '.join(SEVERITIES)}")

    rules = list(BUILTIN_RULES) + [_from_config(item) for item in custom]
    if custom:
        logger.debug(f"Added {len(custom)} custom rule(s): {[item.id for item in custom]}")

    known = {rule.id for rule in rules}
    for rule_id in overrides:
        if rule_id not in known:
            logger.debug(f"Ignoring severity override for unknown rule {rule_id!r}")

    rules = [replace(rule, severity=overrides[rule.id]) if rule.id in overrides else rule for rule in rules]
    return RuleSet(tuple(rules))
