# SPDX-License-Identifier: Apache-2.0
# Detection engine for AI slop in TypeScript/JavaScript sources.
#
# Runs every active rule against every line, filters raw matches through a
# chain of context checks, adds nested-control findings, then consolidates
# and scores the result. Pure: callers hand in (path, content) pairs.

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, NamedTuple

from code_slop_guard import scope
from code_slop_guard.config import Severity, SlopGuardConfig, validate_config
from code_slop_guard.patterns import DEFAULT_RULE_SET, DetectionRule, RuleSet, build_rule_set

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


class SourceFile(NamedTuple):
    path: str
    content: str


@dataclass(frozen=True)
class RawMatch:
    file: str
    line: int
    column: int
    text: str
    rule_id: str


@dataclass(frozen=True)
class Issue:
    rule_id: str
    file: str
    line: int
    column: int
    code: str
    message: str
    severity: Severity

    @property
    def location(self) -> str:
        return f"{self.line}:{self.column}"

    def to_payload(self) -> dict[str, object]:
        return {
            "type": self.rule_id,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class ConsolidatedIssue:
    rule_id: str
    file: str
    code: str
    message: str
    severity: Severity
    locations: tuple[str, ...]

    @property
    def key(self) -> tuple[str, str, str, str, str]:
        return (self.rule_id, self.file, self.code, self.message, self.severity)

    @property
    def occurrences(self) -> int:
        return len(self.locations)

    def to_payload(self) -> dict[str, object]:
        return {
            "type": self.rule_id,
            "file": self.file,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "location": list(self.locations),
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    utility: int = 0
    quality: int = 0
    style: int = 0

    @property
    def total(self) -> int:
        return self.utility + self.quality + self.style

    def to_payload(self) -> dict[str, int]:
        return {
            "informationUtility": self.utility,
            "informationQuality": self.quality,
            "style": self.style,
            "total": self.total,
        }


@dataclass(frozen=True)
class DetectionResult:
    issues: list[Issue] = field(default_factory=list)
    consolidated: list[ConsolidatedIssue] = field(default_factory=list)
    score: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    files_scanned: int = 0

    def by_severity(self, severity: str) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity == severity]

    @property
    def has_critical(self) -> bool:
        return any(issue.severity == "critical" for issue in self.issues)


# ---------------------------------------------------------------------------
# Line scanner
# ---------------------------------------------------------------------------


def scan_line(line: str, rules: RuleSet | Iterable[DetectionRule], *, file: str = "", line_number: int = 1) -> list[RawMatch]:
    """All non-overlapping matches of every rule on one line, rule order then left to right."""
    matches: list[RawMatch] = []
    for rule in rules:
        # finditer keeps no state between calls, so one line never leaks into the next.
        for m in rule.pattern.finditer(line):
            if not m.group(0):
                continue
            matches.append(RawMatch(file, line_number, m.start() + 1, m.group(0), rule.id))
    return matches


# ---------------------------------------------------------------------------
# File categories
# ---------------------------------------------------------------------------

_TEST_MARKERS = ("__tests__", ".test.", ".spec.", "__mocks__", "test-")
_MOCK_MARKERS = ("__mocks__", "mock")
_TESTISH_MARKERS = ("test", "spec", "__tests__")


def _norm(path: str) -> str:
    return path.replace("\\", "/")


def is_test_file(path: str) -> bool:
    p = _norm(path)
    return any(marker in p for marker in _TEST_MARKERS)


def is_mock_file(path: str) -> bool:
    p = _norm(path)
    return any(marker in p for marker in _MOCK_MARKERS)


def is_declaration_file(path: str) -> bool:
    return _norm(path).endswith(".d.ts")


def _looks_like_test_path(path: str) -> bool:
    p = _norm(path)
    return any(marker in p for marker in _TESTISH_MARKERS)


# ---------------------------------------------------------------------------
# Context filter
# ---------------------------------------------------------------------------

_SAME_LINE_ACK = ("eslint-disable", "@ts-expect-error", "@ts-ignore")
_PREVIOUS_LINE_ACK = ("eslint-disable-next-line", "@ts-expect-error", "@ts-ignore")
_DYNAMIC_DATA = ("parse", "process", "transform")
_RESPONSE_SHAPES = ("ApiResponse", "apiResponse", "res.json", "fetch", "axios")
_DEBUG_WORDS = ("debug", "Debug")
_ERROR_WORDS = ("error", "Error")

PRODUCTION_LOG_RULE = "production_console_log"
ERROR_HANDLING_RULE = "missing_error_handling"
NESTED_CONTROL_RULE = "complex_nested_conditionals"


@dataclass(frozen=True)
class _MatchContext:
    match: RawMatch
    lines: list[str]
    index: int

    @property
    def line(self) -> str:
        return self.lines[self.index]

    @property
    def previous_line(self) -> str:
        return self.lines[self.index - 1] if self.index > 0 else ""


_CarveOut = Callable[[_MatchContext], bool]


def _carve_any_type(ctx: _MatchContext) -> bool:
    line = ctx.line
    if "expect.any(" in line or "jest.fn()" in line:
        return True
    if "{..." in line and "as any" in line:
        return True
    if "JSON.parse(" in line or ".json" in line:
        return True
    if any(shape in line for shape in _RESPONSE_SHAPES):
        return True
    if any(name in line for name in ("data: any", "result: any", "response: any")):
        return any(word in line for word in _DYNAMIC_DATA)
    return False


def _carve_function_param_any(ctx: _MatchContext) -> bool:
    line = ctx.line
    if "(data: any)" in line and any(word in line for word in _DYNAMIC_DATA):
        return True
    return any(token in line for token in ("ApiResponse", "apiResponse", "JSON.parse", "response: any"))


def _carve_double_assertion(ctx: _MatchContext) -> bool:
    return "as unknown as" in ctx.line


def _carve_production_log(ctx: _MatchContext) -> bool:
    line = ctx.line.strip()
    if "console.error(" in line and scope.is_in_guarded_scope(ctx.lines, ctx.index, ctx.match.column):
        return True
    if "console.log(" in line and any(word in line for word in _DEBUG_WORDS):
        return True
    return ("console.log(" in line or "console.info(" in line) and any(word in line for word in _ERROR_WORDS)


def _carve_hedging(ctx: _MatchContext) -> bool:
    if _looks_like_test_path(ctx.match.file):
        return True
    line = ctx.line.strip().lower()
    return "should work" in line and any(marker in line for marker in ("//", "/*", "*/"))


def _carve_test_path(ctx: _MatchContext) -> bool:
    return _looks_like_test_path(ctx.match.file)


_CARVE_OUTS: dict[str, tuple[_CarveOut, ...]] = {
    "any_type_usage": (_carve_any_type,),
    "function_param_any_type": (_carve_function_param_any,),
    "unsafe_double_type_assertion": (_carve_double_assertion,),
    PRODUCTION_LOG_RULE: (_carve_production_log,),
    "hedging_uncertainty_comment": (_carve_hedging,),
    "assumption_comment": (_carve_hedging,),
    "unsafe_type_assertion": (_carve_test_path,),
}


def _acknowledged(ctx: _MatchContext) -> bool:
    if any(marker in ctx.line for marker in _SAME_LINE_ACK):
        return True
    return any(marker in ctx.previous_line for marker in _PREVIOUS_LINE_ACK)


def accept_match(
    match: RawMatch,
    rule: DetectionRule,
    lines: list[str],
    *,
    file_is_test: bool | None = None,
    file_is_mock: bool | None = None,
    quiet: bool = False,
) -> bool:
    """Run a raw match through the context filter; ``False`` means suppressed.

    Stages, first rejection wins: file-category exemption, declaration files,
    explicit acknowledgment, per-rule carve-outs, error-handling scope, quiet
    mode.
    """
    path = match.file
    is_test = is_test_file(path) if file_is_test is None else file_is_test
    is_mock = is_mock_file(path) if file_is_mock is None else file_is_mock
    ctx = _MatchContext(match, lines, match.line - 1)

    if (rule.skip_in_tests and is_test) or (rule.skip_in_mocks and is_mock):
        return False
    if rule.is_permissive_type and is_declaration_file(path):
        return False
    if (rule.is_permissive_type or rule.is_unsafe_cast) and _acknowledged(ctx):
        return False
    if any(carve(ctx) for carve in _CARVE_OUTS.get(rule.id, ())):
        return False
    if rule.id == ERROR_HANDLING_RULE and scope.is_call_handled(lines, ctx.index):
        return False
    if quiet and rule.id != PRODUCTION_LOG_RULE and is_test:
        return False
    return True


# ---------------------------------------------------------------------------
# Nested control structures
# ---------------------------------------------------------------------------

_CONTROL_OPENER_RES = (
    re.compile(r"\bif\s*\("),
    re.compile(r"\bfor\s*\("),
    re.compile(r"\bwhile\s*\("),
)
_INDENTED_OPENERS = ("if (", "for (", "while (")
NESTING_INDENT_THRESHOLD = 16

_SINGLE_LINE_NESTING_MESSAGE = (
    "Found potentially complex nested control structures in a single line. Consider refactoring for readability."
)
_DEEP_INDENT_MESSAGE = "Highly indented control structure suggests deep nesting. Consider refactoring for readability."


def analyze_nesting(line: str, *, file: str = "", line_number: int = 1) -> list[Issue]:
    """Flag control-structure density on one line and deeply indented control openers.

    Both checks may fire for the same line; they are reported separately.
    """
    issues: list[Issue] = []
    code = line.strip()

    openers = sum(len(pattern.findall(line)) for pattern in _CONTROL_OPENER_RES)
    if openers > 1:
        issues.append(Issue(NESTED_CONTROL_RULE, file, line_number, 1, code, _SINGLE_LINE_NESTING_MESSAGE, "medium"))

    indent = len(line) - len(line.lstrip()) if code else -1
    if indent >= NESTING_INDENT_THRESHOLD and any(opener in line for opener in _INDENTED_OPENERS):
        if not code.startswith("//") and "=>" not in code:
            issues.append(Issue(NESTED_CONTROL_RULE, file, line_number, indent + 1, code, _DEEP_INDENT_MESSAGE, "medium"))
    return issues


# ---------------------------------------------------------------------------
# File scan
# ---------------------------------------------------------------------------


def split_lines(content: str) -> list[str]:
    return [line[:-1] if line.endswith("\r") else line for line in content.split("\n")]


def _issue_from(match: RawMatch, rule: DetectionRule) -> Issue:
    return Issue(
        rule_id=rule.id,
        file=match.file,
        line=match.line,
        column=match.column,
        code=match.text,
        message=f"{rule.message} ({rule.description})",
        severity=rule.severity,
    )


def scan_file(path: str, content: str, rules: RuleSet = DEFAULT_RULE_SET, *, quiet: bool = False) -> list[Issue]:
    """Issues for one file, in line order; within a line, rule order then nesting findings."""
    lines = split_lines(content)
    is_test = is_test_file(path)
    is_mock = is_mock_file(path)

    issues: list[Issue] = []
    for index, line in enumerate(lines):
        for rule in rules:
            for match in scan_line(line, (rule,), file=path, line_number=index + 1):
                if accept_match(match, rule, lines, file_is_test=is_test, file_is_mock=is_mock, quiet=quiet):
                    issues.append(_issue_from(match, rule))
        issues.extend(analyze_nesting(line, file=path, line_number=index + 1))
    return issues


# ---------------------------------------------------------------------------
# Consolidation
# ---------------------------------------------------------------------------


def consolidate(issues: Iterable[Issue]) -> list[ConsolidatedIssue]:
    """Group identical findings, keeping first-seen order for groups and locations."""
    groups: dict[tuple[str, str, str, str, str], list[str]] = {}
    for issue in issues:
        key = (issue.rule_id, issue.file, issue.code, issue.message, issue.severity)
        groups.setdefault(key, []).append(issue.location)
    return [
        ConsolidatedIssue(rule_id, file, code, message, severity, tuple(locations))
        for (rule_id, file, code, message, severity), locations in groups.items()
    ]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

RULE_WEIGHTS: dict[str, int] = {
    "hallucinated_react_import": 30,
    "hallucinated_next_import": 30,
    "any_type_usage": 15,
    "unsafe_type_assertion": 12,
    "unsafe_double_type_assertion": 12,
    "overconfident_comment": 10,
    "hedging_uncertainty_comment": 10,
    "todo_implementation_placeholder": 12,
    "assumption_comment": 11,
    "redundant_self_explanatory_comment": 8,
    "excessive_boilerplate_comment": 6,
    "debug_log_with_comment": 5,
    "unnecessary_iife_wrapper": 7,
    "vibe_coded_ternary_abuse": 6,
}
DEFAULT_WEIGHT = 3

_QUALITY_MARKERS = ("hallucinated", "todo", "placeholder", "assumption")
_UTILITY_MARKERS = ("comment", "redundant", "boilerplate")


def score_axis(rule_id: str) -> str:
    """``quality``, ``utility`` or ``style`` for a rule id."""
    if any(marker in rule_id for marker in _QUALITY_MARKERS):
        return "quality"
    if any(marker in rule_id for marker in _UTILITY_MARKERS):
        return "utility"
    return "style"


def score_issues(issues: Iterable[Issue]) -> ScoreBreakdown:
    totals = {"utility": 0, "quality": 0, "style": 0}
    for issue in issues:
        totals[score_axis(issue.rule_id)] += RULE_WEIGHTS.get(issue.rule_id, DEFAULT_WEIGHT)
    return ScoreBreakdown(**totals)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_detection(
    files: Iterable[SourceFile | tuple[str, str]],
    config: SlopGuardConfig | dict | None = None,
    quiet: bool = False,
) -> DetectionResult:
    """Scan source files for AI slop patterns.

    Args:
        files: ``(path, content)`` pairs, scanned in the order given.
        config: Optional configuration (validated model or raw mapping).
            Custom rules and severity overrides are applied before scanning.
        quiet: Suppress findings in test files for every rule except
            production logging.

    Returns:
        DetectionResult with the raw issues, their consolidation and the score.

    Raises:
        ConfigError: if ``config`` is invalid. No file is scanned.
    """
    if config is None:
        rules = DEFAULT_RULE_SET
    else:
        cfg = validate_config(config)
        rules = build_rule_set(cfg.custom_rules, cfg.severity_overrides)

    issues: list[Issue] = []
    count = 0
    for path, content in files:
        found = scan_file(path, content, rules, quiet=quiet)
        logger.debug(f"{path}: {len(found)} issue(s)")
        issues.extend(found)
        count += 1

    consolidated = consolidate(issues)
    score = score_issues(issues)
    logger.info(f"Scanned {count} file(s): {len(issues)} occurrence(s), {len(consolidated)} unique issue(s)")
    return DetectionResult(issues=issues, consolidated=consolidated, score=score, files_scanned=count)
