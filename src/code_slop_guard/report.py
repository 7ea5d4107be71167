# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from code_slop_guard.core import ConsolidatedIssue, DetectionResult, Issue, ScoreBreakdown
from code_slop_guard.discovery import CORE_APP_DIRS
from code_slop_guard.patterns import RuleSet

SEVERITY_ORDER = ("critical", "high", "medium", "low")
SEVERITY_STYLES = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "dim"}

DEFAULT_REPORT_NAME = "ai-slop-report.json"
SLOP_FED_THRESHOLD = 50


def verdict(score: ScoreBreakdown) -> str:
    if score.total == 0:
        return "clean"
    if score.total > SLOP_FED_THRESHOLD:
        return "slop-fed"
    return "acceptable"


def _occurrences(issues: list[ConsolidatedIssue]) -> int:
    return sum(issue.occurrences for issue in issues)


def build_report(result: DetectionResult) -> dict:
    """JSON-ready summary; ``issues`` holds consolidated findings with their locations."""
    consolidated = result.consolidated
    by_type: dict[str, list[ConsolidatedIssue]] = {}
    for issue in consolidated:
        by_type.setdefault(issue.rule_id, []).append(issue)

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "filesScanned": result.files_scanned,
        "uniqueIssues": len(consolidated),
        "totalOccurrences": _occurrences(consolidated),
        "bySeverity": {
            severity: _occurrences([i for i in consolidated if i.severity == severity]) for severity in SEVERITY_ORDER
        },
        "byType": [
            {
                "type": rule_id,
                "occurrences": _occurrences(items),
                "uniqueIssues": len(items),
                "sample": [
                    {"file": item.file, "locations": list(item.locations[:3]), "code": item.code} for item in items[:3]
                ],
            }
            for rule_id, items in by_type.items()
        ],
        "score": result.score.to_payload(),
        "verdict": verdict(result.score),
        "issues": [issue.to_payload() for issue in consolidated],
    }


def write_report(result: DetectionResult, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        json.dump(build_report(result), handle, indent=2, ensure_ascii=True)
    return out


def _print_severity_block(console: Console, severity: str, issues: list[Issue], rules: RuleSet | None) -> None:
    console.print(f"\n{severity.upper()} SEVERITY ISSUES", style=SEVERITY_STYLES[severity])
    by_type: dict[str, list[Issue]] = {}
    for issue in issues[:20]:
        by_type.setdefault(issue.rule_id, []).append(issue)

    for rule_id, items in by_type.items():
        rule = rules.get(rule_id) if rules is not None else None
        console.print(f"\n  Pattern: [bold]{rule_id}[/]")
        description = rule.description if rule is not None else items[0].message
        console.print(f"   Description: {description}", markup=False)
        if rule is not None and rule.fix:
            console.print(f"   Fix: {rule.fix}", markup=False)
        if rule is not None and rule.learn_more:
            console.print(f"   Learn more: {rule.learn_more}", markup=False)
        console.print(f"   Sample occurrences: {len(items)}")
        for issue in items[:3]:
            console.print(f"   -> {issue.file}:{issue.line} - {issue.code}", markup=False, highlight=False)
        if len(items) > 3:
            console.print(f"   ... and {len(items) - 3} more instances", style="dim")

    if len(issues) > 20:
        console.print(f"\n   ... and {len(issues) - 20} more issues of this severity", style="dim")


def print_report(result: DetectionResult, *, console: Console | None = None, rules: RuleSet | None = None, quiet: bool = False) -> None:
    console = console or Console()
    console.print("AI Slop Detection Report", style="bold")

    if not result.issues:
        console.print("No AI slop issues detected!", style="bold green")
        _print_score(console, result.score)
        return

    table = Table(title=f"Found {len(result.issues)} AI slop issues")
    table.add_column("Severity")
    table.add_column("Occurrences", justify="right")
    for severity in SEVERITY_ORDER:
        table.add_row(severity, str(len(result.by_severity(severity))), style=SEVERITY_STYLES[severity])
    console.print(table)

    for severity in SEVERITY_ORDER:
        issues = result.by_severity(severity)
        if issues:
            _print_severity_block(console, severity, issues, rules)

    console.print("\nIssues by type:", style="bold")
    for rule_id, count in Counter(issue.rule_id for issue in result.issues).most_common(10):
        console.print(f"  {rule_id}: {count}")

    file_counts = Counter(issue.file for issue in result.issues).most_common()
    core = [(f, n) for f, n in file_counts if f.replace("\\", "/").startswith(CORE_APP_DIRS)]
    other = [(f, n) for f, n in file_counts if not f.replace("\\", "/").startswith(CORE_APP_DIRS)]

    console.print("\nTop CORE APPLICATION files with AI slop issues:", style="bold")
    if core:
        for file, count in core[:10]:
            console.print(f"  {file}: {count} issues", markup=False)
    else:
        console.print("  No core application files found with issues", style="dim")

    if not quiet and other:
        console.print("\nTop OTHER files with AI slop issues (utilities, scripts, etc.):", style="bold")
        for file, count in other[:5]:
            console.print(f"  {file}: {count} issues", markup=False)

    _print_score(console, result.score)


def _print_score(console: Console, score: ScoreBreakdown) -> None:
    table = Table(title="Slop Index", show_header=False)
    table.add_row("Information Utility (Noise)", f"{score.utility} pts")
    table.add_row("Information Quality (Lies)", f"{score.quality} pts")
    table.add_row("Style / Taste (Soul)", f"{score.style} pts")
    table.add_row("TOTAL", f"{score.total} pts", style="bold")
    console.print(table)

    result = verdict(score)
    if result == "clean":
        console.print("CLEAN. This codebase has taste.", style="bold green")
    elif result == "slop-fed":
        console.print("This codebase is slop-fed.", style="bold red")
    else:
        console.print("Acceptable. But keep an eye on it.", style="yellow")
