# SPDX-License-Identifier: Apache-2.0
"""CLI entrypoint for code-slop-guard."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console

from code_slop_guard import __version__
from code_slop_guard.config import ConfigError, load_config
from code_slop_guard.core import run_detection
from code_slop_guard.discovery import discover_files, read_sources
from code_slop_guard.patterns import DEFAULT_RULE_SET, build_rule_set
from code_slop_guard.report import DEFAULT_REPORT_NAME, print_report, write_report

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_ISSUES = 1
EXIT_CRITICAL = 2


@click.command()
@click.version_option(__version__, "--version", "-v", prog_name="code-slop-guard")
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
)
@click.option("--quiet", "-q", is_flag=True, help="Only scan core app directories and skip test files")
@click.option("--strict", "-s", is_flag=True, help="Exit with code 2 if critical issues (hallucinations) are found")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"JSON report path (defaults to ROOT/{DEFAULT_REPORT_NAME})",
)
@click.option("--no-report", is_flag=True, help="Do not write the JSON report")
@click.option("--verbose", is_flag=True, help="Log per-file detail")
@click.pass_context
def cli(ctx: click.Context, root: Path, quiet: bool, strict: bool, output: Path | None, no_report: bool, verbose: bool) -> None:
    """code-slop-guard - detect AI slop in TypeScript/JavaScript code.

    Scores three axes:

    \b
      1. Information Utility (Noise) - comments, boilerplate
      2. Information Quality (Lies)  - hallucinated imports, assumptions
      3. Style / Taste (Soul)        - overconfidence, needless complexity

    \b
    Exit codes:
      0 - no issues found
      1 - issues found
      2 - critical issues found (--strict, or strict in the config file)
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    console = Console(stderr=True)
    root = root.resolve()

    try:
        config = load_config(root)
        rules = build_rule_set(config.custom_rules, config.severity_overrides) if config else DEFAULT_RULE_SET
        paths = discover_files(root, quiet=quiet, ignore_paths=config.ignore_paths if config else ())
        sources = read_sources(root, paths)
    except ConfigError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"Could not read sources: {exc}") from exc

    result = run_detection(sources, config, quiet=quiet)
    print_report(result, console=Console(), rules=rules, quiet=quiet)

    if not no_report:
        path = write_report(result, output or root / DEFAULT_REPORT_NAME)
        console.print(f"Results exported to: {path}", style="dim")

    critical = result.by_severity("critical")
    if (strict or (config is not None and config.strict)) and critical:
        console.print(f"STRICT MODE: {len(critical)} CRITICAL issue(s) found. Blocking.", style="bold red")
        ctx.exit(EXIT_CRITICAL)
    ctx.exit(EXIT_ISSUES if result.issues else EXIT_CLEAN)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
