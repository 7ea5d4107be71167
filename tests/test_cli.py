import io
import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from code_slop_guard import __version__
from code_slop_guard.cli import cli
from code_slop_guard.core import ScoreBreakdown, run_detection
from code_slop_guard.discovery import discover_files, read_sources
from code_slop_guard.patterns import build_rule_set
from code_slop_guard.report import DEFAULT_REPORT_NAME, build_report, print_report, verdict, write_report

HALLUCINATED_PAGE = "import { useRouter } from 'react';\n"
BUILD_SCRIPT = "console.log('x');\n"


@pytest.fixture
def project(tmp_path):
    files = {
        "app/page.tsx": HALLUCINATED_PAGE,
        "scripts/build.js": BUILD_SCRIPT,
        "node_modules/pkg/index.js": "const a: any = 1;\n",
        "dist/bundle.js": "console.log('bundled');\n",
        "app/env.d.ts": "declare const x: any;\n",
        ".cache/tmp.ts": "const b: any = 2;\n",
        "README.md": "// TODO: implement docs\n",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return tmp_path


@pytest.fixture
def clean_project(tmp_path):
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "answer.ts").write_text("export const answer = 42;\n")
    return tmp_path


class TestDiscovery:
    def test_exclusions(self, project):
        assert discover_files(project) == ["app/page.tsx", "scripts/build.js"]

    def test_quiet_keeps_core_dirs(self, project):
        assert discover_files(project, quiet=True) == ["app/page.tsx"]

    def test_ignore_globs(self, project):
        assert discover_files(project, ignore_paths=["scripts/*"]) == ["app/page.tsx"]

    def test_missing_root(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            discover_files(tmp_path / "nope")

    def test_read_sources(self, project):
        sources = read_sources(project, ["app/page.tsx"])
        assert sources[0].path == "app/page.tsx"
        assert sources[0].content == HALLUCINATED_PAGE


class TestReport:
    def _result(self):
        return run_detection([("app/page.tsx", HALLUCINATED_PAGE), ("scripts/build.js", BUILD_SCRIPT + BUILD_SCRIPT)])

    def test_verdict(self):
        assert verdict(ScoreBreakdown(0, 0, 0)) == "clean"
        assert verdict(ScoreBreakdown(0, 30, 20)) == "acceptable"
        assert verdict(ScoreBreakdown(0, 30, 21)) == "slop-fed"

    def test_build_report(self):
        report = build_report(self._result())
        assert report["filesScanned"] == 2
        assert report["uniqueIssues"] == 2
        assert report["totalOccurrences"] == 3
        assert report["bySeverity"] == {"critical": 1, "high": 0, "medium": 2, "low": 0}
        assert report["score"] == {"informationUtility": 0, "informationQuality": 30, "style": 6, "total": 36}
        assert report["verdict"] == "acceptable"

        by_type = {entry["type"]: entry for entry in report["byType"]}
        assert by_type["production_console_log"]["occurrences"] == 2
        assert by_type["production_console_log"]["uniqueIssues"] == 1
        assert by_type["production_console_log"]["sample"][0]["locations"] == ["1:1", "2:1"]

    def test_write_report(self, tmp_path):
        path = write_report(self._result(), tmp_path / "out" / "report.json")
        data = json.loads(path.read_text())
        assert data["issues"][0]["type"] == "hallucinated_react_import"
        assert data["issues"][0]["location"] == ["1:1"]

    def test_print_report(self):
        buffer = io.StringIO()
        print_report(self._result(), console=Console(file=buffer, width=120))
        output = buffer.getvalue()
        assert "CRITICAL SEVERITY ISSUES" in output
        assert "hallucinated_react_import" in output
        assert "Slop Index" in output

    def test_print_report_uses_rule_description(self):
        custom = {
            "id": "no_lodash",
            "pattern": "lodash",
            "message": "Use native methods",
            "severity": "low",
            "description": "Prefer Array.prototype (map, filter) over lodash",
        }
        rules = build_rule_set([custom])
        result = run_detection([("app/a.ts", "import get from 'lodash/get';\n")], {"customPatterns": [custom]})
        buffer = io.StringIO()
        print_report(result, console=Console(file=buffer, width=200), rules=rules)
        assert "Description: Prefer Array.prototype (map, filter) over lodash" in buffer.getvalue()

    def test_print_clean_report(self):
        buffer = io.StringIO()
        print_report(run_detection([]), console=Console(file=buffer, width=120))
        assert "No AI slop issues detected!" in buffer.getvalue()


class TestCli:
    def test_issues_exit_code_and_report(self, project):
        result = CliRunner().invoke(cli, [str(project)])
        assert result.exit_code == 1
        data = json.loads((project / DEFAULT_REPORT_NAME).read_text())
        assert data["totalOccurrences"] == 2
        assert data["bySeverity"]["critical"] == 1

    def test_strict_flag(self, project):
        result = CliRunner().invoke(cli, [str(project), "--strict"])
        assert result.exit_code == 2

    def test_strict_from_config(self, project):
        (project / ".slopguardrc.json").write_text(json.dumps({"blockOnCritical": True}))
        result = CliRunner().invoke(cli, [str(project)])
        assert result.exit_code == 2

    def test_clean(self, clean_project):
        result = CliRunner().invoke(cli, [str(clean_project), "--strict"])
        assert result.exit_code == 0
        assert "No AI slop issues detected!" in result.output

    def test_no_report(self, project):
        result = CliRunner().invoke(cli, [str(project), "--no-report"])
        assert result.exit_code == 1
        assert not (project / DEFAULT_REPORT_NAME).exists()

    def test_output_path(self, project, tmp_path_factory):
        out = tmp_path_factory.mktemp("reports") / "slop.json"
        CliRunner().invoke(cli, [str(project), "-o", str(out)])
        assert json.loads(out.read_text())["filesScanned"] == 2

    def test_ignore_paths_from_config(self, project):
        (project / ".slopguardrc.json").write_text(json.dumps({"ignorePaths": ["app/*"]}))
        CliRunner().invoke(cli, [str(project)])
        data = json.loads((project / DEFAULT_REPORT_NAME).read_text())
        assert data["filesScanned"] == 1
        assert data["bySeverity"]["critical"] == 0

    def test_invalid_config(self, project):
        bad = {"customPatterns": [{"id": "x", "pattern": "(", "message": "m", "severity": "low"}]}
        (project / ".slopguardrc.json").write_text(json.dumps(bad))
        result = CliRunner().invoke(cli, [str(project)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert not (project / DEFAULT_REPORT_NAME).exists()

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
