from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from values_lint.cli import split_patterns

REPO_ROOT = Path(__file__).resolve().parents[1]
FIXTURES = REPO_ROOT / "tests" / "fixtures"
CHART_DIR = FIXTURES / "charts" / "test-chart"
SCHEMA_CHART_DIR = FIXTURES / "charts" / "test-chart-with-schema"
VALUES_DIR = FIXTURES / "values"


def run_cli(*args: str) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env.pop("VALUES_LINT_DEBUG", None)
    return subprocess.run(
        [sys.executable, "-m", "values_lint", *args],
        cwd=str(REPO_ROOT),
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


def describe(result: subprocess.CompletedProcess) -> str:
    return f"STDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}"


class CommandLineTests(unittest.TestCase):
    maxDiff = None

    def test_good_values_exit_zero(self) -> None:
        result = run_cli("-f", str(VALUES_DIR / "good-values.yaml"), "--chart", str(CHART_DIR), "--no-color")
        self.assertEqual(result.returncode, 0, describe(result))
        self.assertIn("No issues found.", result.stdout)

    def test_bad_values_exit_one(self) -> None:
        result = run_cli("-f", str(VALUES_DIR / "bad-values.yaml"), "--chart", str(CHART_DIR), "--no-color")
        self.assertEqual(result.returncode, 1, describe(result))
        self.assertIn("ERRORS (8)", result.stdout)
        self.assertIn('(did you mean "image.registry"?)', result.stdout)

    def test_json_output(self) -> None:
        result = run_cli("-f", str(VALUES_DIR / "bad-values.yaml"), "--chart", str(CHART_DIR), "-o", "json")
        self.assertEqual(result.returncode, 1, describe(result))
        data = json.loads(result.stdout)
        self.assertEqual(data["chartName"], "test-chart")
        self.assertEqual(data["errorCount"], 8)
        self.assertEqual(data["errors"][0]["keyPath"], "image.regsitry")
        self.assertEqual(data["errors"][0]["suggestion"], "image.registry")

    def test_ignore_keys(self) -> None:
        result = run_cli(
            "-f", str(VALUES_DIR / "bad-values.yaml"),
            "--chart", str(CHART_DIR),
            "--ignore-keys", "image.*,service.**,unknownKey,redis",
            "--ignore-keys", "extraEnv",
            "--ignore-keys", "replicaCount, persistence.enabled",
            "-o", "json",
        )
        self.assertEqual(result.returncode, 0, describe(result))
        self.assertEqual(json.loads(result.stdout)["errorCount"], 0)

    def test_warnings_only(self) -> None:
        args = ["-f", str(VALUES_DIR / "deprecated-values.yaml"), "--chart", str(SCHEMA_CHART_DIR), "--no-color"]
        result = run_cli(*args)
        self.assertEqual(result.returncode, 0, describe(result))
        self.assertIn("WARNINGS (1)", result.stdout)

        strict = run_cli(*args, "--strict")
        self.assertEqual(strict.returncode, 2, describe(strict))

    def test_errors_win_over_strict_warnings(self) -> None:
        result = run_cli(
            "-f", str(VALUES_DIR / "deprecated-values.yaml"),
            "-f", str(VALUES_DIR / "schema-bad-values.yaml"),
            "--chart", str(SCHEMA_CHART_DIR),
            "--strict",
            "--no-color",
        )
        self.assertEqual(result.returncode, 1, describe(result))
        self.assertEqual(result.stdout.count("Validating "), 2)

    def test_missing_chart_exit_three(self) -> None:
        result = run_cli("-f", str(VALUES_DIR / "good-values.yaml"), "--chart", "./no-such-chart")
        self.assertEqual(result.returncode, 3, describe(result))
        self.assertIn("ERROR:", result.stderr)

    def test_missing_values_file_exit_three(self) -> None:
        result = run_cli("-f", str(VALUES_DIR / "missing.yaml"), "--chart", str(CHART_DIR))
        self.assertEqual(result.returncode, 3, describe(result))
        self.assertIn("missing.yaml", result.stderr)

    def test_broken_schema_still_reports_structural_findings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            chart_dir = root / "chart"
            chart_dir.mkdir()
            (chart_dir / "Chart.yaml").write_text("name: broken-schema\nversion: 0.0.1\n", encoding="utf-8")
            (chart_dir / "values.yaml").write_text("replicaCount: 1\n", encoding="utf-8")
            (chart_dir / "values.schema.json").write_text("{not json", encoding="utf-8")
            values_file = root / "values.yaml"
            values_file.write_text('replicaCount: "two"\nbogus: 1\n', encoding="utf-8")

            text = run_cli("-f", str(values_file), "--chart", str(chart_dir), "--no-color")
            as_json = run_cli("-f", str(values_file), "--chart", str(chart_dir), "-o", "json")

        self.assertEqual(text.returncode, 3, describe(text))
        self.assertIn('Unknown key "bogus"', text.stdout)
        self.assertIn('Type mismatch at "replicaCount"', text.stdout)
        self.assertIn("ERROR:", text.stderr)

        self.assertEqual(as_json.returncode, 3, describe(as_json))
        data = json.loads(as_json.stdout)
        self.assertEqual([e["keyPath"] for e in data["errors"]], ["bogus", "replicaCount"])

    def test_required_arguments(self) -> None:
        result = run_cli("--chart", str(CHART_DIR))
        self.assertEqual(result.returncode, 2)
        self.assertIn("--file", result.stderr)


class SplitPatternsTests(unittest.TestCase):
    def test_split_patterns(self) -> None:
        self.assertEqual(
            split_patterns(["image.*,service.**", " extra ", "a,,b"]),
            ["image.*", "service.**", "extra", "a", "b"],
        )


if __name__ == "__main__":
    unittest.main()
