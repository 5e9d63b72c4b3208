from __future__ import annotations

import io
import unittest

from values_lint.model import Finding, Severity, ValidationResult
from values_lint.output import print_text, sanitize, to_json


def sample_result() -> ValidationResult:
    return ValidationResult(
        values_file="my-values.yaml",
        chart_name="test-chart",
        chart_version="0.1.0",
        findings=[
            Finding(Severity.ERROR, 4, "image.regsitry", 'Unknown key "image.regsitry"', "image.registry"),
            Finding(Severity.WARNING, 2, "oldSetting", 'Deprecated key "oldSetting" - use newSetting instead'),
        ],
    )


class SanitizeTests(unittest.TestCase):
    def test_sanitize(self) -> None:
        cases = [
            ("\x1b[31mred\x1b[0m", "red"),
            ("\x1b]0;title\x07text", "text"),
            ("bell\x07 and nul\x00", "bell and nul"),
            ("tab\tand\nnewline", "tab\tand\nnewline"),
            ("plain", "plain"),
        ]
        for text, expected in cases:
            with self.subTest(text=text):
                self.assertEqual(sanitize(text), expected)


class TextOutputTests(unittest.TestCase):
    def render(self, result: ValidationResult) -> str:
        stream = io.StringIO()
        print_text(result, stream, color=False)
        return stream.getvalue()

    def test_findings(self) -> None:
        output = self.render(sample_result())
        self.assertIn("Validating my-values.yaml against test-chart (0.1.0)", output)
        self.assertIn("ERRORS (1)", output)
        self.assertIn('line 4: Unknown key "image.regsitry" (did you mean "image.registry"?)', output)
        self.assertIn("WARNINGS (1)", output)
        self.assertIn('line 2: Deprecated key "oldSetting" - use newSetting instead', output)
        self.assertIn("Summary: 1 error(s), 1 warning(s)", output)
        self.assertLess(output.index("ERRORS"), output.index("WARNINGS"))

    def test_no_findings(self) -> None:
        output = self.render(ValidationResult(values_file="ok.yaml", chart_name="demo"))
        self.assertIn("Validating ok.yaml against demo", output)
        self.assertNotIn("(", output.splitlines()[0])
        self.assertIn("No issues found.", output)
        self.assertNotIn("ERRORS", output)

    def test_escape_sequences_are_stripped(self) -> None:
        result = ValidationResult(
            values_file="v.yaml",
            chart_name="demo",
            findings=[Finding(Severity.ERROR, 1, "x", 'Unknown key "\x1b[2Jx"')],
        )
        output = self.render(result)
        self.assertNotIn("\x1b[2J", output)
        self.assertIn('Unknown key "x"', output)


class JsonOutputTests(unittest.TestCase):
    maxDiff = None

    def test_to_json(self) -> None:
        self.assertEqual(
            to_json(sample_result()),
            {
                "valuesFile": "my-values.yaml",
                "chartName": "test-chart",
                "chartVersion": "0.1.0",
                "errors": [
                    {
                        "line": 4,
                        "keyPath": "image.regsitry",
                        "message": 'Unknown key "image.regsitry"',
                        "suggestion": "image.registry",
                    }
                ],
                "warnings": [
                    {
                        "line": 2,
                        "keyPath": "oldSetting",
                        "message": 'Deprecated key "oldSetting" - use newSetting instead',
                    }
                ],
                "errorCount": 1,
                "warningCount": 1,
            },
        )

    def test_empty_result(self) -> None:
        data = to_json(ValidationResult(values_file="ok.yaml"))
        self.assertEqual(data["errors"], [])
        self.assertEqual(data["warnings"], [])
        self.assertEqual(data["errorCount"], 0)


if __name__ == "__main__":
    unittest.main()
