# PATH: tests/unit/test_logging_contract.py
"""
Tests for the logging contract.

No kwargs to logger; contextual fields only via extra={"context": {...}}.
"""

import ast
import json
import logging
import unittest
from pathlib import Path
from typing import Any, Dict, List

from core.logging import (
    ConsoleFormatter,
    JSONFormatter,
    clear_global_context,
    get_logger,
    set_global_context,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
PACKAGES = ("core", "chains", "config", "dex", "strategy", "monitoring")


class TestLoggingContractEnforcement(unittest.TestCase):
    """AST scan of every project module."""

    ALLOWED_KWARGS = {"exc_info", "extra", "stack_info", "stacklevel"}

    def _find_logger_violations(self, source_code: str) -> List[Dict[str, Any]]:
        violations = []
        tree = ast.parse(source_code)

        for node in ast.walk(tree):
            if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
                continue
            if node.func.attr not in ("debug", "info", "warning", "error", "critical", "exception"):
                continue

            obj = node.func.value
            if isinstance(obj, ast.Name):
                is_logger = "log" in obj.id.lower()
            elif isinstance(obj, ast.Attribute):
                is_logger = "log" in obj.attr.lower()
            else:
                is_logger = False
            if not is_logger:
                continue

            for kw in node.keywords:
                if kw.arg and kw.arg not in self.ALLOWED_KWARGS:
                    violations.append({"line": node.lineno, "method": node.func.attr, "invalid_kwarg": kw.arg})

        return violations

    def test_no_invalid_kwargs(self):
        """Project modules pass context only through extra."""
        files = [p for pkg in PACKAGES for p in (PROJECT_ROOT / pkg).rglob("*.py")]
        self.assertTrue(files)

        messages = []
        for filepath in files:
            for v in self._find_logger_violations(filepath.read_text(encoding="utf-8")):
                messages.append(
                    f"{filepath.relative_to(PROJECT_ROOT)}:{v['line']}: "
                    f"logger.{v['method']}(..., {v['invalid_kwarg']}=...)"
                )

        if messages:
            self.fail("Logging violations:\n" + "\n".join(messages))


class TestLoggingContextCapture(unittest.TestCase):
    """Context reaches records and formatters."""

    def setUp(self):
        self.captured_records = []

        class CapturingHandler(logging.Handler):
            def __init__(self, records_list):
                super().__init__()
                self.records = records_list

            def emit(self, record):
                self.records.append(record)

        name = f"test_capture_{id(self)}"
        base = logging.getLogger(name)
        base.setLevel(logging.DEBUG)
        base.handlers = [CapturingHandler(self.captured_records)]
        base.propagate = False
        self.logger = get_logger(name, chain="arbitrum")

    def tearDown(self):
        clear_global_context()

    def test_adapter_merges_default_context(self):
        self.logger.info("Cycle done", extra={"context": {"cycle": 3}})

        record = self.captured_records[0]
        self.assertEqual(record.context, {"chain": "arbitrum", "cycle": 3})

    def test_call_context_wins(self):
        self.logger.info("x", extra={"context": {"chain": "base"}})
        self.assertEqual(self.captured_records[0].context["chain"], "base")

    def test_json_formatter(self):
        set_global_context(service="arbwatch-spread-logger")
        self.logger.warning("Spread log full", extra={"context": {"path": "spreads_20260104.jsonl"}})

        entry = json.loads(JSONFormatter().format(self.captured_records[0]))

        self.assertEqual(entry["level"], "WARNING")
        self.assertEqual(entry["message"], "Spread log full")
        self.assertEqual(entry["context"]["service"], "arbwatch-spread-logger")
        self.assertEqual(entry["context"]["path"], "spreads_20260104.jsonl")

    def test_console_formatter_truncates_context(self):
        self.logger.info("x", extra={"context": {f"k{i}": i for i in range(6)}})

        line = ConsoleFormatter().format(self.captured_records[0])

        self.assertIn("(+3 more)", line)

    def test_exc_info_with_context(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            self.logger.error("Caught error", exc_info=True, extra={"context": {"operation": "test"}})

        record = self.captured_records[0]
        self.assertIsNotNone(record.exc_info)
        entry = json.loads(JSONFormatter().format(record))
        self.assertIn("ValueError", entry["context"]["exception"])


if __name__ == "__main__":
    unittest.main()
