import io
import json
import os
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

import prdoc.cli as cli
from prdoc.lib.config import Config
from prdoc.lib.logger import Logger

FIXTURES = Path(__file__).parent / "fixtures"


class TestCLI(unittest.TestCase):
    def setUp(self):
        fd, path = tempfile.mkstemp(prefix="prdoc_", suffix=".cfg")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(
                textwrap.dedent(
                    """
                    [report]
                    group_by = crate
                    format = text

                    [dev]
                    log_level = debug
                    stack_trace_errors = false
                """
                ).lstrip()
            )

        self.path = path
        Config.load(self.path)
        Logger.setup(Logger.DEBUG)
        Logger._logger.handlers.clear()  # Silence std logs

    def tearDown(self):
        if os.path.exists(self.path):
            os.remove(self.path)

    def _run(self, *args: str) -> int:
        parser = cli._build_parser()
        ns = parser.parse_args(list(args))
        return ns.handler(ns)

    def test_version_command(self):
        with patch("builtins.print") as mock_print:
            rc = self._run("version")
        self.assertEqual(rc, 0)
        mock_print.assert_called_once_with(cli.__version__)

    def test_check_valid(self):
        rc = self._run("check", str(FIXTURES / "sample.prdoc"))
        self.assertEqual(rc, 0)

    def test_check_reports_failures(self):
        with self.assertLogs(Logger._logger.name, level="ERROR") as cm:
            rc = self._run("check", str(FIXTURES))

        self.assertEqual(rc, 1)
        self.assertTrue(any("field 'crates' is missing" in line for line in cm.output))

    def test_check_strict_fails_on_warnings(self):
        with tempfile.TemporaryDirectory() as tmp:
            record = Path(tmp) / "dup.prdoc"
            record.write_text(
                "title: t\ndoc:\n  - audience: Todo\n    description: d\n"
                "crates:\n  - name: a\n    bump: patch\n  - name: a\n    bump: minor\n",
                encoding="utf-8",
            )

            self.assertEqual(self._run("check", str(record)), 0)
            with self.assertLogs(Logger._logger.name, level="WARNING") as cm:
                self.assertEqual(self._run("check", "--strict", str(record)), 1)

        self.assertTrue(any("listed more than once" in line for line in cm.output))

    def test_check_nothing_found(self):
        with tempfile.TemporaryDirectory() as tmp, self.assertLogs(Logger._logger.name, level="ERROR") as cm:
            rc = self._run("check", tmp)

        self.assertEqual(rc, 1)
        self.assertTrue(any("No .prdoc files found" in line for line in cm.output))

    def test_report_stdout(self):
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            rc = self._run("report", str(FIXTURES / "sample.prdoc"))

        self.assertEqual(rc, 0)
        self.assertIn("pallet-scheduler [major]", out.getvalue())

    def test_report_json_to_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "report.json"
            rc = self._run("report", str(FIXTURES), "--by", "audience", "--format", "json", "-o", str(target))
            report = json.loads(target.read_text(encoding="utf-8"))

        self.assertEqual(rc, 0)
        self.assertEqual(report["group_by"], "audience")
        self.assertEqual(len(report["summary"]["failures"]), 1)

    def test_report_unexpected_error(self):
        with (
            self.assertLogs(Logger._logger.name, level="ERROR") as cm,
            patch("prdoc.cli.render", side_effect=OSError("disk full")),
        ):
            rc = self._run("report", str(FIXTURES))

        self.assertEqual(rc, 1)
        self.assertTrue(any("disk full" in line for line in cm.output))

    def test_main_runs_version(self):
        with patch("builtins.print") as mock_print:
            rc = cli.main(["--config", self.path, "version"])
        self.assertEqual(rc, 0)
        mock_print.assert_called_once_with(cli.__version__)
