import json
import shutil
import tempfile
import unittest
from pathlib import Path

import yaml

from prdoc.lib.errors import NoRecordsFound
from prdoc.lib.logger import Logger
from prdoc.lib.parser import parse_file
from prdoc.lib.reporter import build_report, collect, discover, group, render

FIXTURES = Path(__file__).parent / "fixtures"


class TestDiscover(unittest.TestCase):
    def setUp(self):
        self.root = Path(tempfile.mkdtemp(prefix="prdoc_"))
        (self.root / "b").mkdir()
        (self.root / "a").mkdir()
        for name in ("b/pr_2.prdoc", "a/pr_9.prdoc", "a/notes.md", "pr_1.prdoc"):
            (self.root / name).write_text("title: x\n", encoding="utf-8")

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def test_recursive_and_sorted(self):
        files = discover([self.root])
        rel = [p.relative_to(self.root).as_posix() for p in files]

        self.assertEqual(rel, ["a/pr_9.prdoc", "b/pr_2.prdoc", "pr_1.prdoc"])

    def test_deduplicates_and_keeps_explicit_files(self):
        files = discover([self.root, self.root / "a" / "notes.md", self.root / "pr_1.prdoc"])

        self.assertEqual(len(files), 4)

    def test_missing_path_skipped(self):
        self.assertEqual(discover([self.root / "nope"]), [])


class TestCollect(unittest.TestCase):
    def test_collect_fixtures(self):
        summary = collect([FIXTURES])

        self.assertEqual(len(summary.files), 2)
        self.assertEqual(len(summary.entries), 6)
        self.assertEqual(len(summary.failures), 1)

    def test_file_without_records_is_reported(self):
        root = Path(tempfile.mkdtemp(prefix="prdoc_"))
        shutil.copy(FIXTURES / "sample.prdoc", root / "sample.prdoc")
        (root / "empty.prdoc").write_text("# placeholder\n", encoding="utf-8")
        Logger.setup(Logger.DEBUG)
        try:
            with self.assertLogs(Logger._logger.name, level="WARNING") as cm:
                summary = collect([root])
        finally:
            shutil.rmtree(root, ignore_errors=True)

        self.assertEqual(len(summary.entries), 4)
        self.assertTrue(any("empty.prdoc: no records found" in line for line in cm.output))
        self.assertEqual(build_report(summary, "crate")["summary"]["files"], 2)

    def test_parallel_matches_serial(self):
        serial = collect([FIXTURES], workers=1)
        parallel = collect([FIXTURES], workers=4)

        self.assertEqual(parallel.entries, serial.entries)
        self.assertEqual([e.source for e in parallel.entries], [e.source for e in serial.entries])
        self.assertEqual(render(build_report(parallel, "crate")), render(build_report(serial, "crate")))

    def test_no_files(self):
        empty = tempfile.mkdtemp(prefix="prdoc_")
        try:
            with self.assertRaises(NoRecordsFound):
                collect([empty])
        finally:
            shutil.rmtree(empty, ignore_errors=True)

    def test_no_records(self):
        root = Path(tempfile.mkdtemp(prefix="prdoc_"))
        (root / "empty.prdoc").write_text("# nothing here\n---\n", encoding="utf-8")
        try:
            with self.assertRaises(NoRecordsFound):
                collect([root])
        finally:
            shutil.rmtree(root, ignore_errors=True)


class TestGroup(unittest.TestCase):
    def setUp(self):
        self.result = parse_file(FIXTURES / "sample.prdoc")

    def test_group_by_crate(self):
        groups = {g["key"]: g for g in group(self.result.entries, "crate")}

        self.assertEqual(groups["pallet-scheduler"]["bump"], "major")
        self.assertEqual(groups["frame-support-procedural"]["bump"], "major")
        self.assertEqual(groups["frame-support"]["bump"], "minor")
        self.assertEqual([i["bump"] for i in groups["pallet-scheduler"]["items"]], ["major", "minor"])
        self.assertEqual([i["index"] for i in groups["pallet-scheduler"]["items"]], [0, 3])

    def test_keys_sorted(self):
        for dimension in ("crate", "bump", "audience"):
            keys = [g["key"] for g in group(self.result.entries, dimension)]
            with self.subTest(dimension=dimension):
                self.assertEqual(keys, sorted(keys))

    def test_group_by_bump(self):
        groups = {g["key"]: g for g in group(self.result.entries, "bump")}

        self.assertEqual(list(groups), ["major", "minor", "patch"])
        self.assertEqual(
            [i["crate"] for i in groups["major"]["items"]],
            ["pallet-scheduler", "frame-support-procedural"],
        )

    def test_group_by_audience(self):
        groups = {g["key"]: g for g in group(self.result.entries, "audience")}

        self.assertEqual(sorted(groups), ["Node Dev", "Runtime Dev", "Runtime User"])
        self.assertEqual([i["index"] for i in groups["Runtime Dev"]["items"]], [0, 2, 3])

    def test_unknown_dimension(self):
        with self.assertRaises(ValueError):
            group(self.result.entries, "author")


class TestRender(unittest.TestCase):
    def setUp(self):
        self.summary = collect([FIXTURES])

    def test_idempotent(self):
        for fmt in ("text", "json", "yaml"):
            first = render(build_report(self.summary, "crate"), fmt)
            second = render(build_report(collect([FIXTURES]), "crate"), fmt)
            with self.subTest(fmt=fmt):
                self.assertEqual(first, second)

    def test_text(self):
        out = render(build_report(self.summary, "crate"))

        self.assertIn("pallet-scheduler [major]", out)
        self.assertIn("frame-support-procedural [major]", out)
        self.assertIn("Summary: 6 record(s) from 2 file(s), 1 failure(s), 0 warning(s)", out)
        self.assertIn("field 'crates' is missing", out)
        self.assertTrue(out.endswith("\n"))

    def test_json_and_yaml_share_shape(self):
        report = build_report(self.summary, "bump")

        self.assertEqual(json.loads(render(report, "json")), report)
        self.assertEqual(yaml.safe_load(render(report, "yaml")), report)

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            render(build_report(self.summary, "crate"), "xml")
