import io
import json
import shutil
import unittest
import uuid
from contextlib import redirect_stdout

from minipdf.cli import build_parser, main

from pdf_fixtures import SCRATCH_ROOT


LAYOUT = {
    "file_name": "FromLayout.pdf",
    "pages": [
        {"name": "Only", "elements": [
            {"type": "text", "text": "Rendered from JSON"},
            {"type": "table", "rows": [["a", "b"], ["1", "2"]]},
        ]},
    ],
}


class TestCli(unittest.TestCase):
    def setUp(self):
        SCRATCH_ROOT.mkdir(parents=True, exist_ok=True)
        self.work = SCRATCH_ROOT / f"cli_{uuid.uuid4().hex}"
        self.work.mkdir()

    def tearDown(self):
        shutil.rmtree(self.work, ignore_errors=True)
        if SCRATCH_ROOT.exists() and not any(SCRATCH_ROOT.iterdir()):
            shutil.rmtree(SCRATCH_ROOT, ignore_errors=True)

    def _run(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def _write_layout(self, data=LAYOUT, name="layout.json"):
        path = self.work / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_parser_has_all_commands(self):
        _, commands = build_parser()
        self.assertEqual(set(commands), {"render", "demo", "dump", "help"})

    def test_no_arguments_prints_help(self):
        code, output = self._run()
        self.assertEqual(code, 2)
        self.assertIn("usage: minipdf", output)

    def test_version_flag(self):
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(["-V"])
        self.assertEqual(cm.exception.code, 0)

    def test_render_defaults_to_layout_file_name(self):
        layout = self._write_layout()
        code, _ = self._run("render", str(layout), "--log-level", "WARNING")
        self.assertEqual(code, 0)
        blob = (self.work / "FromLayout.pdf").read_bytes()
        self.assertTrue(blob.startswith(b"%PDF-1.4"))
        self.assertIn(b"(Rendered from JSON) Tj", blob)

    def test_render_explicit_output(self):
        layout = self._write_layout()
        out_pdf = self.work / "nested" / "explicit.pdf"
        code, _ = self._run("render", str(layout), "-o", str(out_pdf))
        self.assertEqual(code, 0)
        self.assertTrue(out_pdf.is_file())

    def test_render_errors_exit_1(self):
        code, _ = self._run("render", str(self.work / "missing.json"))
        self.assertEqual(code, 1)

        bad = self._write_layout({"pages": [{"elements": [{"type": "nope"}]}]}, "bad.json")
        code, _ = self._run("render", str(bad))
        self.assertEqual(code, 1)

        for element in ({"type": "text", "text": "x", "font_size": "big"},
                        {"type": "table", "rows": [[{"text": "a", "colspan": "two"}]]}):
            bad = self._write_layout({"elements": [element]}, "bad_value.json")
            code, _ = self._run("render", str(bad))
            self.assertEqual(code, 1)

    def test_demo_commands(self):
        shapes_pdf = self.work / "shapes.pdf"
        code, _ = self._run("demo", "shapes", "-o", str(shapes_pdf))
        self.assertEqual(code, 0)
        self.assertIn(b"/Type /ExtGState", shapes_pdf.read_bytes())

        sample_pdf = self.work / "sample.pdf"
        code, _ = self._run("demo", "sample", "-o", str(sample_pdf), "--title", "Weekly",
                            "--user", "Ada")
        self.assertEqual(code, 0)
        self.assertIn(b"(User: Ada) Tj", sample_pdf.read_bytes())

    def test_dump_prints_normalized_json(self):
        layout = self._write_layout()
        code, output = self._run("dump", str(layout), "--log-level", "ERROR")
        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual(data["file_name"], "FromLayout.pdf")
        elements = data["pages"][0]["elements"]
        self.assertEqual([e["type"] for e in elements], ["text", "table"])
        self.assertEqual(elements[1]["rows"][0], {"cells": [{"text": "a"}, {"text": "b"}]})

    def test_dump_invalid_layout_exits_1(self):
        bad = self._write_layout({"margins": {"top": "x"}}, "bad.json")
        code, _ = self._run("dump", str(bad))
        self.assertEqual(code, 1)

    def test_help_topic(self):
        code, output = self._run("help", "render")
        self.assertEqual(code, 0)
        self.assertIn("layout", output)


if __name__ == "__main__":
    unittest.main()
