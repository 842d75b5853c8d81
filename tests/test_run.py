"""
Test Suite for the command line entry point
"""

import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from docfill.run import main

from tests.docx_fixtures import (
    CONTENT_TYPES,
    build_archive,
    build_docx,
    document_xml,
    paragraph,
    read_entry,
    text_run,
)


class TestMain(unittest.TestCase):
    """Test cases for run.main."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp(prefix="test_docfill_run_")
        self.input_path = Path(self.test_dir) / "input.docx"
        self.output_path = Path(self.test_dir) / "output.docx"
        self.logs_dir = Path(self.test_dir) / "logs"

    def tearDown(self):
        """Clean up test fixtures."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler) and handler.baseFilename.startswith(self.test_dir):
                root.removeHandler(handler)
                handler.close()
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def _argv(self, *extra):
        return [str(self.input_path), str(self.output_path), "--logs-dir", str(self.logs_dir), *extra]

    def test_success(self):
        self.input_path.write_bytes(build_docx(document_xml(
            paragraph(text_run("[greeting],")),
            paragraph(text_run("[name]")),
        )))
        mapping = Path(self.test_dir) / "mapping.json"
        mapping.write_text(json.dumps({"[greeting]": "Hello"}), encoding="utf-8")

        code = main(self._argv("--mapping", str(mapping), "--set", "[name]=World"))

        self.assertEqual(code, 0)
        document = read_entry(self.output_path.read_bytes(), "word/document.xml")
        self.assertIn(b"<w:t>Hello,</w:t>", document)
        self.assertIn(b"<w:t>World</w:t>", document)
        self.assertTrue(any(self.logs_dir.glob("docfill_*.log")))

    def test_missing_target_returns_failure(self):
        self.input_path.write_bytes(build_archive([("[Content_Types].xml", CONTENT_TYPES)]))
        self.assertEqual(main(self._argv("--set", "[a]=b")), 1)
        self.assertFalse(self.output_path.exists())

    def test_invalid_delimiter_exits(self):
        self.input_path.write_bytes(build_docx(document_xml(paragraph(text_run("x")))))
        with self.assertRaises(SystemExit) as context:
            main(self._argv("--opening", "ab"))
        self.assertEqual(context.exception.code, 2)


if __name__ == '__main__':
    unittest.main()
