import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from attachtree import config
from attachtree.scripts import sync_mirror


_OUTLINE = """
nodes:
  - title: Report
    children:
      - title: Scan A
        id: scan-a
        tags: [ATTACH]
"""


class SyncMirrorScriptTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.outline_path = self.root / "outline.yaml"
        self.outline_path.write_text(_OUTLINE, encoding="utf-8")
        (self.root / ".attachtree.yaml").write_text("mirror_root: mirror\n", encoding="utf-8")
        self._patches = [
            patch.object(config, "ATTACH_ROOT", Path("data")),
            patch.object(config, "MIRROR_ROOT", None),
        ]
        for p in self._patches:
            p.start()

    def tearDown(self) -> None:
        for p in self._patches:
            p.stop()
        self._tmp.cleanup()

    def _run(self, *args) -> tuple[int, str]:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = sync_mirror._run(*args)
        return code, out.getvalue()

    def test_full_sync_builds_mirror_in_scoped_root(self) -> None:
        code, output = self._run(self.outline_path, None, False)

        self.assertEqual(code, 0)
        self.assertTrue((self.root / "mirror" / "Report" / "Scan A" / "_data").is_symlink())
        self.assertTrue((self.root / "data" / "sc" / "an-a").is_dir())
        self.assertIn("nodes visited", output)

    def test_single_node_prints_attachment_directory(self) -> None:
        code, output = self._run(self.outline_path, "scan-a", False)

        self.assertEqual(code, 0)
        self.assertIn("attachment directory:", output)

    def test_unknown_node_exits_nonzero(self) -> None:
        code, output = self._run(self.outline_path, "nope", False)

        self.assertEqual(code, 1)
        self.assertIn("not found", output)

    def test_node_without_attachment_directory_exits_nonzero(self) -> None:
        with patch.object(sync_mirror.AttachmentService, "attach_dir", return_value=None):
            code, output = self._run(self.outline_path, "scan-a", False)

        self.assertEqual(code, 1)
        self.assertIn("has no attachment directory", output)

    def test_collision_exit_code(self) -> None:
        (self.root / "mirror").mkdir()
        (self.root / "mirror" / "Report").write_text("", encoding="utf-8")

        code, output = self._run(self.outline_path, None, False)

        self.assertEqual(code, sync_mirror.EXIT_COLLISION)
        self.assertIn("Naming collision", output)
        self.assertTrue((self.root / "mirror" / "Report").is_file())

    def test_list_mode_changes_nothing(self) -> None:
        code, output = self._run(self.outline_path, None, True)

        self.assertEqual(code, 0)
        self.assertIn("branch", output)
        self.assertFalse(os.path.lexists(self.root / "mirror"))

    def test_malformed_outline_exit_code(self) -> None:
        self.outline_path.write_text("nodes: [unclosed", encoding="utf-8")

        code, _ = self._run(self.outline_path, None, False)

        self.assertEqual(code, sync_mirror.EXIT_BAD_INPUT)


if __name__ == "__main__":
    unittest.main()
