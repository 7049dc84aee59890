import os
import tempfile
import unittest
from pathlib import Path

from attachtree.models import MirrorSettings
from attachtree.outline import OutlineStore
from attachtree.parsers.outline import parse_outline_file, write_outline_file
from attachtree.services.attachment_service import AttachmentService


_OUTLINE = """
title: Lab notebook
nodes:
  - title: Report
    children:
      - title: Scan A
        tags: [ATTACH]
      - title: Draft
  - title: Shared [1/2]
    tags: [ATTACH]
    properties:
      ATTACH_DIR_INHERIT: t
    children:
      - title: Figures
"""


class AttachmentServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.outline_path = self.root / "outline.yaml"
        self.outline_path.write_text(_OUTLINE, encoding="utf-8")
        self.settings = MirrorSettings(
            attach_root=self.root / "data",
            mirror_root=self.root / "mirror",
            ignored_files=frozenset({".attachtree.yaml", ".lint-cache"}),
        )
        self.service = AttachmentService.from_outline_file(self.outline_path, settings=self.settings)
        report, self.shared = self.service.outline.roots()
        self.report = report
        self.scan, self.draft = report.children
        self.figures = self.shared.children[0]

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_attach_dir_creates_directory_and_mirror_entry(self) -> None:
        result = self.service.attach_dir(self.scan)

        self.assertIsNotNone(result)
        assert result is not None
        self.assertTrue(Path(result.attachDir).is_dir())
        self.assertEqual(result.nodeId, self.scan.id)
        self.assertTrue((self.root / "mirror" / "Report" / "Scan A" / "_data").is_symlink())
        self.assertTrue(result.report.mutated)

    def test_attach_dir_persists_new_ids(self) -> None:
        self.service.attach_dir(self.scan)

        reloaded = OutlineStore.load(self.outline_path)

        assert self.scan.id is not None
        self.assertIsNotNone(reloaded.find(self.scan.id))

    def test_attach_dir_without_create_leaves_fresh_node_alone(self) -> None:
        self.assertIsNone(self.service.attach_dir(self.draft, create=False))
        self.assertIsNone(self.draft.id)
        self.assertFalse((self.root / "data").exists())

    def test_inherited_node_resolves_to_owner_and_syncs_owner(self) -> None:
        result = self.service.attach_dir(self.figures)

        assert result is not None
        self.assertEqual(Path(result.attachDir), self.service.attachments.get_physical_dir(self.shared))
        self.assertEqual(result.mirrorPath, str(self.root / "mirror" / "Shared"))
        self.assertTrue((self.root / "mirror" / "Shared" / "_data").is_symlink())

    def test_sync_all_then_list_nodes(self) -> None:
        report = self.service.sync_all()
        self.assertTrue(report.mutated)
        self.assertEqual(self.service.sync_all().changes, [])

        summaries = {s.title: s for s in self.service.list_nodes()}

        self.assertEqual(summaries["Report"].state, "branch")
        self.assertEqual(summaries["Scan A"].state, "data-only")
        self.assertEqual(summaries["Draft"].state, "absent")
        self.assertTrue(summaries["Figures"].attachDirInherited)
        self.assertIsNone(summaries["Figures"].browsePath)
        self.assertEqual(summaries["Shared [1/2]"].mirrorName, "Shared")
        self.assertEqual(summaries["Scan A"].browsePath, str(self.root / "mirror" / "Report" / "Scan A"))

    def test_reload_picks_up_outline_edits(self) -> None:
        self.service.sync_all()
        document = parse_outline_file(self.outline_path)
        document.nodes[0].children[1].tags.append("ATTACH")
        write_outline_file(self.outline_path, document)

        self.service.reload()
        self.service.sync_all()

        self.assertTrue((self.root / "mirror" / "Report" / "Draft" / "_data").is_symlink())

    def test_attach_dir_after_reload_persists_ids_of_live_document(self) -> None:
        report_id = self.service.outline.ensure_id(self.report)
        self.service.outline.save()
        stale = self.service.get_node(report_id)

        self.service.reload()
        result = self.service.attach_dir(stale)

        assert result is not None
        self.assertEqual(result.nodeId, report_id)
        live_scan = self.service.get_node(report_id).children[0]
        self.assertIsNotNone(live_scan.id)
        stored = OutlineStore.load(self.outline_path).find(report_id)
        assert stored is not None
        self.assertEqual(stored.children[0].id, live_scan.id)

    def test_sync_node_after_reload_uses_live_document(self) -> None:
        report_id = self.service.outline.ensure_id(self.report)
        self.service.outline.save()
        stale = self.service.get_node(report_id)

        self.service.reload()
        self.service.sync_node(stale)

        scan_id = self.service.get_node(report_id).children[0].id
        assert scan_id is not None
        self.assertIsNotNone(OutlineStore.load(self.outline_path).find(scan_id))

    def test_stale_node_without_id_is_rejected(self) -> None:
        self.service.reload()

        with self.assertRaises(ValueError):
            self.service.attach_dir(self.draft)

    def test_attach_dir_on_inherited_node_assigns_its_id(self) -> None:
        self.assertIsNone(self.figures.id)

        result = self.service.attach_dir(self.figures)

        assert result is not None
        self.assertIsNotNone(self.figures.id)
        self.assertEqual(result.nodeId, self.figures.id)
        self.assertIsNotNone(OutlineStore.load(self.outline_path).find(self.figures.id))

    def test_get_node_unknown_id_raises(self) -> None:
        with self.assertRaises(ValueError):
            self.service.get_node("missing")

    def test_mirror_path_for_data_suffix(self) -> None:
        self.assertEqual(
            self.service.mirror_path(self.report, exclude_data_suffix=False),
            self.root / "mirror" / "Report" / "_data",
        )
        self.assertFalse(os.path.lexists(self.root / "mirror"))


if __name__ == "__main__":
    unittest.main()
