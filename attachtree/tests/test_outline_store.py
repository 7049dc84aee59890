import tempfile
import unittest
from pathlib import Path

from attachtree.outline import OutlineStore, directory_mirror_root
from attachtree.parsers.outline import parse_outline_text


_OUTLINE = """
nodes:
  - title: Project
    properties:
      ATTACH_DIR_INHERIT: t
    children:
      - title: Task
        children:
          - title: Own dir
            properties:
              ATTACH_DIR_INHERIT: nil
  - title: Other
"""


class OutlineStoreTests(unittest.TestCase):
    def test_ensure_id_is_lazy_and_stable(self) -> None:
        store = OutlineStore(parse_outline_text(_OUTLINE))
        other = store.roots()[1]

        self.assertIsNone(other.id)
        first = store.ensure_id(other)
        second = store.ensure_id(other)

        self.assertEqual(first, second)
        self.assertIs(store.find(first), other)
        self.assertTrue(store.dirty)

    def test_assigned_ids_survive_save_and_reload(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "outline.yaml"
            path.write_text(_OUTLINE, encoding="utf-8")
            store = OutlineStore.load(path)
            node_id = store.ensure_id(store.roots()[0].children[0])
            store.save()

            reloaded = OutlineStore.load(path)
            node = reloaded.find(node_id)

            self.assertIsNotNone(node)
            assert node is not None
            self.assertEqual(node.title, "Task")
            self.assertFalse(reloaded.dirty)

    def test_flag_source_distinguishes_own_and_inherited(self) -> None:
        store = OutlineStore(parse_outline_text(_OUTLINE))
        project = store.roots()[0]
        task = project.children[0]
        own = task.children[0]

        self.assertIs(store.flag_source(project, "ATTACH_DIR_INHERIT"), project)
        self.assertIs(store.flag_source(task, "ATTACH_DIR_INHERIT"), project)
        self.assertTrue(store.get_inherited_flag(task, "ATTACH_DIR_INHERIT"))
        self.assertIsNone(store.flag_source(own, "ATTACH_DIR_INHERIT"))
        self.assertFalse(store.get_inherited_flag(store.roots()[1], "ATTACH_DIR_INHERIT"))

    def test_ancestors_walk_up_to_top_level(self) -> None:
        store = OutlineStore(parse_outline_text(_OUTLINE))
        own = store.roots()[0].children[0].children[0]

        self.assertEqual([n.title for n in store.ancestors(own)], ["Task", "Project"])

    def test_directory_mirror_root_reads_scoped_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            self.assertIsNone(directory_mirror_root(root))

            (root / ".attachtree.yaml").write_text("mirror_root: tree\n", encoding="utf-8")
            self.assertEqual(directory_mirror_root(root), root / "tree")


if __name__ == "__main__":
    unittest.main()
