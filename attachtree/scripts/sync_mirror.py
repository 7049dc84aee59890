#!/usr/bin/env python3
"""Synchronize the attachment mirror tree of an outline document.

Usage:
  python -m attachtree.scripts.sync_mirror notes/outline.yaml
  python -m attachtree.scripts.sync_mirror notes/outline.yaml --node 3f9c0e1a-...
  python -m attachtree.scripts.sync_mirror notes/outline.yaml --list
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from attachtree.mirror.errors import MissingAncestorError, NamingCollisionError
from attachtree.parsers.outline import OutlineFormatError
from attachtree.services.attachment_service import AttachmentService

EXIT_COLLISION = 2
EXIT_BAD_INPUT = 3


def _run(outline_path: Path, node_id: str | None, list_only: bool) -> int:
    try:
        service = AttachmentService.from_outline_file(outline_path)
    except OutlineFormatError as exc:
        print(f"Cannot read outline: {exc}")
        return EXIT_BAD_INPUT

    if list_only:
        for summary in service.list_nodes():
            print(f"{summary.state:<10} {summary.browsePath or '-'}  ({summary.title!r})")
        return 0

    try:
        if node_id:
            node = service.get_node(node_id)
            result = service.attach_dir(node)
            if result is None:
                print(f"Node {node_id} has no attachment directory")
                return 1
            print(f"attachment directory: {result.attachDir}")
            report = result.report
        else:
            report = service.sync_all()
    except ValueError as exc:
        print(str(exc))
        return 1
    except NamingCollisionError as exc:
        print(f"Aborted: {exc}")
        return EXIT_COLLISION
    except MissingAncestorError as exc:
        print(f"Outline inconsistency: {exc}")
        return EXIT_BAD_INPUT

    for change in report.changes:
        suffix = f" -> {change.target}" if change.target else ""
        print(f"{change.action:<7} {change.path}{suffix}")
    print(f"{len(report.changes)} changes, {report.visitedCount} nodes visited")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("outline", type=Path, help="Outline YAML document")
    parser.add_argument("--node", default="", help="Resolve one node's attachment directory instead of a full sync")
    parser.add_argument("--list", action="store_true", help="Print each node's mirror state and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every mirror change")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    return _run(args.outline, args.node or None, args.list)


if __name__ == "__main__":
    raise SystemExit(main())
