"""Read and write YAML outline documents.

An outline document looks like::

    title: Lab notebook
    nodes:
      - title: Report
        children:
          - title: Scan A
            id: 3f9c0e1a-...
            tags: [ATTACH]
          - Plain child given as a bare string
      - title: Archive
        properties:
          ATTACH_DIR_INHERIT: t
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from attachtree.models import OutlineDocument, OutlineNode


class OutlineFormatError(ValueError):
    """Raised when an outline file is not a YAML mapping of well-formed nodes."""


def _coerce_node(raw: Any, source: str) -> dict[str, Any]:
    if isinstance(raw, str):
        return {"title": raw}
    if not isinstance(raw, dict):
        raise OutlineFormatError(f"Expected node mapping or title string in {source}, got {type(raw).__name__}")
    node = dict(raw)
    children = node.get("children") or []
    if not isinstance(children, list):
        raise OutlineFormatError(f"Expected 'children' list for node {node.get('title')!r} in {source}")
    node["children"] = [_coerce_node(child, source) for child in children]
    tags = node.get("tags")
    if isinstance(tags, str):
        # "tags: ATTACH:archive" follows the outline heading convention
        node["tags"] = [t for t in tags.replace(":", " ").split() if t]
    return node


def parse_outline_text(text: str, source: str = "<string>") -> OutlineDocument:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise OutlineFormatError(f"Invalid YAML in {source}") from exc
    if isinstance(data, list):
        data = {"nodes": data}
    if not isinstance(data, dict):
        raise OutlineFormatError(f"Expected mapping at top level of {source}")

    nodes = data.get("nodes") or []
    if not isinstance(nodes, list):
        raise OutlineFormatError(f"Expected 'nodes' list in {source}")

    try:
        document = OutlineDocument(
            title=str(data.get("title") or ""),
            nodes=[_coerce_node(node, source) for node in nodes],
        )
    except ValidationError as exc:
        raise OutlineFormatError(f"Malformed node in {source}: {exc}") from exc
    for node in document.nodes:
        node.link_children()
    return document


def parse_outline_file(path: Path) -> OutlineDocument:
    return parse_outline_text(path.read_text(encoding="utf-8"), source=str(path))


def _node_to_dict(node: OutlineNode) -> dict[str, Any]:
    data: dict[str, Any] = {"title": node.title}
    if node.id:
        data["id"] = node.id
    if node.tags:
        data["tags"] = list(node.tags)
    if node.properties:
        data["properties"] = dict(node.properties)
    if node.children:
        data["children"] = [_node_to_dict(child) for child in node.children]
    return data


def dump_outline(document: OutlineDocument) -> str:
    data: dict[str, Any] = {}
    if document.title:
        data["title"] = document.title
    data["nodes"] = [_node_to_dict(node) for node in document.nodes]
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def write_outline_file(path: Path, document: OutlineDocument) -> None:
    path.write_text(dump_outline(document), encoding="utf-8")
