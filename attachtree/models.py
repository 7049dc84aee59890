"""Pydantic models for outline nodes, mirror settings and API payloads."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from attachtree import config


_TRUTHY_VALUES = {"t", "true", "yes", "on", "1"}


def _property_text(value: Any) -> str:
    if value is True:
        return "t"
    if value is False:
        return "nil"
    return str(value)


def is_truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY_VALUES


# ── Outline models ──────────────────────────────────────────────────

class OutlineNode(BaseModel):
    id: Optional[str] = None
    title: str = ""
    tags: list[str] = Field(default_factory=list)
    properties: dict[str, str] = Field(default_factory=dict)
    children: list[OutlineNode] = Field(default_factory=list)

    _parent: Optional[OutlineNode] = PrivateAttr(default=None)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_properties(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): _property_text(v) for k, v in value.items() if v is not None}
        return value

    @property
    def parent(self) -> Optional[OutlineNode]:
        return self._parent

    def link_children(self) -> None:
        """Point every descendant's parent back-reference at its container."""
        for child in self.children:
            child._parent = self
            child.link_children()

    def iter_subtree(self) -> Iterator[OutlineNode]:
        yield self
        for child in self.children:
            yield from child.iter_subtree()


class OutlineDocument(BaseModel):
    title: str = ""
    nodes: list[OutlineNode] = Field(default_factory=list)


# ── Mirror models ───────────────────────────────────────────────────

class MirrorSettings(BaseModel):
    attach_root: Path
    mirror_root: Optional[Path] = None
    symlinks_dir: str = ".tree.symlinks"
    data_link: str = "_data"
    attach_tag: str = "ATTACH"
    inherit_property: str = "ATTACH_DIR_INHERIT"
    dir_property: str = "DIR"
    detect_files: bool = True
    ignored_files: frozenset[str] = frozenset()

    @classmethod
    def from_config(cls, base_dir: Path, mirror_root: Optional[Path] = None) -> MirrorSettings:
        """Build settings from environment config, anchoring relative paths at ``base_dir``."""
        attach_root = config.ATTACH_ROOT
        if not attach_root.is_absolute():
            attach_root = base_dir / attach_root
        return cls(
            attach_root=attach_root,
            mirror_root=mirror_root if mirror_root is not None else config.MIRROR_ROOT,
            symlinks_dir=config.SYMLINKS_DIR,
            data_link=config.DATA_LINK,
            attach_tag=config.ATTACH_TAG,
            inherit_property=config.INHERIT_PROPERTY,
            dir_property=config.DIR_PROPERTY,
            detect_files=config.DETECT_FILES,
            ignored_files=config.IGNORED_FILES,
        )


class MirrorChange(BaseModel):
    action: str  # "mkdir" | "link" | "relink" | "unlink"
    path: str
    target: Optional[str] = None


class SyncReport(BaseModel):
    changes: list[MirrorChange] = Field(default_factory=list)
    visitedCount: int = 0

    @property
    def mutated(self) -> bool:
        return bool(self.changes)

    def record(self, action: str, path: Path, target: Optional[Path] = None) -> None:
        self.changes.append(
            MirrorChange(action=action, path=str(path), target=str(target) if target is not None else None)
        )


# ── API payloads ────────────────────────────────────────────────────

class NodeSummary(BaseModel):
    id: Optional[str] = None
    title: str
    mirrorName: str = ""
    state: str = "absent"  # "absent" | "data-only" | "branch"
    hasOwnAttachment: bool = False
    attachDirInherited: bool = False
    browsePath: Optional[str] = None


class AttachDirResult(BaseModel):
    nodeId: str
    attachDir: str
    mirrorPath: Optional[str] = None
    report: SyncReport = Field(default_factory=SyncReport)
