"""Hierarchy scanner: snapshot a project tree with per-file classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gophex_metadata.classifier import DEFAULT_CLASSIFIER, PathClassifier

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """Raised when the project tree cannot be traversed."""


# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileNode:
    """A file leaf carrying its classification label."""

    label: str

    def to_json(self) -> str:
        return self.label


@dataclass
class DirectoryNode:
    """A directory: path segment -> child node."""

    children: dict[str, Node] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Return the nested ``{name: {...} | "label"}`` JSON shape."""
        return {name: child.to_json() for name, child in self.children.items()}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> DirectoryNode:
        """Rebuild a tree from its JSON shape.

        Raises:
            ValueError: If a value is neither an object nor a string.
        """
        children: dict[str, Node] = {}
        for name, value in data.items():
            if isinstance(value, dict):
                children[name] = cls.from_json(value)
            elif isinstance(value, str):
                children[name] = FileNode(value)
            else:
                msg = f"Invalid hierarchy entry {name!r}: {type(value).__name__}"
                raise ValueError(msg)
        return cls(children)

    def get(self, rel_path: str) -> Node | None:
        """Look up a node by slash-separated relative path."""
        node: Node = self
        for part in rel_path.strip("/").split("/"):
            if not isinstance(node, DirectoryNode) or part not in node.children:
                return None
            node = node.children[part]
        return node

    def count_files(self) -> int:
        total = 0
        for child in self.children.values():
            if isinstance(child, DirectoryNode):
                total += child.count_files()
            else:
                total += 1
        return total


Node = DirectoryNode | FileNode


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _is_skipped(name: str) -> bool:
    """Hidden entries are skipped, except ``.env*`` files."""
    return name.startswith(".") and not name.startswith(".env")


def add_path(
    root: DirectoryNode,
    rel_path: str,
    *,
    is_dir: bool,
    classifier: PathClassifier = DEFAULT_CLASSIFIER,
) -> None:
    """Insert *rel_path* into *root*, creating intermediate directories.

    Existing directory nodes are reused.  A file becomes a leaf labelled with
    ``classifier.classify(rel_path)``; a directory becomes an (initially empty)
    :class:`DirectoryNode` unless one is already present.
    """
    normalized = rel_path.replace("\\", "/").strip("/")
    parts = normalized.split("/")
    current = root
    for part in parts[:-1]:
        child = current.children.get(part)
        if not isinstance(child, DirectoryNode):
            child = DirectoryNode()
            current.children[part] = child
        current = child

    leaf = parts[-1]
    if is_dir:
        if not isinstance(current.children.get(leaf), DirectoryNode):
            current.children[leaf] = DirectoryNode()
    else:
        current.children[leaf] = FileNode(classifier.classify(normalized))


def _walk(
    directory: Path,
    prefix: str,
    root: DirectoryNode,
    classifier: PathClassifier,
) -> None:
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        msg = f"failed to scan project hierarchy: {directory}: {exc.strerror or exc}"
        raise ScanError(msg) from exc

    for entry in entries:
        if _is_skipped(entry.name):
            continue
        rel_path = f"{prefix}{entry.name}"
        try:
            is_dir = entry.is_dir() and not entry.is_symlink()
        except OSError as exc:
            msg = f"failed to scan project hierarchy: {entry}: {exc.strerror or exc}"
            raise ScanError(msg) from exc

        add_path(root, rel_path, is_dir=is_dir, classifier=classifier)
        if is_dir:
            _walk(entry, f"{rel_path}/", root, classifier)


def scan_hierarchy(
    project_root: Path,
    *,
    classifier: PathClassifier = DEFAULT_CLASSIFIER,
) -> DirectoryNode:
    """Walk *project_root* and return its classified hierarchy.

    The root itself is not part of the result.  Hidden entries (other than
    ``.env*``) are skipped and hidden directories are not descended into.

    Raises:
        ScanError: On any traversal failure; no partial tree is returned.
    """
    root = DirectoryNode()
    _walk(project_root, "", root, classifier)
    logger.debug("Scanned %s: %d files", project_root, root.count_files())
    return root
