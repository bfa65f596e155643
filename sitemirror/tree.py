"""Sparse trie of metadata records keyed by resource path.

In web context a node can be a file and a directory at once: ``/foo`` may
have content while ``/foo/bar`` has content too. Each node therefore holds
an optional record and an optional mapping of children, keyed by the path
segment prefixed with ``/``.

The persisted form is ``[record-or-null]`` or ``[record-or-null, children]``,
so an empty tree is ``[null]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .record import MetadataRecord


@dataclass(slots=True)
class TreeNode:
    """One path segment; ``children is None`` means no children mapping."""

    record: Optional[MetadataRecord] = None
    children: Optional[Dict[str, "TreeNode"]] = None

    def to_json(self) -> List[Any]:
        data: List[Any] = [self.record.to_dict() if self.record else None]
        if self.children is not None:
            data.append({key: child.to_json() for key, child in self.children.items()})
        return data

    @classmethod
    def from_json(cls, data: Any) -> "TreeNode":
        if not isinstance(data, list) or len(data) not in (1, 2):
            raise ValueError(f"Tree node must be a list of one or two items, got {data!r:.80}")
        record = MetadataRecord.from_dict(data[0]) if data[0] is not None else None
        children = None
        if len(data) == 2:
            if not isinstance(data[1], dict):
                raise ValueError("Tree node children must be an object")
            children = {}
            for key, child in data[1].items():
                if not key.startswith("/"):
                    raise ValueError(f"Tree node key must start with '/': {key!r}")
                children[key] = cls.from_json(child)
        return cls(record=record, children=children)


def _segments(path: str) -> List[str]:
    return ["/" + part for part in path[1:].split("/")]


class MetadataTree:
    """Point get/set access to records by resource path."""

    def __init__(self, root: Optional[TreeNode] = None) -> None:
        self.root = root or TreeNode()

    def get(self, path: str) -> Optional[MetadataRecord]:
        """Record stored for ``path``, or None if it was never visited."""
        node = self.root
        for key in _segments(path):
            if node.children is None or key not in node.children:
                return None
            node = node.children[key]
        return node.record

    def set(self, path: str, record: MetadataRecord) -> None:
        node = self.root
        for key in _segments(path):
            if node.children is None:
                node.children = {}
            node = node.children.setdefault(key, TreeNode())
        node.record = record

    def items(self) -> Iterator[Tuple[str, MetadataRecord]]:
        """Yield ``(path, record)`` for every node carrying a record."""
        stack: List[Tuple[str, TreeNode]] = [("", self.root)]
        while stack:
            prefix, node = stack.pop()
            if node.record is not None and prefix:
                yield prefix, node.record
            for key, child in (node.children or {}).items():
                stack.append((prefix + key, child))

    def __len__(self) -> int:
        return sum(1 for _ in self.items())

    def to_json(self) -> List[Any]:
        return self.root.to_json()

    @classmethod
    def from_json(cls, data: Any) -> "MetadataTree":
        return cls(TreeNode.from_json(data))
