"""An in-memory B+ tree of string keys to byte values, with disk snapshots."""

from __future__ import annotations

import base64
import json
import os
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from wundradb.wal import CreateTable, Insert, WalEntry

NODE_SIZE = 256
CHECKPOINT_THRESHOLD = 1000
_FORMAT_VERSION = 1


@dataclass(eq=False)
class _Node:
    is_leaf: bool
    keys: List[str] = field(default_factory=list)
    values: List[bytes] = field(default_factory=list)
    children: List["_Node"] = field(default_factory=list)
    next_leaf: Optional["_Node"] = None
    prev_leaf: Optional["_Node"] = None

    def is_full(self) -> bool:
        return len(self.keys) >= NODE_SIZE


_Split = Optional[Tuple[str, _Node]]


class BPlusTree:
    """Sorted key-value store; leaves are linked for ordered scans."""

    def __init__(self) -> None:
        self._root: Optional[_Node] = None
        self._leaf_head: Optional[_Node] = None
        self._operation_count = 0

    def insert(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any value already there."""
        if not isinstance(key, str):
            raise TypeError(f"key must be str, not {type(key).__name__}")
        value = bytes(value)
        if self._root is None:
            self._root = _Node(is_leaf=True, keys=[key], values=[value])
            self._leaf_head = self._root
        else:
            split = self._insert(self._root, key, value)
            if split is not None:
                separator, right = split
                self._root = _Node(
                    is_leaf=False, keys=[separator], children=[self._root, right]
                )
        self._operation_count += 1

    def _insert(self, node: _Node, key: str, value: bytes) -> _Split:
        if node.is_leaf:
            index = bisect_left(node.keys, key)
            if index < len(node.keys) and node.keys[index] == key:
                node.values[index] = value
                return None
            node.keys.insert(index, key)
            node.values.insert(index, value)
            return self._split_leaf(node) if node.is_full() else None

        index = bisect_right(node.keys, key)
        split = self._insert(node.children[index], key, value)
        if split is None:
            return None
        separator, right = split
        node.keys.insert(index, separator)
        node.children.insert(index + 1, right)
        return self._split_internal(node) if node.is_full() else None

    @staticmethod
    def _split_leaf(node: _Node) -> Tuple[str, _Node]:
        mid = len(node.keys) // 2
        right = _Node(is_leaf=True, keys=node.keys[mid:], values=node.values[mid:])
        del node.keys[mid:]
        del node.values[mid:]
        right.next_leaf = node.next_leaf
        right.prev_leaf = node
        if node.next_leaf is not None:
            node.next_leaf.prev_leaf = right
        node.next_leaf = right
        return right.keys[0], right

    @staticmethod
    def _split_internal(node: _Node) -> Tuple[str, _Node]:
        mid = len(node.keys) // 2
        promoted = node.keys[mid]
        right = _Node(
            is_leaf=False,
            keys=node.keys[mid + 1 :],
            children=node.children[mid + 1 :],
        )
        del node.keys[mid:]
        del node.children[mid + 1 :]
        return promoted, right

    def _find_leaf(self, key: str) -> Optional[_Node]:
        node = self._root
        if node is None:
            return None
        while not node.is_leaf:
            node = node.children[bisect_right(node.keys, key)]
        return node

    def get(self, key: str) -> Optional[bytes]:
        """The value stored under key, or None."""
        leaf = self._find_leaf(key)
        if leaf is None:
            return None
        index = bisect_left(leaf.keys, key)
        if index < len(leaf.keys) and leaf.keys[index] == key:
            return leaf.values[index]
        return None

    def _leaves_from(self, leaf: Optional[_Node]) -> Iterator[_Node]:
        while leaf is not None:
            yield leaf
            leaf = leaf.next_leaf

    def scan_prefix(self, prefix: str) -> List[str]:
        """All keys starting with prefix, in sorted order."""
        results: List[str] = []
        for leaf in self._leaves_from(self._find_leaf(prefix)):
            for key in leaf.keys:
                if key.startswith(prefix):
                    results.append(key)
                elif key > prefix:
                    return results
        return results

    def save_to_disk(self, path: Union[str, os.PathLike]) -> None:
        """Write a snapshot of the whole tree to path."""
        snapshot = {
            "version": _FORMAT_VERSION,
            "operation_count": self._operation_count,
            "root": None if self._root is None else _node_to_dict(self._root),
        }
        Path(path).write_text(json.dumps(snapshot, separators=(",", ":")), "utf-8")

    def load_from_disk(self, path: Union[str, os.PathLike]) -> None:
        """Replace this tree with the snapshot stored at path."""
        file = Path(path)
        if not file.exists():
            raise FileNotFoundError(f"Storage file does not exist: {file}")
        try:
            snapshot = json.loads(file.read_text("utf-8"))
            if snapshot["version"] != _FORMAT_VERSION:
                raise ValueError(f"unsupported snapshot version: {snapshot['version']!r}")
            operation_count = int(snapshot["operation_count"])
            root_data = snapshot["root"]
            root = None if root_data is None else _node_from_dict(root_data)
        except (KeyError, TypeError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError(f"invalid storage snapshot: {file}") from exc

        leaves = list(_collect_leaves(root)) if root is not None else []
        previous: Optional[_Node] = None
        for leaf in leaves:
            leaf.prev_leaf = previous
            if previous is not None:
                previous.next_leaf = leaf
            previous = leaf

        self._root = root
        self._leaf_head = leaves[0] if leaves else None
        self._operation_count = operation_count

    def apply_wal_entry(self, entry: WalEntry) -> None:
        """Redo a logged operation against the tree."""
        match entry.operation:
            case Insert(key=key, row=row):
                self.insert(key, row.to_bytes())
            case CreateTable():
                pass
            case other:
                raise TypeError(f"unsupported WAL operation: {other!r}")

    def should_checkpoint(self) -> bool:
        return self._operation_count >= CHECKPOINT_THRESHOLD

    def reset_operation_count(self) -> None:
        self._operation_count = 0


def _node_to_dict(node: _Node) -> Dict[str, Any]:
    if node.is_leaf:
        return {
            "leaf": True,
            "keys": list(node.keys),
            "values": [base64.b64encode(v).decode("ascii") for v in node.values],
        }
    return {
        "leaf": False,
        "keys": list(node.keys),
        "children": [_node_to_dict(child) for child in node.children],
    }


def _node_from_dict(data: Dict[str, Any]) -> _Node:
    keys = [str(k) for k in data["keys"]]
    if data["leaf"]:
        values = [base64.b64decode(v) for v in data["values"]]
        if len(values) != len(keys):
            raise ValueError("leaf has mismatched keys and values")
        return _Node(is_leaf=True, keys=keys, values=values)
    children = [_node_from_dict(child) for child in data["children"]]
    if len(children) != len(keys) + 1:
        raise ValueError("internal node has the wrong number of children")
    return _Node(is_leaf=False, keys=keys, children=children)


def _collect_leaves(node: _Node) -> Iterator[_Node]:
    if node.is_leaf:
        yield node
        return
    for child in node.children:
        yield from _collect_leaves(child)