#!/usr/bin/env python3
"""
filesystem - the in-memory node tree behind a webterm session.

Core philosophy:
- Nodes live in an arena and are addressed by integer handles
- Directories own their children by handle; each node stores its parent
  handle only to rebuild its path
- The tree is strict: one container per node, unique names per container
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Union


@dataclass(frozen=True)
class DynamicContent:
    """Mutable in-memory bytes written from inside the terminal."""
    data: bytes = b""


@dataclass(frozen=True)
class StaticContent:
    """Bytes fetched from a remote resource, remembering where they came from."""
    data: bytes
    url: str


FileContent = Union[DynamicContent, StaticContent]


@dataclass
class Node:
    """Base class for all filesystem nodes."""
    name: str = ""
    parent: Optional[int] = None  # non-owning back reference

    def is_file(self) -> bool:
        return False

    def is_dir(self) -> bool:
        return False


@dataclass
class DirNode(Node):
    """Directory node owning its children by handle."""
    children: Dict[str, int] = field(default_factory=dict)

    def is_dir(self) -> bool:
        return True


@dataclass
class RootNode(DirNode):
    """The namespace root; never has a parent."""


@dataclass
class FileNode(Node):
    """Regular file node."""
    content: FileContent = field(default_factory=DynamicContent)

    def is_file(self) -> bool:
        return True

    def read(self) -> bytes:
        return self.content.data

    def write(self, data: Union[str, bytes]) -> None:
        """Replace the content; the file becomes dynamic."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.content = DynamicContent(data)

    def append(self, data: Union[str, bytes]) -> None:
        """Append to the existing bytes; the file becomes dynamic."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.content = DynamicContent(self.content.data + data)


# Nested mapping used to describe an initial tree: a Mapping is a directory,
# anything else is file content.
TreeSpec = Mapping[str, Union['TreeSpec', FileContent, bytes, str]]


class FileSystem:
    """
    Arena-backed virtual filesystem.

    Every node is stored once in ``nodes`` under a handle that is never
    reused. The root always has handle ``ROOT``.
    """

    ROOT = 0

    def __init__(self):
        # The arena: handle -> Node
        self.nodes: Dict[int, Node] = {}
        self._next_handle = 0
        self._add_node(RootNode())

    def _add_node(self, node: Node) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self.nodes[handle] = node
        return handle

    @classmethod
    def from_tree(cls, tree: TreeSpec) -> 'FileSystem':
        """Build a filesystem from a nested mapping of names."""
        fs = cls()
        fs._populate(cls.ROOT, tree)
        return fs

    def _populate(self, dir_handle: int, tree: TreeSpec) -> None:
        for name, entry in tree.items():
            if isinstance(entry, Mapping):
                self._populate(self.add_dir(dir_handle, name), entry)
            else:
                if isinstance(entry, str):
                    entry = entry.encode('utf-8')
                if isinstance(entry, bytes):
                    entry = DynamicContent(entry)
                self.add_file(dir_handle, name, entry)

    # Lookup

    def node(self, handle: int) -> Node:
        return self.nodes[handle]

    def dir(self, handle: int) -> DirNode:
        node = self.nodes[handle]
        if not node.is_dir():
            raise ValueError(f"node {handle} is not a directory")
        return node

    def child(self, dir_handle: int, name: str) -> Optional[int]:
        """Handle of a named child, or None."""
        return self.dir(dir_handle).children.get(name)

    def children(self, dir_handle: int) -> Dict[str, int]:
        return dict(self.dir(dir_handle).children)

    def path_segments(self, handle: int) -> List[str]:
        """Names from the root down to ``handle``."""
        segments = []
        node = self.nodes[handle]
        while node.parent is not None:
            segments.append(node.name)
            node = self.nodes[node.parent]
        segments.reverse()
        return segments

    def path(self, handle: int) -> str:
        return '/' + '/'.join(self.path_segments(handle))

    def is_ancestor(self, ancestor: int, handle: int) -> bool:
        """True if ``ancestor`` is ``handle`` or contains it."""
        current: Optional[int] = handle
        while current is not None:
            if current == ancestor:
                return True
            current = self.nodes[current].parent
        return False

    def walk(self, handle: int) -> Iterator[int]:
        """Yield ``handle`` and every handle below it, parents first."""
        stack = [handle]
        while stack:
            current = stack.pop()
            yield current
            node = self.nodes[current]
            if node.is_dir():
                stack.extend(reversed(list(node.children.values())))

    # Mutation

    def _attach(self, dir_handle: int, node: Node) -> int:
        parent = self.dir(dir_handle)
        if node.name in parent.children:
            raise ValueError(f"'{node.name}' already exists in {self.path(dir_handle)}")
        node.parent = dir_handle
        handle = self._add_node(node)
        parent.children[node.name] = handle
        return handle

    def add_dir(self, dir_handle: int, name: str) -> int:
        """Create an empty directory under ``dir_handle``."""
        return self._attach(dir_handle, DirNode(name=name))

    def add_file(self, dir_handle: int, name: str,
                 content: Optional[FileContent] = None) -> int:
        """Create a file under ``dir_handle``."""
        return self._attach(dir_handle, FileNode(name=name, content=content or DynamicContent()))

    def remove(self, handle: int) -> int:
        """Detach a node and drop its whole subtree. Returns nodes removed."""
        node = self.nodes[handle]
        if node.parent is None:
            raise ValueError("cannot remove the root")
        doomed = list(self.walk(handle))
        del self.dir(node.parent).children[node.name]
        for h in doomed:
            del self.nodes[h]
        return len(doomed)
