# src/flatscribe/core/tree.py
from typing import Dict, Iterable, Iterator, List, Tuple

from flatscribe.core.filters import normalize_path
from flatscribe.models import FileNode, NodeKind

ROOT_NAME = "<root>"


def _sort_key(node: FileNode) -> Tuple[bool, str]:
    # Directories first, then plain code-point order
    return (not node.is_dir, node.name)


def _sort_tree(node: FileNode) -> None:
    node.children.sort(key=_sort_key)
    for child in node.children:
        if child.is_dir:
            _sort_tree(child)


def build_file_tree(file_paths: Iterable[str]) -> FileNode:
    """
    Builds a sorted FileNode tree from flat relative file paths.
    The result does not depend on the order of file_paths.
    """
    root = FileNode(name=ROOT_NAME, relative_path=".", kind=NodeKind.DIRECTORY)
    index: Dict[str, FileNode] = {}

    for raw_path in file_paths:
        path = normalize_path(raw_path)
        if not path:
            continue
        parts = path.split("/")
        current = root
        current_path = ""
        for i, part in enumerate(parts):
            current_path = f"{current_path}/{part}" if current_path else part
            node = index.get(current_path)
            if node is None:
                kind = NodeKind.FILE if i == len(parts) - 1 else NodeKind.DIRECTORY
                node = FileNode(name=part, relative_path=current_path, kind=kind)
                index[current_path] = node
                current.children.append(node)
            current = node

    _sort_tree(root)
    return root


def iter_files(node: FileNode) -> Iterator[FileNode]:
    """Yields file nodes depth-first, in tree order."""
    for child in node.children:
        if child.is_dir:
            yield from iter_files(child)
        else:
            yield child


def render_tree(root: FileNode) -> str:
    """Renders the tree with box-drawing connectors; directories end with '/'."""
    lines: List[str] = [f"{root.name}/"]

    def _generate_lines_recursive(node: FileNode, prefix: str):
        for i, child in enumerate(node.children):
            is_last = (i == len(node.children) - 1)
            connector = "└── " if is_last else "├── "
            name = f"{child.name}/" if child.is_dir else child.name
            lines.append(f"{prefix}{connector}{name}")

            if child.is_dir:
                new_prefix = prefix + ("    " if is_last else "│   ")
                _generate_lines_recursive(child, new_prefix)

    _generate_lines_recursive(root, "")
    return "\n".join(lines)
