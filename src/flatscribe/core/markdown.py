# src/flatscribe/core/markdown.py
from pathlib import PurePosixPath
from typing import List, Mapping

from flatscribe.config import FALLBACK_LANGUAGE
from flatscribe.core.tree import iter_files, render_tree
from flatscribe.models import FileNode

TITLE = "# Project Snapshot"
# Four backticks, so files that contain ``` fences render intact
FENCE = "````"


def language_for(rel_path: str, language_map: Mapping[str, str]) -> str:
    path = PurePosixPath(rel_path)
    return (
        language_map.get(path.suffix.lower())
        or language_map.get(path.name)
        or FALLBACK_LANGUAGE
    )


def render_file_section(rel_path: str, content: str, language_map: Mapping[str, str]) -> str:
    language = language_for(rel_path, language_map)
    return f"### `{rel_path}`\n\n{FENCE}{language}\n{content}\n{FENCE}\n"


def render(tree: FileNode, contents: Mapping[str, str], language_map: Mapping[str, str]) -> str:
    """Renders the whole snapshot. Pure: same inputs, same bytes."""
    parts: List[str] = [
        TITLE,
        "",
        "## Project Tree",
        "",
        "```",
        render_tree(tree),
        "```",
        "",
        "---",
        "",
        "## File Contents",
        "",
    ]

    for node in iter_files(tree):
        content = contents.get(node.relative_path)
        if content is not None:
            parts.append(render_file_section(node.relative_path, content, language_map))

    return "\n".join(parts).rstrip("\n") + "\n"
