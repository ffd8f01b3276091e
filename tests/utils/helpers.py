"""
Test helper utilities for storage-core library.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Union


def create_file_tree(root: Path, entries: Dict[str, Union[str, bytes, None]]) -> Path:
    """
    Create files and directories under root.

    Args:
        root: Directory to create entries in
        entries: Mapping of relative path to content; ``None`` creates a directory

    Returns:
        The root path
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative_path, content in entries.items():
        target = root / relative_path
        if content is None:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return root


class RecordingVisitor:
    """Async visitor that records calls and detects overlapping invocations."""

    def __init__(self, delay: float = 0.01, fail_on: str = None):
        self.visited: List[str] = []
        self.active = 0
        self.max_active = 0
        self.delay = delay
        self.fail_on = fail_on

    async def __call__(self, path: str) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_on and path.endswith(self.fail_on):
                raise RuntimeError(f"visitor failed on {path}")
            self.visited.append(path)
        finally:
            self.active -= 1
