from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Union

from .security import has_allowed_extension


@dataclass(frozen=True)
class SelectedFile:
    path: Path
    name: str
    size: int
    modified: float

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "SelectedFile":
        p = Path(path)
        st = p.stat()
        return cls(path=p, name=p.name, size=st.st_size, modified=st.st_mtime)

    @property
    def key(self) -> tuple[str, int, float]:
        return (self.name, self.size, self.modified)


class FileSelection:
    """Ordered list of presentations waiting to be uploaded.

    Two entries never share the same (name, size, modification time), and
    only .ppt/.pptx files get in. Mirrors the browser's drop-zone list.
    """

    def __init__(self) -> None:
        self._files: list[SelectedFile] = []

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[SelectedFile]:
        return iter(self._files)

    def __getitem__(self, index: int) -> SelectedFile:
        return self._files[index]

    @property
    def compact(self) -> bool:
        """The drop target shrinks to an "add more" tile once anything is selected."""
        return bool(self._files)

    def add(self, files: Iterable[Union[SelectedFile, str, os.PathLike]]) -> int:
        """Append new presentations and return how many were added."""
        seen = {f.key for f in self._files}
        added = 0
        for item in files:
            f = item if isinstance(item, SelectedFile) else SelectedFile.from_path(item)
            if not has_allowed_extension(f.name):
                continue
            if f.key in seen:
                continue
            seen.add(f.key)
            self._files.append(f)
            added += 1
        return added

    def remove_at(self, index: int) -> bool:
        # Negative indexes are not "from the end" here; out of range is a no-op.
        if index < 0 or index >= len(self._files):
            return False
        del self._files[index]
        return True

    def reset(self) -> None:
        self._files.clear()
