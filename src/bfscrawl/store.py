"""
Page records and the append-only store they are collected in.
"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Union


@dataclass(frozen=True, slots=True)
class PageRecord:
    """Title and bounded text excerpt of one crawled page."""
    url: str
    title: str = ""
    content: str = ""

    def to_dict(self) -> Dict[str, str]:
        # Key order is part of the snapshot format.
        return {"Title": self.title, "Content": self.content, "Url": self.url}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "PageRecord":
        return cls(url=data["Url"], title=data.get("Title", ""), content=data.get("Content", ""))


class SnapshotError(Exception):
    """The snapshot file could not be written or read."""


class Store:
    """Records in completion order. Nothing is ever removed."""

    def __init__(self) -> None:
        self._records: List[PageRecord] = []
        self._lock = threading.Lock()

    def append(self, record: PageRecord) -> None:
        """Add a finished page."""
        with self._lock:
            self._records.append(record)

    def records(self) -> List[PageRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[PageRecord]:
        return iter(self.records())

    def to_json(self) -> str:
        payload = [r.to_dict() for r in self.records()]
        return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"

    def save(self, path: Union[str, Path]) -> Path:
        """Write the snapshot to path and return it."""
        output_path = Path(path)
        try:
            output_path.write_text(self.to_json(), encoding="utf-8")
        except OSError as e:
            raise SnapshotError(f"cannot write {output_path}: {e}") from e
        return output_path


def load_snapshot(path: Union[str, Path]) -> List[PageRecord]:
    """Read a snapshot written by Store.save()."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")
        return [PageRecord.from_dict(item) for item in payload]
    except (OSError, ValueError, TypeError, KeyError) as e:
        raise SnapshotError(f"cannot read {path}: {e}") from e
