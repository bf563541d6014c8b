"""
Incremental replication positions.

A position is opaque to the control plane; it is captured once per shard
and persisted in text form for the log reader that resumes from it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

BINLOG_SEPARATOR = "#"


class IngestPosition(ABC):
    """Marker of how far incremental replication has read."""

    @abstractmethod
    def to_text(self) -> str:
        ...


@dataclass(frozen=True)
class WalPosition(IngestPosition):
    """PostgreSQL / openGauss log sequence number, e.g. ``0/16B3748``."""

    lsn: str

    def to_text(self) -> str:
        return self.lsn


@dataclass(frozen=True)
class BinlogPosition(IngestPosition):
    """MySQL binlog file and offset."""

    file_name: str
    position: int
    server_id: Optional[int] = None

    def to_text(self) -> str:
        parts = [self.file_name, str(self.position)]
        if self.server_id is not None:
            parts.append(str(self.server_id))
        return BINLOG_SEPARATOR.join(parts)
