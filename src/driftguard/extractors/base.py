"""
Extractor contract.

An extractor turns one artifact class into canonical entities. Absence of the
artifact is a valid state (``available=False`` plus a skip notice); a present
artifact that cannot be parsed is recorded as an ``ExtractionFailure`` and the
remaining files of the class are still extracted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import structlog

from driftguard.config.guard import GuardConfig
from driftguard.models import ArtifactKind

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class ExtractionFailure:
    """A present artifact that could not be read or parsed."""

    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason}


@dataclass
class ExtractionResult:
    """Entities and diagnostics produced by one extractor."""

    extractor: str
    kind: ArtifactKind
    entities: list[Any] = field(default_factory=list)
    available: bool = True
    notices: list[str] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)

    def of_type(self, entity_type: type[T]) -> list[T]:
        return [e for e in self.entities if isinstance(e, entity_type)]

    def skip(self, notice: str) -> ExtractionResult:
        """Mark the artifact class as absent."""
        self.available = False
        self.notices.append(notice)
        logger.info("extractor_skipped", extractor=self.extractor, reason=notice)
        return self

    def fail(self, path: str, reason: str) -> None:
        self.failures.append(ExtractionFailure(path=path, reason=reason))
        logger.warning("extraction_failed", extractor=self.extractor, path=path, reason=reason)


class BaseExtractor(ABC):
    """Base class for artifact extractors."""

    name: str = "base"
    kind: ArtifactKind
    description: str = ""

    def __init__(self, config: GuardConfig):
        self.config = config

    @abstractmethod
    def extract(self, root: Path) -> ExtractionResult:
        """Extract canonical entities from the artifacts under ``root``."""
        pass

    def new_result(self) -> ExtractionResult:
        return ExtractionResult(extractor=self.name, kind=self.kind)

    @staticmethod
    def relative(root: Path, path: Path) -> str:
        """POSIX path of ``path`` relative to the validated root."""
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            return path.as_posix()

    def read_text(self, root: Path, path: Path, result: ExtractionResult) -> str | None:
        """Read a file, recording a failure instead of raising."""
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            result.fail(self.relative(root, path), f"unreadable: {e}")
            return None


def line_of(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1
