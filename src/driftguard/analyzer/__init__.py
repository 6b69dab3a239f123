"""
Structural text analyzer for end-to-end test source.

Works on raw lines, independent of the entity store: it needs brace and
line structure, not extracted facts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import structlog

from driftguard.analyzer.blocks import MAX_BLOCK_LINES, resolve_block
from driftguard.analyzer.detectors import BaseDetector, default_detectors
from driftguard.config.guard import GuardConfig
from driftguard.extractors.base import ExtractionFailure
from driftguard.models import ArtifactKind, Violation

logger = structlog.get_logger()


@dataclass
class AnalysisResult:
    """Violations and diagnostics from one analyzer pass."""

    files: list[str] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    available: bool = True
    notices: list[str] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)


class TestRigidityAnalyzer:
    """Runs the selected detectors over every configured test file."""

    __test__ = False  # not a pytest test class

    def __init__(self, config: GuardConfig, detectors: Sequence[BaseDetector] | None = None):
        self.config = config
        self.detectors = list(detectors) if detectors is not None else default_detectors()

    def test_files(self, root: Path) -> list[Path]:
        files: set[Path] = set()
        for pattern in self.config.paths.test_globs:
            files.update(p for p in root.glob(pattern) if p.is_file())
        return sorted(files)

    def analyze(self, root: Path) -> AnalysisResult:
        result = AnalysisResult()
        files = self.test_files(root)
        if not files:
            result.available = False
            patterns = ", ".join(self.config.paths.test_globs)
            result.notices.append(f"no test files match {patterns}")
            logger.info(
                "extractor_skipped", extractor=ArtifactKind.TESTS.value, patterns=patterns
            )
            return result

        for path in files:
            rel = path.relative_to(root).as_posix()
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as e:
                result.failures.append(ExtractionFailure(path=rel, reason=f"unreadable: {e}"))
                logger.warning(
                    "extraction_failed",
                    extractor=ArtifactKind.TESTS.value,
                    path=rel,
                    reason=str(e),
                )
                continue

            result.files.append(rel)
            for detector in self.detectors:
                result.violations.extend(detector.detect(rel, lines))

        logger.debug(
            "analysis_completed", files=len(result.files), violations=len(result.violations)
        )
        return result


__all__ = [
    "MAX_BLOCK_LINES",
    "AnalysisResult",
    "BaseDetector",
    "TestRigidityAnalyzer",
    "default_detectors",
    "resolve_block",
]
