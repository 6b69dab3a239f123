"""Extract documented metric names from the metric catalog markdown."""

from __future__ import annotations

import re
from pathlib import Path

from driftguard.extractors.base import BaseExtractor, ExtractionResult
from driftguard.models import ArtifactKind, CatalogEntry

HEADING_PATTERN = re.compile(r"^###\s+`(\w+)`")


class CatalogExtractor(BaseExtractor):
    name = "catalog"
    kind = ArtifactKind.CATALOG
    description = "Metric catalog documentation"

    def extract(self, root: Path) -> ExtractionResult:
        result = self.new_result()
        directory = root / self.config.paths.catalog

        if not directory.is_dir():
            return result.skip(f"metric catalog not found: {self.config.paths.catalog}")

        for file_path in sorted(p for p in directory.glob("*.md") if p.is_file()):
            rel = self.relative(root, file_path)
            text = self.read_text(root, file_path, result)
            if text is None:
                continue
            for number, line in enumerate(text.splitlines(), start=1):
                match = HEADING_PATTERN.match(line)
                if match:
                    result.entities.append(
                        CatalogEntry(metric_name=match.group(1), catalog_file=rel, line=number)
                    )

        return result
