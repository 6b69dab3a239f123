"""Extract datasource definitions from Grafana provisioning YAML."""

from __future__ import annotations

from pathlib import Path

import yaml

from driftguard.extractors.base import BaseExtractor, ExtractionResult
from driftguard.models import ArtifactKind, DatasourceDefinition


class DatasourceExtractor(BaseExtractor):
    """Provisioned datasources with an explicit uid."""

    name = "datasources"
    kind = ArtifactKind.DATASOURCES
    description = "Grafana datasource provisioning"

    def extract(self, root: Path) -> ExtractionResult:
        result = self.new_result()
        rel_config = self.config.paths.datasources
        file_path = root / rel_config

        if not file_path.is_file():
            return result.skip(f"datasource provisioning not found: {rel_config}")

        rel = self.relative(root, file_path)
        text = self.read_text(root, file_path, result)
        if text is None:
            return result

        try:
            documents = [d for d in yaml.safe_load_all(text) if d is not None]
        except yaml.YAMLError as e:
            result.fail(rel, f"invalid YAML: {e}")
            return result

        for document in documents:
            if not isinstance(document, dict):
                continue
            for entry in document.get("datasources") or []:
                if not isinstance(entry, dict):
                    continue
                uid = entry.get("uid")
                if uid is None or uid == "":
                    continue
                result.entities.append(
                    DatasourceDefinition(
                        uid=str(uid),
                        source_file=rel,
                        name=entry.get("name"),
                        type=entry.get("type"),
                    )
                )

        if not result.entities:
            result.notices.append(
                f"no datasource UIDs defined in {rel}; add explicit 'uid:' fields"
            )
        return result
