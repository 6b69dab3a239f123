"""
Extract queries, datasource references and template variables from dashboard JSON.

The whole document is walked, not just the top-level ``panels`` array, so
panels collapsed into ``type: "row"`` containers (at any depth) and query
objects outside of ``targets`` are found as well.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from driftguard.extractors.base import BaseExtractor, ExtractionResult
from driftguard.models import (
    ArtifactKind,
    DashboardQuery,
    DatasourceReference,
    TemplateVariable,
)

BUILTIN_DATASOURCE_UID = "-- Grafana --"


@dataclass(frozen=True)
class _PanelContext:
    panel_id: int | str | None = None
    title: str | None = None
    datasource_type: str | None = None
    datasource_uid: str | None = None


def _datasource_of(node: dict[str, Any]) -> tuple[str | None, str | None]:
    """(type, uid) of a node's own datasource, if it declares one."""
    ds = node.get("datasource")
    if isinstance(ds, dict):
        ds_type = ds.get("type")
        uid = ds.get("uid")
        return (
            ds_type if isinstance(ds_type, str) else None,
            uid if isinstance(uid, str) else None,
        )
    if isinstance(ds, str):
        # Legacy dashboards reference the datasource by a bare name/uid string
        return None, ds
    return None, None


def _is_panel(node: dict[str, Any]) -> bool:
    return isinstance(node.get("targets"), list)


def _panel_context(node: dict[str, Any]) -> _PanelContext:
    ds_type, ds_uid = _datasource_of(node)
    return _PanelContext(
        panel_id=node.get("id"),
        title=node.get("title") if isinstance(node.get("title"), str) else None,
        datasource_type=ds_type,
        datasource_uid=ds_uid,
    )


class DashboardWalker:
    """Recursive walk over one dashboard document."""

    def __init__(self, dashboard_file: str, log_backend: str):
        self.dashboard_file = dashboard_file
        self.log_backend = log_backend
        self.queries: list[DashboardQuery] = []
        self.references: list[DatasourceReference] = []
        self.variables: list[TemplateVariable] = []

    def walk(self, document: dict[str, Any]) -> None:
        self._visit(document, "", None, is_target=False)
        self._collect_variables(document)

    def _visit(
        self,
        node: dict[str, Any],
        path: str,
        panel: _PanelContext | None,
        is_target: bool,
    ) -> None:
        if _is_panel(node):
            panel = _panel_context(node)

        self._record_reference(node, path)

        expr = node.get("expr")
        if isinstance(expr, str):
            self._record_query(node, expr, path, panel, is_target)

        for key, value in node.items():
            child_path = f"{path}.{key}" if path else key
            if isinstance(value, dict):
                self._visit(value, child_path, panel, is_target=False)
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    if not isinstance(item, dict):
                        continue
                    item_path = f"{child_path}[{index}]"
                    if key == "panels":
                        # Every panels[] entry starts a fresh panel context
                        self._visit(item, item_path, _panel_context(item), is_target=False)
                    else:
                        in_targets = key == "targets" and _is_panel(node)
                        self._visit(item, item_path, panel, is_target=in_targets)

    def _record_reference(self, node: dict[str, Any], path: str) -> None:
        ds = node.get("datasource")
        if not isinstance(ds, dict):
            return
        uid = ds.get("uid")
        if not isinstance(uid, str) or not uid:
            return
        if uid == BUILTIN_DATASOURCE_UID or uid.startswith("$"):
            return
        self.references.append(
            DatasourceReference(
                uid=uid,
                dashboard_file=self.dashboard_file,
                json_path=f"{path}.datasource" if path else "datasource",
            )
        )

    def _record_query(
        self,
        node: dict[str, Any],
        expr: str,
        path: str,
        panel: _PanelContext | None,
        is_target: bool,
    ) -> None:
        ds_type, ds_uid = _datasource_of(node)
        # Each field falls back to the enclosing panel independently
        if panel is not None:
            ds_type = ds_type or panel.datasource_type
            ds_uid = ds_uid or panel.datasource_uid
        ref_id = node.get("refId")

        self.queries.append(
            DashboardQuery(
                expr=expr,
                dashboard_file=self.dashboard_file,
                json_path=path,
                datasource_type=ds_type,
                datasource_uid=ds_uid,
                panel_id=panel.panel_id if panel else None,
                panel_title=panel.title if panel else None,
                ref_id=ref_id if isinstance(ref_id, str) else None,
                is_target=is_target,
                has_editor_mode="editorMode" in node,
                range=node.get("range") is True,
                instant=node.get("instant") is True,
            )
        )

    def _collect_variables(self, document: dict[str, Any]) -> None:
        templating = document.get("templating")
        if not isinstance(templating, dict):
            return
        entries = templating.get("list")
        if not isinstance(entries, list):
            return

        for entry in entries:
            if not isinstance(entry, dict):
                continue
            ds_type, ds_uid = _datasource_of(entry)
            if self.log_backend not in (ds_type, ds_uid):
                continue
            name = entry.get("name")
            if not isinstance(name, str):
                continue
            query = entry.get("query")
            label = stream = None
            if isinstance(query, dict):
                label = query.get("label") if isinstance(query.get("label"), str) else None
                stream = query.get("stream") if isinstance(query.get("stream"), str) else None
            self.variables.append(
                TemplateVariable(
                    name=name,
                    dashboard_file=self.dashboard_file,
                    queried_label=label,
                    stream=stream,
                )
            )


def unwrap_dashboard(document: Any) -> dict[str, Any] | None:
    """Return the dashboard object, unwrapping API-style {"dashboard": {...}}."""
    if not isinstance(document, dict):
        return None
    inner = document.get("dashboard")
    if isinstance(inner, dict) and "panels" not in document:
        return inner
    return document


class DashboardExtractor(BaseExtractor):
    """Queries, datasource references and log template variables."""

    name = "dashboards"
    kind = ArtifactKind.DASHBOARDS
    description = "Grafana dashboard JSON"

    def extract(self, root: Path) -> ExtractionResult:
        result = self.new_result()
        directory = root / self.config.paths.dashboards

        if not directory.is_dir():
            return result.skip(f"dashboards directory not found: {self.config.paths.dashboards}")

        files = sorted(p for p in directory.glob("*.json") if p.is_file())
        if not files:
            result.notices.append(f"no dashboards found in {self.config.paths.dashboards}")

        for file_path in files:
            rel = self.relative(root, file_path)
            text = self.read_text(root, file_path, result)
            if text is None:
                continue
            try:
                document = json.loads(text)
            except json.JSONDecodeError as e:
                result.fail(rel, f"invalid JSON: {e}")
                continue

            dashboard = unwrap_dashboard(document)
            if dashboard is None:
                result.fail(rel, "top-level JSON value is not an object")
                continue

            walker = DashboardWalker(rel, self.config.backends.logs)
            walker.walk(dashboard)
            result.entities.extend(walker.queries)
            result.entities.extend(walker.references)
            result.entities.extend(walker.variables)

        return result
