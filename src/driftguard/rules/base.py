"""
Consistency rule contract.

A rule is a pure function of the entity store. Rules never depend on each
other or on evaluation order, and a rule whose inputs are absent returns no
violations instead of guessing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from driftguard.models import ArtifactKind, Severity, Violation
from driftguard.store import EntityStore


class BaseRule(ABC):
    """Base class for consistency rules."""

    name: str = "base"
    description: str = "Base rule"
    group: str = ""
    requires: frozenset[ArtifactKind] = frozenset()

    @abstractmethod
    def validate(self, store: EntityStore) -> list[Violation]:
        """Check the store and return any violations."""
        pass

    def violation(
        self,
        location: str,
        message: str,
        severity: Severity = Severity.ERROR,
        hint: str | None = None,
    ) -> Violation:
        return Violation(
            check=self.name,
            location=location,
            message=message,
            severity=severity,
            hint=hint,
        )
