"""
Test-rigidity detectors.

Each detector is a bounded-window scan over the lines of one test file and
reports constructs that let a test pass without verifying anything.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Sequence

from driftguard.analyzer.blocks import has_enforcement, resolve_block
from driftguard.models import Violation

TEST_RIGIDITY = "test-rigidity"

MAX_SNIPPET = 120

ARM_PATTERNS = (
    re.compile(r"^\s*\d{3}\s*=>\s*\{"),
    re.compile(r"^\s*Ok\(.*\)\s*=>\s*\{"),
    re.compile(r"^\s*Err\(.*status:\s*\d{3}.*\)\s*=>\s*\{"),
)

RETURN_PATTERN = re.compile(r"\breturn;")
AVAILABILITY_PATTERN = re.compile(r"\bis_\w*_available\b")
SKIP_MESSAGE_PATTERN = re.compile(
    r'e?println!\(\s*"[^"]*(?:SKIPPED|Skipping|Warning|not available|unavailable)'
)
WARNING_PATTERN = re.compile(r'"warning|\bwarn!\s*\(', re.IGNORECASE)
ASPIRATIONAL_PATTERN = re.compile(
    r"don.t fail|aspirational|future enhancement|not a hard failure", re.IGNORECASE
)
STATUS_COMPARISON_PATTERN = re.compile(r'==\s*\d{3}\b|contains\(\s*"\d{3}"\s*\)')
STATUS_ALTERNATION_PATTERN = re.compile(r"\b\d{3}\s*\|\s*\d{3}\b")
PLACEHOLDER_PATTERN = re.compile(r"\b(?:unimplemented|todo)!")
IGNORE_PATTERN = re.compile(r"#\[ignore")

AVAILABILITY_WINDOW = 4
SKIP_MESSAGE_WINDOW = 3
WARNING_RETURN_WINDOW = 5
PRECEDING_WINDOW = 15


def snippet(line: str) -> str:
    text = line.strip()
    if len(text) > MAX_SNIPPET:
        text = text[: MAX_SNIPPET - 3] + "..."
    return text


class BaseDetector(ABC):
    """Base class for test-rigidity detectors."""

    name: str = "base"
    description: str = "Base detector"
    group: str = TEST_RIGIDITY
    hint: str | None = None

    @abstractmethod
    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        """Scan one file and return any violations."""
        pass

    def violation(self, file: str, index: int, message: str) -> Violation:
        return Violation(
            check=self.name,
            location=f"{file}:{index + 1}",
            message=message,
            hint=self.hint,
        )


class AssertionFreeArmDetector(BaseDetector):
    """Status-code, Ok(...) and Err(... status: NNN ...) arms without enforcement."""

    name = "assertion-free-arm"
    description = "Match arms that accept an outcome without asserting on it"
    hint = "assert on the outcome inside the arm, or panic! for unexpected outcomes"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        for index, line in enumerate(lines):
            if not any(p.search(line) for p in ARM_PATTERNS):
                continue
            block = resolve_block(lines, index, file)
            if not block.has_enforcement:
                violations.append(
                    self.violation(file, index, f"assertion-free match arm: {snippet(line)}")
                )
        return violations


class EarlyReturnDetector(BaseDetector):
    """``return;`` shortly after an availability check or skip message."""

    name = "early-return"
    description = "Tests that return early when a dependency is unavailable"
    hint = "fail the test, or mark it #[ignore] with a reason"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        last_availability: int | None = None
        last_skip_message: int | None = None
        for index, line in enumerate(lines):
            if AVAILABILITY_PATTERN.search(line):
                last_availability = index
            if SKIP_MESSAGE_PATTERN.search(line):
                last_skip_message = index
            if not RETURN_PATTERN.search(line):
                continue

            if last_availability is not None and index - last_availability <= AVAILABILITY_WINDOW:
                trigger = "availability check"
            elif (
                last_skip_message is not None
                and index - last_skip_message <= SKIP_MESSAGE_WINDOW
            ):
                trigger = "skip message"
            else:
                continue
            violations.append(self.violation(file, index, f"return; after {trigger}"))
        return violations


class WarningAsAssertionDetector(BaseDetector):
    """Warnings printed where an assertion belongs."""

    name = "warning-as-assertion"
    description = "Warnings emitted instead of failing the test"
    hint = "replace the warning with an assertion"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        for index, line in enumerate(lines):
            if not WARNING_PATTERN.search(line):
                continue
            # Followed by return; is an early-return escape, reported there
            following = lines[index : index + WARNING_RETURN_WINDOW + 1]
            if any(RETURN_PATTERN.search(x) for x in following):
                continue
            # Commentary after real enforcement
            preceding = lines[max(0, index - PRECEDING_WINDOW) : index + 1]
            if any(has_enforcement(x) for x in preceding):
                continue
            violations.append(
                self.violation(file, index, f"warning instead of assertion: {snippet(line)}")
            )
        return violations


class AspirationalLanguageDetector(BaseDetector):
    """Executable code announcing that a check is not enforced."""

    name = "aspirational-language"
    description = "Non-enforcement phrases in executable test code"
    hint = "enforce the behavior, or mark the test #[ignore] with a reason"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        for index, line in enumerate(lines):
            if line.lstrip().startswith("//"):
                continue
            match = ASPIRATIONAL_PATTERN.search(line)
            if match:
                violations.append(
                    self.violation(
                        file, index, f"aspirational non-enforcement '{match.group(0)}'"
                    )
                )
        return violations


class MultiStatusDetector(BaseDetector):
    """Assertions that accept several unrelated status codes."""

    name = "multi-status"
    description = "Assertions accepting more than one literal status code"
    hint = "assert the single status code the behavior requires"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        for index, line in enumerate(lines):
            disjunction = "||" in line and len(STATUS_COMPARISON_PATTERN.findall(line)) >= 2
            if disjunction or STATUS_ALTERNATION_PATTERN.search(line):
                violations.append(
                    self.violation(file, index, f"multi-status acceptance: {snippet(line)}")
                )
        return violations


class PlaceholderStubDetector(BaseDetector):
    """unimplemented!/todo! bodies in tests that still run."""

    name = "placeholder-stub"
    description = "Placeholder test bodies not marked #[ignore]"
    hint = "implement the test or mark it #[ignore] with a reason"

    def detect(self, file: str, lines: Sequence[str]) -> list[Violation]:
        violations = []
        for index, line in enumerate(lines):
            if not PLACEHOLDER_PATTERN.search(line):
                continue
            preceding = lines[max(0, index - PRECEDING_WINDOW) : index + 1]
            if any(IGNORE_PATTERN.search(x) for x in preceding):
                continue
            violations.append(self.violation(file, index, f"placeholder stub: {snippet(line)}"))
        return violations


def default_detectors() -> list[BaseDetector]:
    """All test-rigidity detectors, in reporting order."""
    return [
        AssertionFreeArmDetector(),
        EarlyReturnDetector(),
        WarningAsAssertionDetector(),
        AspirationalLanguageDetector(),
        MultiStatusDetector(),
        PlaceholderStubDetector(),
    ]
