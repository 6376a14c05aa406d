"""
Checking packages one after another.

Each package is loaded, skipped when it already declares
TERMUX_PKG_AUTO_UPDATE, otherwise resolved and, with ``enable``, updated.
Per-package problems become results; ``FatalError`` stops the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from .build_file import AUTO_UPDATE, UPDATE_TAG_TYPE, PackageError, load_package
from .resolver import Resolver, Verdict
from .tags import TagType
from .writer import persist_verdict

logger = logging.getLogger(__name__)


class PackageStatus(str, Enum):
    ALREADY_DECLARED = "already-declared"
    UPDATABLE = "updatable"
    NOT_UPDATABLE = "not-updatable"
    INVALID = "invalid"

    @property
    def success(self) -> bool:
        return self in (PackageStatus.ALREADY_DECLARED, PackageStatus.UPDATABLE)


@dataclass(frozen=True)
class PackageResult:
    """
    Outcome of checking one package.

    Attributes:
        package: Package name (directory name, or the argument if unreadable)
        status: Classification of the package
        verdict: Resolver verdict, when the resolver ran
        written: build.sh lines added by --enable
        message: Human-readable detail
    """
    package: str
    status: PackageStatus
    verdict: Verdict | None = None
    written: tuple[str, ...] = ()
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status.success


def _declared_tag_type(value: str) -> TagType | None:
    try:
        return TagType(value)
    except ValueError:
        logger.warning(f"Ignoring unknown {UPDATE_TAG_TYPE} value: {value!r}")
        return None


def check_package(directory: str | Path, resolver: Resolver, enable: bool = False) -> PackageResult:
    """
    Check whether one package can be auto-updated.

    Args:
        directory: Package directory containing build.sh
        resolver: Resolver to run when no decision is recorded yet
        enable: Write the verdict into build.sh when updatable

    Returns:
        PackageResult for the package

    Raises:
        FatalError: Propagated from the resolver
        OSError: If writing build.sh fails
    """
    try:
        package = load_package(directory)
    except PackageError as e:
        return PackageResult(Path(directory).name or str(directory), PackageStatus.INVALID, message=str(e))

    if package.has_auto_update_declaration:
        value = package.assignments[AUTO_UPDATE]
        return PackageResult(
            package.name,
            PackageStatus.ALREADY_DECLARED,
            message=f"{AUTO_UPDATE} is already set to {value!r}",
        )

    if not package.source_url:
        return PackageResult(
            package.name,
            PackageStatus.INVALID,
            message="TERMUX_PKG_SRCURL is not set",
        )

    tag_type = None
    if package.declares(UPDATE_TAG_TYPE):
        tag_type = _declared_tag_type(package.assignments[UPDATE_TAG_TYPE])

    verdict = resolver.resolve(package.source_url, package.name, tag_type)
    if not verdict.updatable:
        return PackageResult(
            package.name,
            PackageStatus.NOT_UPDATABLE,
            verdict=verdict,
            message="Package cannot be auto-updated",
        )

    written: tuple[str, ...] = ()
    if enable:
        written = tuple(persist_verdict(package, verdict))

    return PackageResult(
        package.name,
        PackageStatus.UPDATABLE,
        verdict=verdict,
        written=written,
        message=verdict.describe(),
    )


@dataclass
class BatchResult:
    """Results of a batch run in argument order."""

    results: list[PackageResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    def get_summary(self) -> dict[str, int]:
        summary = {status.value: 0 for status in PackageStatus}
        for result in self.results:
            summary[result.status.value] += 1
        return summary


def check_packages(
    directories: Iterable[str | Path],
    resolver: Resolver,
    enable: bool = False,
    on_result: Callable[[PackageResult], None] | None = None,
) -> BatchResult:
    """
    Check packages sequentially in the given order.

    Args:
        directories: Package directories
        resolver: Shared resolver (and with it the Repology cache)
        enable: Write verdicts into build.sh
        on_result: Called after each package, e.g. to print its line

    Returns:
        BatchResult with one entry per package

    Raises:
        FatalError: The batch stops at the first fatal error
    """
    batch = BatchResult()
    for directory in directories:
        result = check_package(directory, resolver, enable)
        batch.results.append(result)
        if on_result is not None:
            on_result(result)
    return batch
