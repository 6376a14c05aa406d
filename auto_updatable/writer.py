"""
Recording verdicts in build.sh.

Declarations go directly before the first blank line, which ends the
header block of TERMUX_PKG_* variables in a build.sh. Each insertion looks
for the first blank line again, so consecutive declarations stay in the
order they were written.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .build_file import AUTO_UPDATE, UPDATE_METHOD, UPDATE_TAG_TYPE, Package
from .resolver import Outcome, Verdict
from .tags import TagType

logger = logging.getLogger(__name__)


def insert_declaration(lines: Sequence[str], declaration: str) -> list[str]:
    """
    Insert ``declaration`` before the first blank line.

    Args:
        lines: File lines, with or without their line terminators
        declaration: Line to insert, e.g. ``TERMUX_PKG_AUTO_UPDATE=true``

    Returns:
        New list of lines; appended at the end when there is no blank line
    """
    result = list(lines)
    for index, line in enumerate(result):
        if not line.strip():
            result.insert(index, declaration)
            return result
    result.append(declaration)
    return result


def declarations_for(verdict: Verdict) -> list[tuple[str, str]]:
    """(key, line) pairs to write for an updatable verdict, in write order."""
    if not verdict.updatable:
        return []
    declarations = [(AUTO_UPDATE, f"{AUTO_UPDATE}=true")]
    if verdict.outcome is Outcome.HOSTING_TAG and verdict.tag_type is TagType.NEWEST:
        declarations.append((UPDATE_TAG_TYPE, f'{UPDATE_TAG_TYPE}="{TagType.NEWEST.value}"'))
    if verdict.outcome is Outcome.REGISTRY_ABSENCE and verdict.method:
        declarations.append((UPDATE_METHOD, f"{UPDATE_METHOD}={verdict.method}"))
    return declarations


def _read_text(path: Path) -> str:
    # newline="" keeps CRLF line endings intact
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, text: str) -> None:
    # Write to temp file then rename
    temp_path = path.with_name(path.name + ".tmp")
    temp_path.write_text(text, encoding="utf-8", newline="")
    temp_path.replace(path)


def _line_ending(lines: Sequence[str]) -> str:
    """Terminator of the first terminated line, ``\\n`` by default."""
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
        if line.endswith(("\n", "\r")):
            return line[-1]
    return "\n"


def persist_verdict(package: Package, verdict: Verdict) -> list[str]:
    """
    Write the declarations for ``verdict`` into the package's build.sh.

    Keys the file already declares are skipped. Callers check for an
    existing TERMUX_PKG_AUTO_UPDATE before resolving. Existing lines are
    kept byte for byte; new lines use the file's own line ending.

    Returns:
        Lines that were inserted

    Raises:
        OSError: If build.sh cannot be read or written
    """
    pending = [
        line for key, line in declarations_for(verdict)
        if not package.declares(key)
    ]
    if not pending:
        return []

    lines = _read_text(package.build_file).splitlines(keepends=True)
    eol = _line_ending(lines)
    unterminated = bool(lines) and not lines[-1].endswith(("\n", "\r"))
    if unterminated:
        lines[-1] += eol
    for line in pending:
        lines = insert_declaration(lines, line + eol)

    new_text = "".join(lines)
    if unterminated:
        new_text = new_text[:-len(eol)]
    _write_text(package.build_file, new_text)

    for line in pending:
        logger.info(f"{package.name}: added {line}")
    package.reload()
    return pending
