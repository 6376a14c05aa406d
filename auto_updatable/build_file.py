"""
Reading package build declarations.

A package is a directory holding ``build.sh``. Only top-level ``KEY=value``
assignments are read; the script is never executed. ``${VAR}`` and ``$VAR``
references to earlier assignments are expanded, anything more elaborate is
left as written.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

BUILD_FILE = "build.sh"

SRCURL = "TERMUX_PKG_SRCURL"
AUTO_UPDATE = "TERMUX_PKG_AUTO_UPDATE"
UPDATE_TAG_TYPE = "TERMUX_PKG_UPDATE_TAG_TYPE"
UPDATE_METHOD = "TERMUX_PKG_UPDATE_METHOD"

ASSIGNMENT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
VARIABLE_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class PackageError(Exception):
    """Raised when a package directory cannot be used."""
    pass


def _strip_comment(value: str) -> str:
    # A '#' starts a comment only outside quotes and after whitespace
    quote = ""
    for i, ch in enumerate(value):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "#" and (i == 0 or value[i - 1].isspace()):
            return value[:i].rstrip()
    return value


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _expand(value: str, known: dict[str, str]) -> str:
    def substitute(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        return known.get(name, match.group(0))
    return VARIABLE_RE.sub(substitute, value)


def parse_assignments(text: str) -> dict[str, str]:
    """
    Parse top-level shell assignments.

    Arrays (``KEY=(a b)``, possibly spanning lines) yield their first
    element. Later assignments of the same key override earlier ones.

    Args:
        text: Contents of a build.sh file

    Returns:
        Mapping of variable name to value
    """
    assignments: dict[str, str] = {}
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        match = ASSIGNMENT_RE.match(lines[i])
        i += 1
        if not match:
            continue
        key, raw = match.group(1), match.group(2)

        if raw.startswith("("):
            body = raw[1:]
            while ")" not in _strip_comment(body) and i < len(lines):
                body += " " + lines[i]
                i += 1
            body = _strip_comment(body).split(")", 1)[0]
            elements = body.split()
            value = _unquote(elements[0]) if elements else ""
        else:
            value = _unquote(_strip_comment(raw))

        if "'" not in raw:
            value = _expand(value, assignments)
        assignments[key] = value
    return assignments


@dataclass
class Package:
    """A package directory and its parsed build declarations."""

    name: str
    directory: Path
    build_file: Path
    assignments: dict[str, str] = field(default_factory=dict)

    @property
    def source_url(self) -> str:
        return self.assignments.get(SRCURL, "")

    def declares(self, key: str) -> bool:
        return key in self.assignments

    @property
    def has_auto_update_declaration(self) -> bool:
        """True if the package already made an explicit auto-update decision."""
        return self.declares(AUTO_UPDATE)

    def reload(self) -> None:
        self.assignments = parse_assignments(self.build_file.read_text(encoding="utf-8"))


def load_package(directory: str | Path) -> Package:
    """
    Load a package from its directory.

    Raises:
        PackageError: If the directory or its build.sh is missing or unreadable
    """
    path = Path(directory)
    build_file = path / BUILD_FILE
    if not path.is_dir():
        raise PackageError(f"Not a directory: {path}")
    if not build_file.is_file():
        raise PackageError(f"No {BUILD_FILE} found in {path}")

    # Trailing slashes and "." must not change the package name
    name = path.resolve().name
    try:
        text = build_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PackageError(f"Cannot read {build_file}: {e}") from e

    return Package(
        name=name,
        directory=path,
        build_file=build_file,
        assignments=parse_assignments(text),
    )
