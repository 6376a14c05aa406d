"""
Source URL handling.

A package source may be a release archive URL or, when prefixed with
``git+``, a repository that the build clones. Release-tag lookups only make
sense for the former.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

CLONE_MARKER = "git+"


@dataclass(frozen=True)
class SourceLocator:
    """Parsed TERMUX_PKG_SRCURL value."""

    raw: str
    url: str
    is_repository_clone: bool
    host: str
    path: str

    @classmethod
    def parse(cls, source_url: str) -> "SourceLocator":
        """Parse a source URL, stripping the repository-clone marker."""
        raw = source_url.strip()
        is_clone = raw.startswith(CLONE_MARKER)
        url = raw[len(CLONE_MARKER):] if is_clone else raw
        parts = urlsplit(url)
        return cls(
            raw=raw,
            url=url,
            is_repository_clone=is_clone,
            host=(parts.hostname or "").lower(),
            path=parts.path,
        )

    def matches_domain(self, domain: str) -> bool:
        """True if the host is ``domain`` or one of its subdomains."""
        domain = domain.lower()
        return self.host == domain or self.host.endswith("." + domain)

    def github_repository(self) -> str | None:
        """Return ``owner/repo`` for a GitHub URL, or None if the path is too short."""
        segments = [s for s in self.path.split("/") if s]
        if len(segments) < 2:
            return None
        owner, repo = segments[0], segments[1]
        if repo.endswith(".git"):
            repo = repo[:-4]
        return f"{owner}/{repo}"

    def gitlab_project(self) -> str | None:
        """Return the full project path for a GitLab URL.

        GitLab projects may live in nested groups, so everything before the
        ``/-/`` separator is the project path. Without a separator the first
        two segments are used.
        """
        path = self.path
        if "/-/" in path:
            path = path.split("/-/", 1)[0]
            segments = [s for s in path.split("/") if s]
        else:
            segments = [s for s in path.split("/") if s][:2]
        if len(segments) < 2:
            return None
        if segments[-1].endswith(".git"):
            segments[-1] = segments[-1][:-4]
        return "/".join(segments)
