"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from repo_flattener.domain.exceptions import InvalidUrlError

_GITHUB_URL_RE = re.compile(
    r"github\.com/(?P<owner>[^/]+)/(?P<name>[^/#?]+)",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class RepoRef:
    """Owner/name pair of a GitHub repository.

    Extracts *owner* and *name* from a URL like
    ``https://github.com/psf/requests.git``; the ``.git`` clone suffix is
    stripped.  Anything after the name (``/tree/main``, ``?tab=readme``,
    ``#readme``) is ignored.
    """

    owner: str
    name: str

    @classmethod
    def from_url(cls, url: str) -> RepoRef:
        """Parse and validate a raw URL string."""
        url = url.strip()
        match = _GITHUB_URL_RE.search(url)
        if not match:
            raise InvalidUrlError(
                f"Invalid GitHub URL: '{url}'. "
                "Expected format: https://github.com/<owner>/<repo>"
            )
        name = match["name"].removesuffix(".git")
        if not name:
            raise InvalidUrlError(f"Invalid GitHub URL: '{url}'. Missing repository name.")
        return cls(owner=match["owner"], name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"
