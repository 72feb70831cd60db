"""Recover project paths from encoded project directory names.

The Claude CLI stores each project's sessions in a directory named after the
project's absolute path with every separator (and dot) turned into a hyphen:

    /Users/alice/github.com/org/repo  ->  -Users-alice-github-com-org-repo

Hyphens that were part of a file name are indistinguishable from separators,
so decoding is a best-effort reconstruction driven by tables of well-known
path fragments. A name that happens to contain one of those fragments (for
example a repository called ``my-scripts-tool``) decodes incorrectly; callers
can use ``is_plausible_path`` to flag obviously broken results.
"""

import re

# Applied in order, first occurrence only.
PATH_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"^(Users|home)-([^-]+)(?:-|$)"), r"\1/\2/"),
    (re.compile(r"(?:^|[-/])go-src-"), "/go/src/"),
    (re.compile(r"(?:^|[-/])src-"), "/src/"),
    (re.compile(r"(?:^|[-/])github-com-"), "/github.com/"),
    (re.compile(r"(?:^|[-/])gitlab-com-"), "/gitlab.com/"),
    (re.compile(r"(?:^|[-/])bitbucket-org-"), "/bitbucket.org/"),
)

# Only applied to the part after <host>/<org>/, where hyphens are far more
# likely to belong to repository names.
REPO_PATTERNS: tuple[tuple[str, str], ...] = (
    ("-backend-terraforms-", "/backend/terraforms/"),
    ("-frontend-", "/frontend/"),
    ("-scripts-", "/scripts/"),
    ("-drive-2-backend", "-drive-2/backend"),
    ("-drive-2-", "-drive-2/"),
    ("-gdrive-backend", "-gdrive/backend"),
    ("-gdrive-frontend", "-gdrive/frontend"),
)

_HOSTED_REPO = re.compile(
    r"(?P<host>github\.com|gitlab\.com|bitbucket\.org)/(?P<org>[^/-]+)[-/](?P<rest>.+)$"
)


def decode_project_path(encoded: str) -> str:
    """Turn an encoded directory name back into an absolute-looking path."""
    working = encoded[1:] if encoded.startswith("-") else encoded

    for pattern, replacement in PATH_PATTERNS:
        working = pattern.sub(replacement, working, count=1)

    match = _HOSTED_REPO.search(working)
    if match:
        rest = match.group("rest")
        for old, new in REPO_PATTERNS:
            rest = rest.replace(old, new, 1)
        working = f"{working[:match.start()]}{match.group('host')}/{match.group('org')}/{rest}"

    return "/" + working.strip("/")


def encode_project_path(path: str) -> str:
    """Forward mapping used by the Claude CLI: every non-alphanumeric becomes '-'."""
    return re.sub(r"[^A-Za-z0-9-]", "-", path)


def project_name(path: str) -> str:
    """Display name of a project: the last path segment."""
    parts = [p for p in path.split("/") if p]
    return parts[-1] if parts else path


def is_plausible_path(path: str) -> bool:
    """Basic sanity check on a decoded path (absolute, at least two segments)."""
    if not path.startswith("/"):
        return False
    return len([p for p in path.split("/") if p]) >= 2
