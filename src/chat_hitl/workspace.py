"""Workspace identity and routing.

Paths are compared loosely: an agent may report a subdirectory of the
workspace a front-end has open, or the other way round, so equality,
ancestor and descendant all count as a match.
"""

from collections.abc import Iterable


def normalize_workspace(path: str) -> str:
    """Lower-case, forward slashes, no trailing slash (root stays "/")."""
    normalized = (path or "").lower().replace("\\", "/")
    if len(normalized) > 1:
        normalized = normalized.rstrip("/") or "/"
    return normalized


def same_or_containing(a: str, b: str) -> bool:
    """Return True if a and b are the same workspace or one contains the other.

    An empty path is the root of every workspace, so a request that names no
    workspace matches any open one.
    """
    na = normalize_workspace(a)
    nb = normalize_workspace(b)
    if not na or not nb or na == nb:
        return True
    return _is_ancestor(na, nb) or _is_ancestor(nb, na)


def _is_ancestor(parent: str, child: str) -> bool:
    prefix = parent if parent.endswith("/") else parent + "/"
    return child.startswith(prefix)


def should_claim(request_workspace: str, local_workspaces: Iterable[str]) -> bool:
    """Decide whether this process should present a request.

    A process with no workspace open claims everything.
    """
    local = list(local_workspaces)
    if not local:
        return True
    return any(same_or_containing(request_workspace, ws) for ws in local)
