from __future__ import annotations

import re
from urllib.parse import urlparse

from rpm_builder.core.constants import ALL_NAMESPACES
from rpm_builder.core.exceptions import NamespaceError

# Console routes carry the active project as /k8s/ns/<namespace>/...
_CONTEXT_NS_RE = re.compile(r"/k8s/ns/([^/]+)")


def namespace_from_path(path: str | None) -> str | None:
    """Extract a namespace from a console path or full URL, if it has one."""
    if not path:
        return None
    match = _CONTEXT_NS_RE.search(urlparse(path).path or path)
    if match is None:
        return None
    ns = match.group(1)
    return ns if _usable(ns) else None


def _usable(namespace: str | None) -> bool:
    return bool(namespace and namespace.strip() and namespace != ALL_NAMESPACES)


class NamespaceResolver:
    """Resolves the namespace a call runs against.

    Order: explicit namespace (unless empty or the all-namespaces
    sentinel), namespace in the navigational context path, configured
    default.  When none applies :class:`NamespaceError` is raised; there is
    no implicit fallback namespace.
    """

    def __init__(self, default_namespace: str | None = None) -> None:
        self._default = default_namespace

    @property
    def default_namespace(self) -> str | None:
        return self._default

    def resolve(
        self,
        namespace: str | None = None,
        *,
        context_path: str | None = None,
    ) -> str:
        if namespace is not None and _usable(namespace):
            return namespace.strip()

        from_context = namespace_from_path(context_path)
        if from_context:
            return from_context

        if _usable(self._default):
            assert self._default is not None  # noqa: S101
            return self._default.strip()

        raise NamespaceError(
            "No namespace selected. Select a namespace/project in the console "
            "namespace selector, pass namespace=..., or set RPM_BUILDER_NAMESPACE."
        )
