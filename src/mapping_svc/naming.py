"""Class name normalization - turns any class reference into a canonical name."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# Namespace segment under which generated proxy classes live, e.g.
# "proxies.__CG__.app.models.User" proxies "app.models.User"
DEFAULT_PROXY_MARKER = "__CG__"


def class_name_of(cls: type) -> str:
    """Dotted ``module.QualName`` of a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


class NameNormalizer(ABC):
    """Maps a class reference to the canonical name metadata is keyed by."""

    @abstractmethod
    def canonical_name(self, ref: Any) -> str:
        ...


class DefaultNameNormalizer(NameNormalizer):
    """
    Accepts class names, class objects and instances.

    Proxy indirection is stripped twice over: a class carrying a
    ``__proxied_class__`` attribute resolves to that class, and any name
    containing the proxy marker segment resolves to the part after it.
    """

    def __init__(self, proxy_marker: str = DEFAULT_PROXY_MARKER):
        self.proxy_marker = proxy_marker

    def canonical_name(self, ref: Any) -> str:
        if isinstance(ref, str):
            name = ref.strip()
        else:
            cls = ref if isinstance(ref, type) else type(ref)
            proxied = getattr(cls, "__proxied_class__", None)
            if isinstance(proxied, type):
                cls = proxied
            name = class_name_of(cls)

        if not name:
            raise ValueError("Class reference must not be empty")

        marker = f"{self.proxy_marker}."
        if marker in name:
            name = name.rsplit(marker, 1)[1]
        return name
