"""Package index resolvers."""

from __future__ import annotations

from cpan_dependency.resolver.base import BaseResolver
from cpan_dependency.resolver.metacpan import MetaCpanResolver

__all__ = [
    "BaseResolver",
    "MetaCpanResolver",
]
