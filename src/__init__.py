"""Tenant-scoped research cache and phased AI generation pipeline."""

from researchcache.version import __version__

__all__ = ["__version__"]
