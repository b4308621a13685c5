"""NuGet registry package.

This package provides NuGet package source support:
- discovery.py: V3 service index resource lookup and URL construction
- models.py: registry-side records (existing deprecation metadata)
- client.py: HTTP reads of version lists and registration metadata
"""

from .client import NuGetRegistryClient  # noqa: F401
from .models import DeprecationInfo  # noqa: F401

__all__ = [
    "NuGetRegistryClient",
    "DeprecationInfo",
]
