"""
Version information for the roadmap_status package.
"""

__version__ = "0.4.0"

PACKAGE_NAME = "roadmap-status"

__all__ = [
    "__version__",
    "PACKAGE_NAME",
]
