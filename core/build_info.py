"""
Survey Pulse - Build Information
Looks up the installed build version that is attached to every report
"""

from importlib import metadata
from typing import Optional

import config


def get_build_version(package_name: Optional[str] = None) -> str:
    """
    Get the version of the installed distribution.

    A failed lookup never blocks scheduling: the fallback version
    from config is returned instead.

    Args:
        package_name: Distribution name (defaults to config.PACKAGE_NAME)

    Returns:
        Version string, or config.BUILD_VERSION_FALLBACK if unavailable
    """
    try:
        return metadata.version(package_name or config.PACKAGE_NAME)
    except (metadata.PackageNotFoundError, ValueError):
        # Running from a source checkout, not installed
        return config.BUILD_VERSION_FALLBACK
