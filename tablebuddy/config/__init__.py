"""
Configuration layer - Settings and constants
"""

from tablebuddy.config.settings import settings, Settings, PROJECT_ROOT, resolve_project_path

__all__ = [
    "settings",
    "Settings",
    "PROJECT_ROOT",
    "resolve_project_path",
]
