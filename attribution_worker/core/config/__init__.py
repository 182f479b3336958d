"""
Configuration module for the Attribution Worker
"""

from .settings import settings, Settings, validate_configuration

__all__ = ["settings", "Settings", "validate_configuration"]
