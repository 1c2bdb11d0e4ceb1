"""
Configuration loading for commit_composer.

Provides a loader for the JSON configuration file in the user's home
directory. See :mod:`commit_composer.config.loader` for details.
"""

from .loader import ConfigError, Settings, load_config, load_settings  # noqa: F401
