"""Configuration management: TOML loading, environment overrides, and models.

Usage:
    >>> from xdb_harness.config import load_harness_config, HarnessConfig
"""

from xdb_harness.config.loader import load_harness_config
from xdb_harness.config.models import BackendProfile, EngineSettings, HarnessConfig

__all__ = ["load_harness_config", "BackendProfile", "EngineSettings", "HarnessConfig"]
