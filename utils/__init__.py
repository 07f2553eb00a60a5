"""
Utility modules for the RCON wrapper
"""

from .logging import setup_logging
from .config import ConfigError, WrapperConfig, build_config, load_config

__all__ = ['setup_logging', 'ConfigError', 'WrapperConfig', 'build_config', 'load_config']
