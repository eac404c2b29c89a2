"""Configuration module for ksengine."""

from ksengine.config.schema import Config
from ksengine.config.validator import ConfigValidator

__all__ = ["Config", "ConfigValidator"]
