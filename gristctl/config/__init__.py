"""Configuration module for gristctl."""
from .settings import GristConfig, load_settings

__all__ = ["GristConfig", "load_settings"]
