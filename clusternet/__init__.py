"""Validation, defaulting and change-safety checks for cluster network configuration."""

__version__ = "0.1.0"