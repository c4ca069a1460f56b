"""Configuration management for eventdesign."""

from .settings import EventDesignConfig, DesignConfig, LoggingConfig, CodingSchema, SplineSpacing

__all__ = ["EventDesignConfig", "DesignConfig", "LoggingConfig", "CodingSchema", "SplineSpacing"]
