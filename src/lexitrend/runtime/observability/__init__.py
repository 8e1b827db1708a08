"""Observability: logging configuration."""

from .logging import ROOT_LOGGER, JsonFormatter, configure_from_settings, configure_logging

__all__ = ["ROOT_LOGGER", "JsonFormatter", "configure_logging", "configure_from_settings"]
