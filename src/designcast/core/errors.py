"""Exceptions raised by the core and its adapters."""

from __future__ import annotations


class DesigncastError(Exception):
    """Base class for designcast errors."""


class ConfigError(DesigncastError):
    """Static configuration is missing or malformed."""


class TransportError(DesigncastError, RuntimeError):
    """The messaging platform rejected or failed a send/delete call."""
