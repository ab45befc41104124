"""Exception types shared across velolink."""

from __future__ import annotations


class VelolinkError(Exception):
    """Base class for all velolink errors."""


class MalformedCommandError(VelolinkError):
    """A structural command matched its pattern but carried an unusable payload."""


class TransportError(VelolinkError):
    """The serial transport could not be opened or read."""


class ConfigError(VelolinkError):
    """The configuration file or environment overrides are invalid."""
