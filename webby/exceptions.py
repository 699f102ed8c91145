"""Shared exception types for Webby."""


class WebbyError(Exception):
    """Base exception for all Webby errors."""


class ConfigError(WebbyError):
    """Configuration is invalid or missing."""


class MiddlewareError(WebbyError):
    """A middleware function raised or broke the chain contract."""


class AdapterError(WebbyError):
    """The chat adapter is missing or failed to deliver."""


class PluginError(WebbyError):
    """Plugin lifecycle error."""
