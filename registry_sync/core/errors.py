"""Exceptions raised at the registry's trust boundaries."""


class RegistryError(Exception):
    """Base class for registry errors surfaced to the operator."""
    pass


class FormatError(RegistryError):
    """Incoming bundle is missing a residents list."""
    pass


class ParseError(RegistryError):
    """Bundle bytes are not valid serialized data."""
    pass


class BundleIOError(RegistryError):
    """Bundle file could not be read or written."""
    pass


class InvalidTransitionError(RegistryError):
    """Bundle lifecycle step not allowed from the current state or mode."""
    pass


class SyncModeError(RegistryError):
    """Operation not available in the device's operating mode."""
    pass
