"""Exceptions shared by the scorer, the threat lookup and the scan store."""


class MalformedUrlError(ValueError):
    """The submitted text does not parse as an absolute URL."""


class ThreatLookupUnavailable(RuntimeError):
    """The threat-domain source could not be queried."""


class StorageError(RuntimeError):
    """A scan record could not be written to or read from the database."""
