"""Exceptions raised by the generation and query service layer.

Route handlers in :mod:`promptgallery.api.main` translate these into HTTP
responses; nothing here knows about HTTP.
"""


class ServiceError(Exception):
    """Base class for failures inside the service layer."""

    pass


class ProviderError(ServiceError):
    """The image provider failed or returned an unusable payload."""

    pass


class StorageError(ServiceError):
    """The object store or the record table rejected an operation."""

    pass


class InvalidCursorError(ServiceError):
    """A pagination cursor could not be decoded.

    Raised for client input, so the API reports it as a 400 rather than a
    backend failure.
    """

    pass
