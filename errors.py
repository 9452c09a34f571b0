"""Error kinds raised by the catalog core, each mapped to an HTTP status."""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(CatalogError):
    """Missing or malformed request input."""
    status_code = 400


class NotFound(CatalogError):
    """No product or review exists for the given id."""
    status_code = 404


class OutOfRange(CatalogError):
    """Requested page lies beyond the available results."""
    status_code = 404


class StoreError(CatalogError):
    """The document store failed to complete a read or write."""
    status_code = 500
