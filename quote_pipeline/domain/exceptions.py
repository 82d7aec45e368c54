"""Domain-specific exceptions for the quote pipeline."""


class QuotePipelineError(Exception):
    """Base exception for all quote pipeline errors."""

    error_code = "PIPELINE_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(QuotePipelineError):
    """Invalid or missing configuration, detected at startup."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
        if field:
            self.details["field"] = field


class StorageError(QuotePipelineError):
    """Storage-related errors."""

    error_code = "STORAGE_ERROR"


class ConnectionError(StorageError):
    """A storage connection could not be obtained."""

    error_code = "STORAGE_UNAVAILABLE"


class PersistenceError(StorageError):
    """A statement failed after the connection was acquired."""

    error_code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, statement: str | None = None):
        super().__init__(message)
        self.statement = statement
        if statement:
            self.details["statement"] = statement


class SerializationError(PersistenceError):
    """Quote payload encoding/decoding errors."""

    error_code = "SERIALIZATION_ERROR"


class QuoteNotFoundError(QuotePipelineError):
    """No snapshot is held for the requested instrument."""

    error_code = "QUOTE_NOT_FOUND"

    def __init__(self, name: str):
        super().__init__(f"No quote for '{name}'", details={"name": name})
        self.name = name


class DiscoveryError(QuotePipelineError):
    """A directory record could not be resolved."""

    error_code = "DISCOVERY_ERROR"

    def __init__(self, message: str, record_name: str | None = None):
        super().__init__(message)
        self.record_name = record_name
        if record_name:
            self.details["record_name"] = record_name
