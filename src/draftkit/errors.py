"""Exception definitions for draftkit"""


class DraftkitException(Exception):
    """Base exception for all draftkit errors.

    All custom exceptions in draftkit inherit from this class. Use this as a
    catch-all for draftkit-specific errors when you don't need to handle
    specific exception types.
    """

    pass


class ConfigException(DraftkitException):
    """Raised when configuration validation or loading fails.

    Use this exception when:
    - The configuration file cannot be found
    - The TOML syntax is invalid
    - Configuration validation fails (invalid values, unknown store type)
    """

    pass


class SchemaException(DraftkitException):
    """Raised when a field schema definition itself is malformed.

    Data that fails validation against a well-formed schema is reported as a
    ``ParseResult`` and never raises.
    """

    pass


class SchemaNotFoundError(SchemaException):
    """Raised when no schema is registered for a referenced collection."""

    pass


class StoreException(DraftkitException):
    """Raised when the backing document store cannot be reached or written.

    Use this exception when:
    - The database file cannot be opened
    - A read or write fails at the storage layer
    """

    pass


class DocNotFoundError(DraftkitException):
    pass


class ControllerDisposedError(DraftkitException):
    """Raised when a disposed draft controller is started again or given new edits."""

    pass


def format_validation_error(header: str, error) -> str:
    """Renders a pydantic ``ValidationError`` as ``header`` plus one line per error."""
    lines = [header]
    for item in error.errors():
        loc = " -> ".join(str(part) for part in item["loc"])
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)
