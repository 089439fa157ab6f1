"""Error types shared by the API layer, controllers and CLI."""


class ClientDeskError(Exception):
    """Base class for recoverable, user-facing failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(ClientDeskError):
    """An API call failed; ``message`` is shown to the user verbatim."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FormValidationError(ClientDeskError):
    """Required fields are missing; raised before any API call is made."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class FetchCancelled(ClientDeskError):
    """The bulk fetch was abandoned because its token was cancelled."""

    def __init__(self, message: str = "Fetch cancelled"):
        super().__init__(message)


class ConfigError(ClientDeskError):
    """A setting from the config file or the environment is unusable."""
