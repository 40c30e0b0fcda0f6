class HandoffError(Exception):
    """Base error carrying the status code and a message that is safe to return."""

    status_code = 500
    message = "Failed to process handoff"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(HandoffError):
    status_code = 400
    message = "Missing required fields: name and email"


class ConfigurationError(HandoffError):
    message = "Server misconfiguration"

    def __init__(self, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        super().__init__()


class UnexpectedError(HandoffError):
    message = "Failed to process handoff"


class DownstreamError(HandoffError):
    """A notification or CRM call failed. Logged, never returned to the caller."""

    def __init__(self, service: str, detail: str, status_code: int | None = None) -> None:
        self.service = service
        self.detail = detail
        self.upstream_status = status_code
        super().__init__(f"{service}: {detail}")
