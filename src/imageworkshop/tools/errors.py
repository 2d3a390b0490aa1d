from __future__ import annotations


class ToolRequestError(RuntimeError):
    """A tool backend failure; ``status_code`` is the upstream HTTP status when known."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StabilityApiError(ToolRequestError):
    pass


class ImageInputError(ToolRequestError):
    pass
