"""Exceptions raised by minipdf outside the drawing path."""


class MiniPDFError(Exception):
    """Base exception for all minipdf errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown minipdf error occurred."


class LayoutError(MiniPDFError, ValueError):
    """Raised when a layout description cannot be turned into pages."""

    @property
    def default_message(self) -> str:
        return "Invalid layout description."
