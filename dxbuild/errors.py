"""Error types raised throughout the build tool."""

from __future__ import annotations


class DxError(Exception):
    """Base error of the build tool; its text is the message as given."""

    prefix = ""

    def __init__(self, message: object = "") -> None:
        text = str(message)
        super().__init__(text)
        self.message = text

    def __str__(self) -> str:
        return f"{self.prefix}{self.message}"


class BuildFailed(DxError):
    """A build step (cargo, bindgen, desktop build) failed."""

    prefix = "Build Failed: "


class CargoError(DxError):
    """Cargo could not be found, run or understood."""

    prefix = "Cargo Error: "


class ParseFailure(DxError):
    """Input could not be parsed."""

    prefix = "Format failed: "


class RuntimeFailure(DxError):
    """A failure while serving or running."""

    prefix = "Runtime Error: "


class CustomError(DxError):
    """A command-specific error with a free-form message."""