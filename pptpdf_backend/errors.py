"""Error kinds surfaced to clients as ``{"error": ...}`` responses.

Each exception carries the HTTP status it maps to; server.py installs a single
handler for ``ConverterError`` so routes can simply raise.
"""
from __future__ import annotations

from typing import Optional


class ConverterError(Exception):
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def for_file(self, filename: str) -> "ConverterError":
        """Prefix the message with the upload it concerns."""
        self.message = f"Conversion failed for: {filename}. {self.message}"
        self.args = (self.message,)
        return self

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


# Client input

class InvalidExtensionError(ConverterError):
    status_code = 400

    def __init__(self, filename: str) -> None:
        super().__init__("Only .ppt and .pptx files allowed")
        self.filename = filename


class NoFileUploadedError(ConverterError):
    status_code = 400

    def __init__(self, message: str = "No files uploaded.") -> None:
        super().__init__(message)


class TooManyFilesError(ConverterError):
    status_code = 400

    def __init__(self, limit: int) -> None:
        super().__init__(f"Too many files (max {limit}).")
        self.limit = limit


class UploadTooLargeError(ConverterError):
    status_code = 413

    def __init__(self, filename: str) -> None:
        super().__init__(f"File too large: {filename}")
        self.filename = filename


# External tool

class SofficeSpawnError(ConverterError):
    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__("Failed to start LibreOffice (soffice).", detail)


class ConversionTimeoutError(ConverterError):
    def __init__(self, timeout: float) -> None:
        super().__init__("Conversion timeout")
        self.timeout = timeout


class ConversionFailedError(ConverterError):
    def __init__(self, returncode: int, detail: Optional[str] = None) -> None:
        super().__init__(f"soffice exited with code {returncode}", detail)
        self.returncode = returncode


class NoOutputError(ConverterError):
    def __init__(self, message: str = "No PDF produced.", detail: Optional[str] = None) -> None:
        super().__init__(message, detail)


class ArchiveError(ConverterError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed creating ZIP: {reason}")


# Retrieval / catch-all

class ArtifactNotFoundError(ConverterError):
    status_code = 404

    def __init__(self, message: str = "File not found or expired.") -> None:
        super().__init__(message)


class ServerError(ConverterError):
    def __init__(self, message: str = "Server error.") -> None:
        super().__init__(message)
