"""Exception taxonomy for the scraper sensor."""

from __future__ import annotations

from typing import Optional, Sequence


class ScraperSensorError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(ScraperSensorError, ValueError):
    """Invalid device configuration, raised only while building a device."""

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.problems = list(problems)

    def __str__(self) -> str:
        message = super().__str__()
        if not self.problems:
            return message
        return f"{message}: {'; '.join(self.problems)}"


class PollError(ScraperSensorError):
    """Transient failure confined to a single poll cycle."""

    reason = "poll failed"


class FetchError(PollError):
    reason = "fetch failed"

    def __init__(self, message: str, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(PollError):
    reason = "element not found"

    def __init__(self, message: str, selector: str) -> None:
        super().__init__(message)
        self.selector = selector


class ParseError(PollError):
    reason = "invalid numeric value"

    def __init__(self, message: str, text: str) -> None:
        super().__init__(message)
        self.text = text
