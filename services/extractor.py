"""Selector-based extraction of a numeric reading from an HTML page."""

from __future__ import annotations

import math
import re

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from services.errors import ExtractionError, ParseError

# Longest leading ASCII decimal literal, e.g. "23.5" in "23.5 °C".
_LEADING_NUMBER = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class Extractor:
    """Parses a document and turns the first selector match into a float."""

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def extract(self, body: str, selector: str) -> float:
        text = self.extract_text(body, selector)
        return parse_number(text)

    def extract_text(self, body: str, selector: str) -> str:
        soup = BeautifulSoup(body, self.parser)
        try:
            element = soup.select_one(selector)
        except SelectorSyntaxError as exc:
            raise ExtractionError(f"Invalid selector {selector!r}: {exc}", selector=selector) from exc

        if element is None:
            raise ExtractionError(f"No element matches {selector!r}", selector=selector)

        text = element.get_text().strip()
        if not text:
            raise ExtractionError(f"Element matching {selector!r} has no text", selector=selector)
        return text


def parse_number(text: str) -> float:
    """Parse the leading number of ``text``; NaN and infinities are rejected."""
    candidate = text.strip()
    match = _LEADING_NUMBER.match(candidate)
    if match is None:
        raise ParseError(f"Text {candidate!r} is not a number", text=candidate)

    value = float(match.group(0))
    if not math.isfinite(value):
        raise ParseError(f"Text {candidate!r} is not a finite number", text=candidate)
    return value
