"""
BeautifulSoup-based parsing helpers shared by the HTML scrapers.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from bs4 import BeautifulSoup, Tag

DEFAULT_CURRENCY = "EUR"
CURRENCY_SYMBOLS = {"€": "EUR", "$": "USD", "£": "GBP"}
CURRENCY_CODE_REGEX = re.compile(r"\b([A-Z]{3})\b")
SOLD_OUT_REGEX = re.compile(
    r"\b(?:sold\s*out|no\s+availability|no\s+rooms?\s+available|not\s+available"
    r"|ausgebucht|keine\s+verf[üu]gbarkeit)\b",
    flags=re.IGNORECASE,
)


class HTMLParsingLayer:
    """
    Deterministic parser utilities for HTML documents.
    """

    @staticmethod
    def make_soup(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    @classmethod
    def select_elements(cls, *, soup: BeautifulSoup | Tag, selectors: list[str]) -> list[Tag]:
        found: list[Tag] = []
        for selector in selectors:
            found.extend(soup.select(selector))
        return found[:300]

    @classmethod
    def extract_text(cls, *, soup: BeautifulSoup | Tag, selectors: list[str]) -> str | None:
        """
        Text of the first element matched by any selector.
        """

        for node in cls.select_elements(soup=soup, selectors=selectors):
            text = cls.clean_text(node.get_text(" ", strip=True))
            if text:
                return text
        return None

    @classmethod
    def extract_multiple(cls, *, soup: BeautifulSoup | Tag, selectors: list[str]) -> list[str]:
        """
        Non-empty texts of every element matched by the selectors, deduplicated in order.
        """

        seen: set[str] = set()
        values: list[str] = []
        for node in cls.select_elements(soup=soup, selectors=selectors):
            text = cls.clean_text(node.get_text(" ", strip=True))
            if not text or text in seen:
                continue
            seen.add(text)
            values.append(text)
        return values

    @classmethod
    def has_sold_out_marker(
        cls,
        *,
        soup: BeautifulSoup | Tag,
        selectors: list[str] | None = None,
    ) -> bool:
        if selectors and cls.select_elements(soup=soup, selectors=selectors):
            return True
        return SOLD_OUT_REGEX.search(soup.get_text(" ", strip=True)) is not None

    @staticmethod
    def parse_price(text: str | None) -> tuple[Decimal, str] | None:
        """
        Parse a displayed price like "€ 1.234,56", "US$1,234.56" or "120 CHF".

        Returns (amount, ISO currency) or None when no positive amount is found.
        """

        if not text:
            return None
        raw = text.strip()
        if not raw:
            return None

        currency = DEFAULT_CURRENCY
        for symbol, code in CURRENCY_SYMBOLS.items():
            if symbol in raw:
                currency = code
                break
        else:
            code_match = CURRENCY_CODE_REGEX.search(raw)
            if code_match:
                currency = code_match.group(1)

        numeric = CURRENCY_CODE_REGEX.sub("", raw)
        numeric = re.sub(r"[^\d.,]", "", numeric)
        if not numeric:
            return None

        if "," in numeric and "." in numeric:
            if numeric.rfind(".") > numeric.rfind(","):
                numeric = numeric.replace(",", "")
            else:
                numeric = numeric.replace(".", "").replace(",", ".")
        elif "," in numeric:
            head, _, tail = numeric.partition(",")
            if numeric.count(",") == 1 and len(tail) <= 2:
                numeric = f"{head}.{tail}"
            else:
                numeric = numeric.replace(",", "")
        elif numeric.count(".") > 1 or len(numeric.partition(".")[2]) == 3:
            # "1.234" and "1.234.567" use the dot as thousands separator.
            numeric = numeric.replace(".", "")

        try:
            amount = Decimal(numeric)
        except InvalidOperation:
            return None
        if amount <= 0:
            return None
        return amount.quantize(Decimal("0.01")), currency

    @staticmethod
    def clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()
