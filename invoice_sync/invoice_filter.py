"""Subject heuristics that decide whether a message looks like an invoice."""

from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


class InvoiceFilter:
    """Case-insensitive keyword match on the message subject."""

    def __init__(self, subject_keywords: Iterable[str]) -> None:
        self.subject_keywords = [kw.lower() for kw in subject_keywords if kw]
        if not self.subject_keywords:
            raise ValueError("At least one subject keyword is required.")

    def matches_subject(self, subject: str | None) -> bool:
        """Return True if any keyword occurs anywhere in the subject."""
        lowered = (subject or "").lower()
        if any(keyword in lowered for keyword in self.subject_keywords):
            return True
        logger.debug("Subject '%s' did not match invoice keywords", subject)
        return False

    def gmail_query(self) -> str:
        """Server-side search for unread messages carrying one of the keywords."""
        clauses = " OR ".join(
            f'subject:"{keyword}"' if " " in keyword else f"subject:{keyword}"
            for keyword in self.subject_keywords
        )
        return f"is:unread ({clauses})"
