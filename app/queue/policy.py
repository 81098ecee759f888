from dataclasses import dataclass
from typing import Literal

from app.ocr.models import DocumentType


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget, backoff and timeout applied to one kind of document."""

    max_attempts: int
    backoff: Literal["exponential", "fixed"]
    backoff_base_seconds: float
    timeout_seconds: int
    priority: int

    @property
    def timeout_ms(self) -> int:
        return self.timeout_seconds * 1000

    def backoff_delay_seconds(self, attempts_made: int) -> float:
        """Delay before the next attempt once ``attempts_made`` attempts have failed."""
        if self.backoff == "fixed":
            return self.backoff_base_seconds
        return self.backoff_base_seconds * 2 ** max(attempts_made - 1, 0)


# lower priority number runs first
POLICIES: dict[DocumentType, RetryPolicy] = {
    DocumentType.RECEIPT_IMAGE: RetryPolicy(
        max_attempts=3,
        backoff="exponential",
        backoff_base_seconds=2.0,
        timeout_seconds=60,
        priority=1,
    ),
    DocumentType.INVOICE_PDF: RetryPolicy(
        max_attempts=2,
        backoff="fixed",
        backoff_base_seconds=3.0,
        timeout_seconds=30,
        priority=2,
    ),
    DocumentType.INVOICE_HTML: RetryPolicy(
        max_attempts=2,
        backoff="fixed",
        backoff_base_seconds=3.0,
        timeout_seconds=30,
        priority=2,
    ),
}


def policy_for(document_type: DocumentType | str) -> RetryPolicy:
    return POLICIES[DocumentType(document_type)]
