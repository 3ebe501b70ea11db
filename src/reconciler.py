"""Reconciliation of extracted symbols against the reference list.

Matching is an exact, case-sensitive membership test. Symbols are not
normalized here beyond what extraction and reference normalization already
did, so a format mismatch upstream shows up as a missed match.
"""

from collections.abc import Sequence

from src.models import ReconciliationResult


def reconcile(extracted: Sequence[str], reference: Sequence[str]) -> list[str]:
    """Filter ``extracted`` down to entries present in ``reference``.

    Order and duplicates of ``extracted`` are preserved.

    Example:
        >>> reconcile(["TCS", "INFY", "FOO"], ["TCS", "RELIANCE", "INFY"])
        ['TCS', 'INFY']
    """
    members = set(reference)
    return [symbol for symbol in extracted if symbol in members]


def build_result(extracted: Sequence[str], reference: Sequence[str]) -> ReconciliationResult:
    return ReconciliationResult(
        extracted=list(extracted),
        reference=list(reference),
        matched=reconcile(extracted, reference),
    )
