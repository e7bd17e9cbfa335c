"""Cancellation signal shared between the crawl coordinator and storage scanners."""


class CancellationToken:
    """One-shot cancellation signal for a single crawl.

    Hey future me - a token is NEVER reset. The coordinator cancels the old token and
    creates a brand-new one for every crawl, so a scanner still holding the old token sees
    it cancelled and stops between files. The file that is being reconciled when cancel()
    lands always runs to completion - there is no mid-file cancellation.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signal cancellation. Idempotent."""
        self._cancelled = True

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
