"""
Result schemas for backfill runs.

Contains Pydantic models for per-item outcomes and the run summary.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


class ItemOutcome(BaseModel):
    """Outcome of fetching and inserting a single app data document.

    Attributes:
        index: Position of the hash in the work list
        app_data_hash: Hex encoded hash
        status: "ok" or "err"
        step: Step that failed (cid, ipfs_fetch, insert) when status is "err"
        error_message: Error description if failed
        error_category: Error classification if failed
        bytes_fetched: Payload size when fetched
        duration_ms: Processing time in milliseconds
    """

    index: int = Field(..., ge=0)
    app_data_hash: str = Field(..., min_length=1)
    status: Literal["ok", "err"]
    step: Optional[str] = None
    error_message: Optional[str] = None
    error_category: Optional[str] = None
    bytes_fetched: Optional[int] = Field(default=None, ge=0)
    duration_ms: int = Field(default=0, ge=0)

    @property
    def success(self) -> bool:
        return self.status == "ok"

    def report_line(self) -> str:
        """One-line report: "ok {i} {hex}" or "err {i} {hex} {error}"."""
        if self.success:
            return f"ok {self.index} {self.app_data_hash}"
        return f"err {self.index} {self.app_data_hash} {self.error_message}"


class BackfillSummary(BaseModel):
    """Totals for a completed backfill pass.

    Example:
        >>> summary = BackfillSummary(total=3, inserted=2, failed=1)
        >>> summary.report_line()
        'Completed with 2 successful insertions.'
    """

    total: int = Field(default=0, ge=0)
    inserted: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    dry_run: bool = False
    failures_by_category: Dict[str, int] = Field(default_factory=dict)
    duration_seconds: float = Field(default=0.0, ge=0)

    def report_line(self) -> str:
        if self.dry_run:
            return f"Completed dry run with {self.inserted} successful fetches."
        return f"Completed with {self.inserted} successful insertions."
