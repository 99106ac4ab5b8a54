from datetime import datetime
from typing import Optional
from sqlalchemy import Column, String, DateTime, Integer, Float, Text, JSON
from adintel.models.database import Base


class SearchRun(Base):
    """Metadata and stats for each aggregation session."""

    __tablename__ = "search_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String(32), index=True)
    query = Column(String(255), nullable=False, index=True)
    domain = Column(String(255))
    status = Column(String(20), default="running")  # running, completed, failed
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)
    sources_total = Column(Integer, default=0)
    sources_failed = Column(Integer, default=0)
    ads_found = Column(Integer, default=0)
    ads_returned = Column(Integer, default=0)
    ads_enriched = Column(Integer, default=0)
    secondary_ads = Column(Integer, default=0)
    total_cost = Column(Float, default=0.0)
    run_metadata = Column(JSON)  # Per-source metadata and cost breakdown

    def __repr__(self):
        return f"<SearchRun(id={self.id}, query={self.query}, status={self.status})>"

    def mark_completed(self):
        """Mark the run as completed."""
        self.status = "completed"
        self.completed_at = datetime.utcnow()

    def mark_failed(self, error: Optional[str] = None):
        """Mark the run as failed, keeping the error message in `run_metadata`."""
        self.status = "failed"
        self.completed_at = datetime.utcnow()
        if error:
            self.run_metadata = {"error": error}

    @property
    def duration_seconds(self) -> Optional[float]:
        if not (self.started_at and self.completed_at):
            return None
        return (self.completed_at - self.started_at).total_seconds()


class SourceFailure(Base):
    """A source that failed during a saved run."""

    __tablename__ = "source_failures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    search_run_id = Column(Integer, nullable=False, index=True)
    platform = Column(String(50), index=True)
    error_type = Column(String(100))  # timeout, source_error
    error_message = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SourceFailure(run={self.search_run_id}, platform={self.platform}, type={self.error_type})>"
