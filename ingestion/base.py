"""
Abstract base class for per-identity batch jobs
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from pydantic import BaseModel


class BatchJob(ABC):
    """
    One unit of work per identity: fetch -> extract -> normalize.

    The runner owns scheduling, persistence and failure accounting; a job
    only turns an identity into a record or raises.

    Attributes:
        source_name: Name used in logs and run summaries
        record_prefix: Store prefix the records of this job live under
    """

    source_name: str = "batch"
    record_prefix: str = "records"

    @abstractmethod
    async def fetch_record(self, identity: Any) -> BaseModel:
        """
        Produce the record for ``identity``.

        Raises:
            PipelineException: any failure; the runner logs it and moves on
        """
        pass

    def display_name(self, identity: Any) -> Optional[str]:
        """Fallback display name used in progress logs"""
        return None
