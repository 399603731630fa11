"""
Shared data models for Gmail Sweeper
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Optional, Union

from gmail_sweeper.errors import BatchMutationError


@dataclass
class Message:
    """A single message inside a thread"""
    id: str
    timestamp: int  # internalDate, epoch milliseconds
    label_ids: List[str] = field(default_factory=list)


@dataclass
class Thread:
    """A conversation, messages ordered oldest first"""
    id: str
    messages: List[Message] = field(default_factory=list)


@dataclass
class Query:
    """Label + relative age filter, rendered to Gmail search syntax"""
    label: str
    older_than_days: Optional[int] = None
    inbox_only: bool = False

    def to_search_string(self) -> str:
        parts = []
        if self.inbox_only:
            parts.append('in:inbox')
        parts.append(f'label:{self._quoted_label()}')
        if self.older_than_days and self.older_than_days > 0:
            parts.append(f'older_than:{self.older_than_days}d')
        return ' '.join(parts)

    def _quoted_label(self) -> str:
        # Unquoted, `label:auto delete` searches label `auto` plus the word `delete`
        if any(c.isspace() or c in '()"{}' for c in self.label):
            return '"' + self.label.replace('"', '') + '"'
        return self.label


@dataclass
class Page:
    """One page of thread ids; no token means enumeration is complete"""
    thread_ids: List[str]
    next_page_token: Optional[str] = None
    result_size_estimate: Optional[int] = None


@dataclass(frozen=True)
class AgeThreshold:
    """Messages older than `days` qualify"""
    days: int


@dataclass(frozen=True)
class KeepFirst:
    """Every message except the first one in the thread qualifies"""


Policy = Union[AgeThreshold, KeepFirst]


class Operation(str, Enum):
    """Mail state change applied to qualifying messages"""
    TRASH = 'trash'
    ARCHIVE = 'archive'


@dataclass
class BatchResult:
    """Outcome of BatchMutator.apply"""
    succeeded_count: int = 0
    errors: List[BatchMutationError] = field(default_factory=list)


@dataclass
class JobError:
    """Error recorded during a run. thread_id is None for page and batch failures"""
    thread_id: Optional[str]
    message: str


@dataclass
class JobConfig:
    """Static configuration for a single job"""
    name: str
    query: Query
    policy: Policy
    operation: Operation
    batch_size: int = 1000
    page_size: int = 100
    dry_run: bool = True


@dataclass
class JobSummary:
    """Result of a single JobRunner.run"""
    job_name: str
    dry_run: bool = True
    threads_processed: int = 0
    messages_matched: int = 0
    messages_mutated: int = 0
    pages_fetched: int = 0
    errors: List[JobError] = field(default_factory=list)
    aborted: bool = False
    interrupted: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)
