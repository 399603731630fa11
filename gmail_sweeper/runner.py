"""
Job Runner - Drives pagination, classification and batched mutation for one job
"""

import json
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from gmail_sweeper.classifier import classify
from gmail_sweeper.enumerator import ThreadEnumerator
from gmail_sweeper.errors import TransientFetchError
from gmail_sweeper.models import JobConfig, JobError, JobSummary
from gmail_sweeper.mutator import BatchMutator


logger = logging.getLogger(__name__)


def current_time_ms() -> int:
    return int(time.time() * 1000)


class JobRunner:
    """Runs a single job to completion (Done) or page fetch failure (Aborted)

    Fetch and mutation failures are captured in the returned JobSummary and
    never raised. Mutations from earlier pages are not rolled back when a later
    page fails; re-running the job is safe because the query no longer matches
    messages that were already trashed or archived.
    """

    def __init__(
        self,
        config: JobConfig,
        enumerator: ThreadEnumerator,
        mutator: BatchMutator,
        progress_callback: Optional[Callable] = None,
        now_ms: Callable[[], int] = current_time_ms
    ):
        self.config = config
        self.enumerator = enumerator
        self.mutator = mutator
        self.progress_callback = progress_callback
        self.now_ms = now_ms
        self.interrupted = False

    # === Main Entry Point ===

    async def run(self) -> JobSummary:
        """Run the job, returns a JobSummary"""
        config = self.config
        summary = JobSummary(job_name=config.name, dry_run=config.dry_run)
        now = self.now_ms()
        seen: Set[str] = set()
        page_token = None

        await self._report_progress("job_started", {
            "job": config.name,
            "query": config.query.to_search_string(),
            "operation": config.operation.value,
            "dry_run": config.dry_run
        })

        while True:
            # Page boundaries are the only place a run stops early
            if self.interrupted:
                logger.warning(f"Job {config.name} interrupted after {summary.pages_fetched} pages")
                summary.interrupted = True
                break

            try:
                page = await self.enumerator.next_page(config.query, page_token)
            except TransientFetchError as error:
                logger.error(f"Job {config.name} aborted: {error}")
                summary.errors.append(JobError(thread_id=None, message=str(error)))
                summary.aborted = True
                break

            summary.pages_fetched += 1
            pending: List[str] = []

            for thread_id in page.thread_ids:
                summary.threads_processed += 1
                ids = await self._classify_thread(thread_id, now, summary)

                for message_id in ids:
                    if message_id in seen:
                        continue
                    seen.add(message_id)
                    pending.append(message_id)

                if len(pending) >= config.batch_size:
                    await self._flush(pending, summary)
                    pending = []

            await self._flush(pending, summary)

            await self._report_progress("page_completed", {
                "job": config.name,
                "pages_fetched": summary.pages_fetched,
                "threads_processed": summary.threads_processed,
                "messages_matched": summary.messages_matched,
                "messages_mutated": summary.messages_mutated
            })

            page_token = page.next_page_token
            if not page_token:
                break

        logger.info(f"Job {config.name} finished: {json.dumps(summary.to_dict())}")
        await self._report_progress("job_completed", summary.to_dict())

        return summary

    # === Thread Processing ===

    async def _classify_thread(self, thread_id: str, now: int, summary: JobSummary) -> List[str]:
        """Fetch and classify one thread, recording failures instead of raising"""
        try:
            thread = await self.enumerator.get_thread(thread_id)
            return classify(thread.messages, self.config.policy, now)
        except (TransientFetchError, KeyError, TypeError, ValueError) as error:
            logger.error(f"Skipping thread {thread_id}: {error}")
            summary.errors.append(JobError(thread_id=thread_id, message=str(error)))
            return []

    # === Mutation ===

    async def _flush(self, ids: List[str], summary: JobSummary) -> None:
        if not ids:
            return

        summary.messages_matched += len(ids)

        if self.config.dry_run:
            await self._report_progress("would_mutate", {
                "job": self.config.name,
                "operation": self.config.operation.value,
                "message_count": len(ids)
            })
            return

        result = await self.mutator.apply(self.config.operation, ids)
        summary.messages_mutated += result.succeeded_count
        for error in result.errors:
            summary.errors.append(JobError(thread_id=None, message=f"Batch {error.chunk_index} ({error.chunk_size} messages): {error}"))

        await self._report_progress("mutated", {
            "job": self.config.name,
            "operation": self.config.operation.value,
            "message_count": result.succeeded_count,
            "failed_batches": len(result.errors)
        })

    # === Progress ===

    async def _report_progress(self, event: str, data: Dict) -> None:
        """Send progress update if callback is set, a failing callback never stops the job"""
        if not self.progress_callback:
            return
        try:
            await self.progress_callback(event, data)
        except Exception as error:
            logger.warning(f"Progress callback failed on {event}: {error}")
