"""
Batch Mutator - Applies trash/archive to message ids in bounded batchModify calls
"""

import asyncio
import logging
from typing import Dict, Iterator, List, Sequence

from gmail_sweeper.errors import API_ERRORS, BatchMutationError
from gmail_sweeper.models import BatchResult, Operation


logger = logging.getLogger(__name__)

# Max ids per users.messages.batchModify (API limit)
MAX_BATCH_SIZE = 1000

LABEL_CHANGES: Dict[Operation, Dict[str, List[str]]] = {
    Operation.TRASH: {'addLabelIds': ['TRASH'], 'removeLabelIds': []},
    Operation.ARCHIVE: {'addLabelIds': [], 'removeLabelIds': ['INBOX']},
}


class BatchMutator:
    """Splits ids into chunks and applies one batchModify per chunk

    A failed chunk is recorded and the remaining chunks are still attempted.
    Label changes are idempotent on the Gmail side, so re-applying an
    operation to an already trashed/archived message is a no-op.
    """

    def __init__(
        self,
        service,  # Gmail API service object
        max_batch_size: int = MAX_BATCH_SIZE
    ):
        if not 1 <= max_batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"max_batch_size must be between 1 and {MAX_BATCH_SIZE}, got {max_batch_size}")
        self.service = service
        self.max_batch_size = max_batch_size

    # === Main Entry Point ===

    async def apply(self, operation: Operation, ids: Sequence[str]) -> BatchResult:
        """Apply operation to ids, returns BatchResult with per-chunk errors"""
        result = BatchResult()

        for index, chunk in enumerate(self.chunks(ids, self.max_batch_size)):
            try:
                await self._modify(operation, chunk)
            except API_ERRORS as error:
                logger.error(f"Error applying {operation.value} to chunk {index} ({len(chunk)} messages): {error}")
                result.errors.append(BatchMutationError(str(error), chunk_index=index, chunk_size=len(chunk)))
                continue

            result.succeeded_count += len(chunk)
            logger.debug(f"Applied {operation.value} to chunk {index} ({len(chunk)} messages)")

        return result

    # === API ===

    async def _modify(self, operation: Operation, ids: List[str]) -> None:
        body = {'ids': ids, **LABEL_CHANGES[operation]}
        await asyncio.to_thread(
            lambda: self.service.users().messages().batchModify(
                userId='me',
                body=body
            ).execute()
        )

    # === Utilities ===

    @staticmethod
    def chunks(ids: Sequence[str], size: int) -> Iterator[List[str]]:
        """Yield de-duplicated ids in order, at most `size` per chunk"""
        unique = list(dict.fromkeys(ids))
        for start in range(0, len(unique), size):
            yield unique[start:start + size]
