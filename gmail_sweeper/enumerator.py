"""
Thread Enumerator - Pages through threads matching a Gmail search query

Enumeration is not snapshot isolated: messages that arrive or change labels
between two page requests may or may not show up. Restarting means reissuing
the query from the first page.
"""

import asyncio
import logging
from typing import Optional

from gmail_sweeper.errors import API_ERRORS, TransientFetchError
from gmail_sweeper.models import Message, Page, Query, Thread


logger = logging.getLogger(__name__)

TRASH_LABEL = 'TRASH'


class ThreadEnumerator:
    """Fetches pages of thread ids and the messages of individual threads"""

    def __init__(
        self,
        service,  # Gmail API service object
        page_size: int = 100
    ):
        self.service = service
        self.page_size = page_size

    # === Pages ===

    async def next_page(self, query: Query, page_token: Optional[str] = None) -> Page:
        """Fetch one page of threads, raises TransientFetchError on API failure"""
        q = query.to_search_string()
        try:
            results = await asyncio.to_thread(
                lambda: self.service.users().threads().list(
                    userId='me',
                    maxResults=self.page_size,
                    pageToken=page_token,
                    q=q
                ).execute()
            )
        except API_ERRORS as error:
            raise TransientFetchError(
                f"Error listing threads for '{q}': {error}",
                status=self._status_of(error)
            ) from error

        thread_ids = [thread['id'] for thread in results.get('threads', [])]
        page = Page(
            thread_ids=thread_ids,
            next_page_token=results.get('nextPageToken'),
            result_size_estimate=results.get('resultSizeEstimate')
        )
        logger.debug(f"Fetched page with {len(thread_ids)} threads for '{q}' (more: {bool(page.next_page_token)})")
        return page

    # === Threads ===

    async def get_thread(self, thread_id: str) -> Thread:
        """Fetch a thread's messages, oldest first, skipping already trashed ones

        Trashed messages are dropped before classification, so when the
        oldest message is already in the trash KeepFirst keeps the oldest
        message still outside it.
        """
        try:
            thread_data = await asyncio.to_thread(
                lambda: self.service.users().threads().get(
                    userId='me',
                    id=thread_id,
                    format='minimal'
                ).execute()
            )
        except API_ERRORS as error:
            raise TransientFetchError(
                f"Error fetching thread {thread_id}: {error}",
                status=self._status_of(error)
            ) from error

        messages = []
        for message in thread_data.get('messages', []):
            label_ids = message.get('labelIds', [])
            if TRASH_LABEL in label_ids:
                continue
            messages.append(Message(
                id=message['id'],
                timestamp=int(message['internalDate']),
                label_ids=label_ids
            ))

        return Thread(id=thread_id, messages=messages)

    # === Utilities ===

    @staticmethod
    def _status_of(error: Exception) -> Optional[int]:
        return getattr(getattr(error, 'resp', None), 'status', None)
