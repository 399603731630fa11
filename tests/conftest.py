"""
Shared test fixtures for Gmail Sweeper tests
"""

import pytest
from typing import Dict, List, Optional, Set
from googleapiclient.errors import HttpError

from gmail_sweeper.models import AgeThreshold, JobConfig, KeepFirst, Operation, Query


MS_PER_DAY = 86_400_000
NOW = 1_700_000_000_000


# === Mock Gmail API Service ===

class MockExecute:
    """Mock for the .execute() call that returns stored data"""
    def __init__(self, data):
        self._data = data

    def execute(self):
        return self._data


class MockHttpResponse:
    """Mock HTTP response for HttpError"""
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason


def make_http_error(status: int = 500, reason: str = 'Backend Error') -> HttpError:
    return HttpError(resp=MockHttpResponse(status, reason), content=reason.encode())


class MockThreads:
    """Mock for users().threads()"""
    def __init__(self, mailbox: 'MockGmailService'):
        self._mailbox = mailbox

    def list(self, userId: str, maxResults: int = 100, pageToken: Optional[str] = None, q: str = ''):
        mailbox = self._mailbox
        mailbox.list_calls.append({'q': q, 'pageToken': pageToken, 'maxResults': maxResults})
        if len(mailbox.list_calls) in mailbox.list_raises:
            raise mailbox.list_raises[len(mailbox.list_calls)]
        if len(mailbox.list_calls) in mailbox.fail_list_calls:
            raise make_http_error(503, 'Service Unavailable')

        threads = [t for t in mailbox.threads if mailbox.matches(t, q)]

        # Handle pagination
        start_idx = int(pageToken) if pageToken else 0
        end_idx = min(start_idx + maxResults, len(threads))

        # Only include id in list response (like real API)
        result = {
            'threads': [{'id': t['id']} for t in threads[start_idx:end_idx]],
            'resultSizeEstimate': len(threads)
        }

        # Add nextPageToken if there are more threads
        if end_idx < len(threads):
            result['nextPageToken'] = str(end_idx)

        return MockExecute(result)

    def get(self, userId: str, id: str, format: str = None):
        mailbox = self._mailbox
        if id in mailbox.thread_raises:
            raise mailbox.thread_raises[id]
        if id in mailbox.fail_threads:
            raise make_http_error(500, 'Backend Error')
        thread = mailbox.threads_by_id.get(id)
        if thread:
            return MockExecute(thread)
        # Return empty thread if not found
        return MockExecute({'id': id, 'messages': []})


class MockMessages:
    """Mock for users().messages()"""
    def __init__(self, mailbox: 'MockGmailService'):
        self._mailbox = mailbox

    def batchModify(self, userId: str, body: Dict):
        mailbox = self._mailbox
        mailbox.batch_calls.append(body)
        if len(mailbox.batch_calls) in mailbox.batch_raises:
            raise mailbox.batch_raises[len(mailbox.batch_calls)]
        if len(mailbox.batch_calls) in mailbox.fail_batch_calls:
            raise make_http_error(500, 'Backend Error')

        for message_id in body['ids']:
            message = mailbox.messages_by_id[message_id]
            labels = [l for l in message['labelIds'] if l not in body.get('removeLabelIds', [])]
            for label in body.get('addLabelIds', []):
                if label not in labels:
                    labels.append(label)
            message['labelIds'] = labels

        return MockExecute({})


class MockUsers:
    """Mock for service.users()"""
    def __init__(self, mailbox: 'MockGmailService'):
        self._threads = MockThreads(mailbox)
        self._messages = MockMessages(mailbox)

    def threads(self):
        return self._threads

    def messages(self):
        return self._messages


class MockGmailService:
    """Mock Gmail API service holding a mutable mailbox

    Label names are used directly as label ids. Search only understands
    `label:<name>` and `in:inbox`; age filtering is left to the classifier.
    """

    def __init__(
        self,
        threads: List[dict],
        fail_list_calls: Set[int] = None,
        fail_threads: Set[str] = None,
        fail_batch_calls: Set[int] = None
    ):
        self.threads = threads
        self.threads_by_id = {t['id']: t for t in threads}
        self.messages_by_id = {m['id']: m for t in threads for m in t['messages']}
        self.fail_list_calls = fail_list_calls or set()
        self.fail_threads = fail_threads or set()
        self.fail_batch_calls = fail_batch_calls or set()
        # Non-HttpError failures: call number (or thread id) -> exception to raise
        self.list_raises: Dict[int, Exception] = {}
        self.thread_raises: Dict[str, Exception] = {}
        self.batch_raises: Dict[int, Exception] = {}
        self.list_calls: List[Dict] = []
        self.batch_calls: List[Dict] = []

    def users(self):
        return MockUsers(self)

    @staticmethod
    def matches(thread: dict, q: str) -> bool:
        live = [m for m in thread['messages'] if 'TRASH' not in m['labelIds']]
        if not live:
            return False
        for term in q.split():
            if term.startswith('label:'):
                label = term[len('label:'):]
                if not any(label in m['labelIds'] for m in live):
                    return False
            elif term == 'in:inbox':
                if not any('INBOX' in m['labelIds'] for m in live):
                    return False
        return True

    def labels_of(self, message_id: str) -> List[str]:
        return self.messages_by_id[message_id]['labelIds']

    @property
    def modified_ids(self) -> List[str]:
        """All ids sent to batchModify, in call order"""
        return [message_id for call in self.batch_calls for message_id in call['ids']]


# === Helpers to create thread data ===

def make_message(message_id: str, days_old: float, labels: List[str] = None) -> dict:
    """Message dict matching the threads.get(format='minimal') structure"""
    return {
        'id': message_id,
        'internalDate': str(int(NOW - days_old * MS_PER_DAY)),
        'labelIds': list(labels or ['INBOX'])
    }


def make_thread(thread_id: str, ages: List[float], labels: List[str] = None) -> dict:
    """Thread whose messages are `ages` days old, oldest first"""
    ordered = sorted(ages, reverse=True)
    return {
        'id': thread_id,
        'messages': [
            make_message(f'{thread_id}_msg_{i}', age, labels)
            for i, age in enumerate(ordered)
        ]
    }


def make_job_config(
    policy=None,
    operation: Operation = Operation.TRASH,
    query: Query = None,
    name: str = 'test_job',
    **kwargs
) -> JobConfig:
    return JobConfig(
        name=name,
        query=query or Query(label='sweep'),
        policy=policy or KeepFirst(),
        operation=operation,
        **kwargs
    )


# === Fixtures ===

@pytest.fixture
def sample_threads() -> List[dict]:
    """Threads labeled 'sweep' with a mix of ages and sizes"""
    return [
        make_thread('thread_001', [40], ['INBOX', 'sweep']),
        make_thread('thread_002', [40, 20, 1], ['INBOX', 'sweep']),
        make_thread('thread_003', [10, 9], ['INBOX', 'sweep']),
        make_thread('thread_004', [100, 50, 8, 2], ['INBOX', 'sweep']),
        # Not labeled, must never be touched
        make_thread('thread_005', [400, 300], ['INBOX']),
    ]


@pytest.fixture
def mock_gmail_service(sample_threads) -> MockGmailService:
    """Returns a MockGmailService with the sample mailbox"""
    return MockGmailService(sample_threads)


@pytest.fixture
def mock_gmail_service_empty() -> MockGmailService:
    """Returns a MockGmailService with an empty mailbox"""
    return MockGmailService([])


@pytest.fixture
def keep_first_config() -> JobConfig:
    """Live KeepFirst/trash config"""
    return make_job_config(KeepFirst(), Operation.TRASH, dry_run=False)


@pytest.fixture
def age_trash_config() -> JobConfig:
    """Live AgeThreshold(30)/trash config"""
    return make_job_config(AgeThreshold(30), Operation.TRASH, dry_run=False)
