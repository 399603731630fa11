"""
Error types for Gmail Sweeper
"""

from typing import Optional

from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

# Failures a Gmail API round trip can raise: API errors, transport errors
# (timeouts, resets and SSL failures are all OSError) and credential refresh
API_ERRORS = (HttpError, HttpLib2Error, OSError, TransportError, RefreshError)


class SweeperError(Exception):
    """Base class for all sweeper errors"""


class TransientFetchError(SweeperError):
    """A page or thread fetch failed (network, quota, 5xx)"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class BatchMutationError(SweeperError):
    """A single batchModify chunk failed"""

    def __init__(self, message: str, chunk_index: int, chunk_size: int):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.chunk_size = chunk_size


class ConfigurationError(SweeperError):
    """Invalid settings detected while loading configuration"""
