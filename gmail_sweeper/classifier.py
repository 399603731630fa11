"""
Message Classifier - Decides which messages in a thread get the state change
"""

import logging
from typing import List, Sequence

from gmail_sweeper.models import Message, Policy, AgeThreshold, KeepFirst


logger = logging.getLogger(__name__)

MS_PER_DAY = 86_400_000


def classify(messages: Sequence[Message], policy: Policy, now: int) -> List[str]:
    """Return ids of qualifying messages, in thread order.

    Relies on messages being ordered oldest first, as returned by the API.
    `now` is epoch milliseconds.
    """
    if isinstance(policy, KeepFirst):
        return _keep_first(messages)
    if isinstance(policy, AgeThreshold):
        return _older_than(messages, policy.days, now)
    raise TypeError(f"Unsupported policy: {policy!r}")


def _keep_first(messages: Sequence[Message]) -> List[str]:
    if len(messages) <= 1:
        return []
    return [message.id for message in messages[1:]]


def _older_than(messages: Sequence[Message], days: int, now: int) -> List[str]:
    # A non-positive threshold would match every message in the thread
    if days <= 0:
        logger.warning(f"Ignoring non-positive age threshold ({days} days), nothing will be selected")
        return []

    cutoff = now - days * MS_PER_DAY
    return [message.id for message in messages if message.timestamp < cutoff]
