"""
Settings - Loads job configuration from the environment (.env supported)
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from gmail_sweeper.errors import ConfigurationError
from gmail_sweeper.models import AgeThreshold, JobConfig, KeepFirst, Operation, Query
from gmail_sweeper.mutator import MAX_BATCH_SIZE

# Max threads per users.threads.list page (API limit)
MAX_PAGE_SIZE = 500

PURGE_REPLIES = 'purge_replies'
DELETE_BY_AGE = 'delete_by_age'
ARCHIVE_BY_AGE = 'archive_by_age'


@dataclass
class Settings:
    """Everything a deployment needs; passed explicitly, never read globally"""
    credentials_path: str = 'data/credentials.json'
    token_path: str = 'data/token.json'
    log_level: str = 'INFO'
    jobs: Dict[str, JobConfig] = field(default_factory=dict)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from `environ`, or from os.environ after loading .env"""
    if environ is None:
        load_dotenv()
        environ = os.environ

    dry_run = _get_bool(environ, 'DRY_RUN', True)
    batch_size = _get_int(environ, 'BATCH_SIZE', MAX_BATCH_SIZE)
    page_size = _get_int(environ, 'PAGE_SIZE', 100)

    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ConfigurationError(f"BATCH_SIZE must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigurationError(f"PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")

    purge_label = environ.get('PURGE_LABEL', 'purge-replies')
    delete_label = environ.get('DELETE_LABEL', 'auto-delete')
    delete_days = _get_int(environ, 'DELETE_AFTER_DAYS', 30)
    archive_label = environ.get('ARCHIVE_LABEL', 'auto-archive')
    archive_days = _get_int(environ, 'ARCHIVE_AFTER_DAYS', 7)

    common = dict(batch_size=batch_size, page_size=page_size, dry_run=dry_run)
    jobs = {
        PURGE_REPLIES: JobConfig(
            name=PURGE_REPLIES,
            query=Query(label=purge_label),
            policy=KeepFirst(),
            operation=Operation.TRASH,
            **common
        ),
        DELETE_BY_AGE: JobConfig(
            name=DELETE_BY_AGE,
            query=Query(label=delete_label, older_than_days=delete_days),
            policy=AgeThreshold(delete_days),
            operation=Operation.TRASH,
            **common
        ),
        ARCHIVE_BY_AGE: JobConfig(
            name=ARCHIVE_BY_AGE,
            query=Query(label=archive_label, older_than_days=archive_days, inbox_only=True),
            policy=AgeThreshold(archive_days),
            operation=Operation.ARCHIVE,
            **common
        ),
    }

    return Settings(
        credentials_path=environ.get('GMAIL_CREDENTIALS_PATH', 'data/credentials.json'),
        token_path=environ.get('GMAIL_TOKEN_PATH', 'data/token.json'),
        log_level=environ.get('LOG_LEVEL', 'INFO').upper(),
        jobs=jobs
    )


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _get_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    value = raw.strip().lower()
    if value in ('true', '1', 'yes'):
        return True
    if value in ('false', '0', 'no'):
        return False
    raise ConfigurationError(f"{name} must be true or false, got {raw!r}")
