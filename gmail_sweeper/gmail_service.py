#!/usr/bin/env python3
"""
Gmail Service - Facade for Gmail operations
Handles authentication and wires jobs to the enumerator, mutator and runner
"""

import os
import signal
import sys
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Callable

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

from gmail_sweeper.config import Settings
from gmail_sweeper.enumerator import ThreadEnumerator
from gmail_sweeper.models import JobSummary
from gmail_sweeper.mutator import BatchMutator
from gmail_sweeper.runner import JobRunner


logger = logging.getLogger(__name__)

# If modifying these scopes, delete the file token.json.
SCOPES = ['https://www.googleapis.com/auth/gmail.modify']


class GmailService:
    """Facade for Gmail operations - handles auth and runs configured jobs"""

    def __init__(self, settings: Settings, service=None):
        self.settings = settings
        self.credentials_path = settings.credentials_path
        self.token_path = settings.token_path
        self.service = service
        self.flow = None

        # Progress callback
        self.progress_callback: Optional[Callable] = None

        # Runner currently executing, target of interrupts
        self.active_runner: Optional[JobRunner] = None

        # Signal handling
        self.interrupted = False
        signal.signal(signal.SIGINT, self._handle_interrupt)

    def _handle_interrupt(self, signum, frame):
        """Handle Ctrl+C gracefully, stopping the active job at the next page boundary

        Only effective when running jobs outside uvicorn, which installs its own
        SIGINT handler while serving. Under the server use POST /jobs/cancel.
        """
        if not self.interrupted:
            self.interrupted = True
            self.cancel()
        else:
            sys.exit(1)

    def cancel(self) -> bool:
        """Stop the active job at its next page boundary, returns False if none is running"""
        if not self.active_runner:
            return False
        self.active_runner.interrupted = True
        logger.info(f"Cancellation requested for job {self.active_runner.config.name}")
        return True

    def set_progress_callback(self, callback: Callable[[str, Dict], None]):
        """Set callback for progress updates"""
        self.progress_callback = callback

    # === Authentication ===

    def create_oauth_flow(self, redirect_uri: str = None) -> str:
        """Create OAuth2 flow and return authorization URL"""
        if not os.path.exists(self.credentials_path):
            raise FileNotFoundError(f"Credentials file not found at {self.credentials_path}")

        self.flow = Flow.from_client_secrets_file(
            self.credentials_path,
            scopes=SCOPES,
            redirect_uri=redirect_uri or "http://localhost:8000/oauth/callback"
        )

        auth_url, _ = self.flow.authorization_url(
            access_type='offline',
            include_granted_scopes='true',
            prompt='consent'
        )

        return auth_url

    def complete_oauth_flow(self, authorization_code: str) -> bool:
        """Complete OAuth flow with authorization code"""
        if not self.flow:
            raise RuntimeError("OAuth flow not initialized. Call create_oauth_flow first.")

        try:
            self.flow.fetch_token(code=authorization_code)

            creds = self.flow.credentials
            token_path = Path(self.token_path)
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(creds.to_json())

            self.service = build('gmail', 'v1', credentials=creds)
            logger.info("Successfully authenticated with Gmail via OAuth")
            return True

        except Exception as error:
            logger.error(f"OAuth authentication failed: {error}")
            return False

    def authenticate(self) -> bool:
        """Check if already authenticated and refresh credentials if needed"""
        try:
            token_path = Path(self.token_path)

            if not token_path.exists():
                logger.info("No existing token found - user needs to authenticate via OAuth")
                return False

            creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

            if not creds or not creds.valid:
                if creds and creds.expired and creds.refresh_token:
                    logger.info("Refreshing expired credentials")
                    creds.refresh(Request())
                    token_path.write_text(creds.to_json())
                else:
                    logger.warning("Credentials invalid and cannot be refreshed - user needs to re-authenticate")
                    return False

            self.service = build('gmail', 'v1', credentials=creds)
            logger.info("Successfully authenticated with existing credentials")
            return True

        except Exception as error:
            logger.error(f"Authentication failed: {error}")
            return False

    # === Jobs ===

    async def run_job(self, job_name: str, dry_run: Optional[bool] = None) -> JobSummary:
        """Run a configured job by name, raises KeyError for unknown jobs"""
        if not self.service:
            raise RuntimeError("Not authenticated. Call authenticate() first.")

        config = self.settings.jobs[job_name]
        if dry_run is not None and dry_run != config.dry_run:
            config = replace(config, dry_run=dry_run)

        runner = JobRunner(
            config,
            ThreadEnumerator(self.service, page_size=config.page_size),
            BatchMutator(self.service, max_batch_size=config.batch_size),
            progress_callback=self.progress_callback
        )

        self.interrupted = False
        self.active_runner = runner
        try:
            return await runner.run()
        finally:
            self.active_runner = None
