#!/usr/bin/env python3
"""
Gmail Sweeper Web Application
FastAPI server that a scheduler calls to run purge/delete/archive jobs
"""

import logging
from typing import Dict, Optional

from gmail_sweeper.config import load_settings

settings = load_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

from fastapi import FastAPI, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from gmail_sweeper.gmail_service import GmailService
from gmail_sweeper.models import AgeThreshold

logger.info(f"Starting Gmail Sweeper with log level: {settings.log_level}")

app = FastAPI(title="Gmail Sweeper", description="Scheduled purge, delete and archive jobs for Gmail")

# Global state
gmail_service = GmailService(settings)


# Progress callback for Gmail service
async def progress_callback(message_type: str, data: Dict):
    """Log job progress events"""
    logger.debug(f"Progress: {message_type} - {data}")


gmail_service.set_progress_callback(progress_callback)


# Request/Response models
class RunJobRequest(BaseModel):
    dry_run: Optional[bool] = None


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/auth/status")
def check_auth_status():
    """Check if already authenticated"""
    authenticated = bool(gmail_service.service) or gmail_service.authenticate()
    return {"authenticated": authenticated}


@app.get("/auth/start")
def start_auth():
    """Start the one-time OAuth consent flow"""
    try:
        auth_url = gmail_service.create_oauth_flow()
    except FileNotFoundError as e:
        logger.error(f"Error starting OAuth flow: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "redirect", "auth_url": auth_url}


@app.get("/oauth/callback")
def oauth_callback(code: str = None, error: str = None):
    """Handle OAuth2 callback from Google"""
    if error:
        raise HTTPException(status_code=400, detail=f"OAuth error: {error}")

    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        success = gmail_service.complete_oauth_flow(code)
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not success:
        raise HTTPException(status_code=400, detail="OAuth authentication failed")

    return RedirectResponse(url="/auth/status")


@app.get("/jobs")
def list_jobs():
    """List configured jobs"""
    jobs = {}
    for name, config in settings.jobs.items():
        if isinstance(config.policy, AgeThreshold):
            policy = f"older_than_{config.policy.days}_days"
        else:
            policy = "keep_first"
        jobs[name] = {
            "query": config.query.to_search_string(),
            "policy": policy,
            "operation": config.operation.value,
            "dry_run": config.dry_run,
            "batch_size": config.batch_size
        }
    return {"jobs": jobs}


@app.post("/jobs/cancel")
def cancel_job():
    """Stop the running job at its next page boundary"""
    return {"cancelled": gmail_service.cancel()}


@app.post("/jobs/{job_name}/run")
async def run_job(job_name: str, request: Optional[RunJobRequest] = None):
    """Run a job to completion and return its summary"""
    if job_name not in settings.jobs:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")

    if not gmail_service.service and not gmail_service.authenticate():
        raise HTTPException(status_code=400, detail="Not authenticated. Please authenticate first.")

    dry_run = request.dry_run if request else None
    logger.info(f"Run endpoint called for {job_name} (dry_run override: {dry_run})")

    summary = await gmail_service.run_job(job_name, dry_run=dry_run)

    return {
        "status": "aborted" if summary.aborted else "completed",
        "summary": summary.to_dict()
    }

# To run this application, use:
# uvicorn gmail_sweeper.main:app
