"""
Review Scraper API Server

FastAPI server exposing the two functions of this project over HTTP:
a scrape run that writes new reviews to Supabase, and a contact form
relay that forwards a message by email. Each run is triggered by one
request; browsers get permissive CORS answers.

Usage:
    python -m uvicorn api_server:app --host 0.0.0.0 --port 8080
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from mailer import MailerError, send_contact_message
from review_models import ContactMessage, ScrapeSummary
from review_scraper import build_store, run_scrape
from scraper_config import load_config, load_mailer_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Review Scraper API",
    description="HTTP triggers for the review scraper and the contact form relay",
    version="1.0.0",
)

# --- CORS ---

SCRAPE_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, apikey, x-client-info",
}

EMAIL_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

EMAIL_RESPONSE_HEADERS = {"Access-Control-Allow-Headers": "Content-Type, Authorization"}

ScrapeRunner = Callable[[], Awaitable[ScrapeSummary]]
MailSender = Callable[[ContactMessage], Awaitable[None]]


def json_response(payload: dict[str, Any], status_code: int = 200,
                  headers: Optional[dict[str, str]] = None) -> JSONResponse:
    """JSON response that browsers on any origin may read."""
    return JSONResponse(
        content=payload,
        status_code=status_code,
        headers={"Access-Control-Allow-Origin": "*", **(headers or {})},
    )


# --- Dependencies ---


async def default_scrape_runner() -> ScrapeSummary:
    """Load settings from the environment and run one scrape into Supabase."""
    config = load_config(require_store=True)
    store = build_store(config)
    return await run_scrape(config, store=store)


async def default_mail_sender(message: ContactMessage) -> None:
    await send_contact_message(message, load_mailer_config())


def get_scrape_runner() -> ScrapeRunner:
    return default_scrape_runner


def get_mail_sender() -> MailSender:
    return default_mail_sender


# --- Endpoints ---


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.options("/scrape-reviews")
async def scrape_reviews_preflight():
    return Response(status_code=200, headers=SCRAPE_PREFLIGHT_HEADERS)


@app.api_route("/scrape-reviews", methods=["GET", "POST"])
async def scrape_reviews(runner: ScrapeRunner = Depends(get_scrape_runner)):
    """Run one scrape. No-results outcomes are 200; any failure is 500."""
    try:
        summary = await runner()
    except Exception as e:
        logger.exception(f"Error in scrape handler: {e}")
        return json_response({"error": str(e) or "An unexpected error occurred."}, status_code=500)
    finally:
        logger.info("Scrape request finished")

    return json_response(summary.to_payload())


@app.options("/send-email")
async def send_email_preflight():
    return Response(status_code=200, headers=EMAIL_PREFLIGHT_HEADERS)


@app.post("/send-email")
async def send_email(request: Request, sender: MailSender = Depends(get_mail_sender)):
    """Relay a contact form submission by email."""
    try:
        data = await request.json()
        message = ContactMessage.model_validate(data)
        await sender(message)
    except MailerError as e:
        return json_response({"error": str(e)}, status_code=500,
                             headers=EMAIL_RESPONSE_HEADERS)
    except Exception as e:
        logger.exception(f"Error in send-email handler: {e}")
        return json_response({"error": "Internal server error"}, status_code=500,
                             headers=EMAIL_RESPONSE_HEADERS)

    return json_response({"message": "Email sent successfully"},
                         headers=EMAIL_RESPONSE_HEADERS)


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
