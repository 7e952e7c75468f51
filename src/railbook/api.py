from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from railbook.config import Settings
from railbook.errors import RailbookError
from railbook.runtime import RailbookRuntime

settings = Settings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Railbook API", version="0.1.0")


def _cors_origins() -> list[str]:
    origins = list(settings.cors_origins)
    if "*" in origins:
        return ["*"]
    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

runtime = RailbookRuntime(settings)


def _error_body(error: RailbookError) -> dict[str, Any]:
    return {
        "success": False,
        "error": error.message,
        "message": error.details,
        "details": error.details,
        "code": error.code,
    }


@app.exception_handler(RailbookError)
def handle_railbook_error(request: Request, exc: RailbookError) -> JSONResponse:
    logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.details)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "railbook-api", "status": "ok"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/bookings/create")
async def create_booking(request: Request) -> dict[str, Any]:
    payload = await _json_body(request)
    return runtime.create_booking(payload)


@app.get("/api/bookings/create")
def booking_health() -> JSONResponse:
    try:
        return JSONResponse(runtime.health())
    except Exception as exc:
        logger.exception("Booking health check failed")
        return JSONResponse({"status": "error", "error": str(exc)}, status_code=500)


@app.get("/api/bookings/{booking_code}/activity")
def get_booking_activity(booking_code: str) -> list[dict[str, Any]]:
    return runtime.booking_activity(booking_code)


@app.post("/api/tickets/send-email")
async def send_ticket_email(request: Request) -> Any:
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        payload = {}
    try:
        return runtime.send_ticket_email(payload.get("bookingId"), payload.get("sendToEmail"))
    except RailbookError:
        raise
    except Exception as exc:
        logger.exception("Ticket e-mail for %s failed unexpectedly", payload.get("bookingId"))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to send email", "details": str(exc), "code": "INTERNAL_ERROR"},
        )


@app.get("/api/tickets/{ticket_number}")
def get_ticket(ticket_number: str) -> dict[str, Any]:
    ticket = runtime.ticket_detail(ticket_number)
    if ticket is None:
        raise HTTPException(status_code=404, detail="ticket not found")
    return ticket


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
