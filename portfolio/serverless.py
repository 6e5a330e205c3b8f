"""
Serverless entry point.

`handler(event, context)` serves the contact form, projects and skills
from a Netlify/Lambda-style function, running the same pipeline as the
ASGI app with a database connection opened per invocation.
"""

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Optional
from urllib.parse import parse_qsl

from delivery.gateway import NotificationGateway
from portfolio.core.config import Settings, settings as default_settings
from portfolio.core.exceptions import ContactPipelineError, PersistenceFailure, ValidationFailure
from portfolio.database import Database
from portfolio.schemas.content import create_list_response
from portfolio.services.contact_pipeline import ContactPipeline, SubmissionOrigin
from portfolio.services.content import default_projects, list_projects, list_skills
from portfolio.services.submission_store import SubmissionStore

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Content-Type": "application/json",
}

# Route name -> allowed method
ROUTES = {
    "contact": "POST",
    "projects": "GET",
    "skills": "GET",
}

BODY_ERROR = {"field": "body", "message": "Request body must be a JSON object or form data"}

# A single attempt; the platform retries failed invocations itself
SERVERLESS_CONNECT_RETRIES = 1


def json_response(status_code: int, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body) if body is not None else "",
    }


def route_name(path: str) -> str:
    """Last path segment: '/.netlify/functions/contact' and '/api/contact' both map to 'contact'."""
    return path.rstrip("/").rsplit("/", 1)[-1]


def lower_headers(event: dict[str, Any]) -> dict[str, str]:
    return {k.lower(): v for k, v in (event.get("headers") or {}).items()}


def parse_body(event: dict[str, Any]) -> dict[str, Any]:
    """
    Decode a JSON or form-encoded event body.

    Raises:
        ValidationFailure: If the body cannot be decoded or is not an object.
    """
    raw = event.get("body") or ""
    if event.get("isBase64Encoded") and raw:
        try:
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        except (ValueError, binascii.Error):
            raise ValidationFailure(errors=[dict(BODY_ERROR)])

    content_type = lower_headers(event).get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(raw, keep_blank_values=True))

    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise ValidationFailure(errors=[dict(BODY_ERROR)])
    return body


def event_origin(event: dict[str, Any]) -> SubmissionOrigin:
    headers = lower_headers(event)
    forwarded_for = headers.get("x-forwarded-for")
    ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else headers.get("client-ip")
    return SubmissionOrigin(
        ip_address=ip_address or None,
        user_agent=headers.get("user-agent"),
        referrer=headers.get("referer"),
    )


async def handle_contact(
    event: dict[str, Any],
    config: Settings,
    database: Database,
    gateway: NotificationGateway,
) -> dict[str, Any]:
    try:
        payload = parse_body(event)
        if not await database.connect():
            raise PersistenceFailure()
        async with database.session() as session:
            pipeline = ContactPipeline(SubmissionStore(session, config), gateway, config=config)
            result = await pipeline.submit(payload, event_origin(event))
    except ContactPipelineError as e:
        if e.status_code >= 500:
            logger.error(f"Contact function error: {e.message} ({e.__cause__})")
        return json_response(e.status_code, e.to_response(debug=config.debug))

    return json_response(201, result.to_response())


async def handle_projects(database: Database) -> dict[str, Any]:
    if not await database.connect(create_tables=False):
        return json_response(200, create_list_response(default_projects()))
    async with database.session() as session:
        projects = await list_projects(session)
    return json_response(200, create_list_response(projects))


async def handle_event(
    event: dict[str, Any],
    config: Optional[Settings] = None,
    database: Optional[Database] = None,
    gateway: Optional[NotificationGateway] = None,
) -> dict[str, Any]:
    """Dispatch one function invocation."""
    config = config or default_settings
    method = (event.get("httpMethod") or "GET").upper()
    route = route_name(event.get("path") or "")

    if method == "OPTIONS":
        return json_response(200)

    allowed = ROUTES.get(route)
    if allowed is None:
        return json_response(404, {"success": False, "message": "Not found"})
    if method != allowed:
        return json_response(405, {"success": False, "message": "Method not allowed"})

    if route == "skills":
        return json_response(200, create_list_response(list_skills()))

    database = database or Database(config=config, pooled=False, max_retries=SERVERLESS_CONNECT_RETRIES)
    gateway = gateway or NotificationGateway(config)
    try:
        if route == "contact":
            return await handle_contact(event, config, database, gateway)
        return await handle_projects(database)
    finally:
        await gateway.close()
        await database.disconnect()


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Synchronous function entry point."""
    return asyncio.run(handle_event(event))
