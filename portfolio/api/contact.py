"""Contact form API endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portfolio.api.deps import ContactPipelineDep, get_submission_origin
from portfolio.core.exceptions import ValidationFailure
from portfolio.core.rate_limit import RateLimitContact, RateLimitStandard
from portfolio.schemas.contact import ContactFormRequest, ContactFormResponse, ErrorResponse
from portfolio.services.contact_pipeline import SubmissionOrigin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_contact_payload(request: Request) -> dict[str, Any]:
    """Contact fields from a JSON or form-encoded body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        body: Any = dict(await request.form())
    else:
        try:
            body = await request.json()
        except ValueError:
            body = None

    if not isinstance(body, dict):
        raise ValidationFailure(
            errors=[{"field": "body", "message": "Request body must be a JSON object or form data"}]
        )

    try:
        return ContactFormRequest.model_validate(body).model_dump()
    except ValidationError as e:
        raise ValidationFailure(
            errors=[{"field": str(err["loc"][0]), "message": err["msg"]} for err in e.errors()]
        ) from e


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ContactFormResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def submit_contact_form(
    request: Request,
    _standard: RateLimitStandard,
    _contact: RateLimitContact,
    pipeline: ContactPipelineDep,
    origin: Annotated[SubmissionOrigin, Depends(get_submission_origin)],
) -> JSONResponse:
    """
    Submit the contact form.

    The submission is stored before any email is attempted; email
    failures are reported in `emailNotifications` and never fail the request.
    """
    payload = await read_contact_payload(request)
    result = await pipeline.submit(payload, origin)

    logger.info(f"Contact form submission completed: {result.submission.id}")
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=result.to_response())
