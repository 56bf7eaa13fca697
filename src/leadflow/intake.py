"""Public application intake: attachment checks and submission."""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes

from leadflow.config import DEFAULT_MAX_CV_BYTES
from leadflow.gateway import LeadGateway
from leadflow.schemas import LeadFormData, MutationResult

log = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong while sending your application. Please try again."


class IntakeError(ValueError):
    """Submission rejected before it reached the gateway."""


class AttachmentTooLarge(IntakeError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"CV is {size} bytes; the limit is {limit} bytes")
        self.size = size
        self.limit = limit


def encode_attachment(
    content: bytes, filename: str, max_bytes: int = DEFAULT_MAX_CV_BYTES,
) -> tuple[str, str]:
    """Return ``(data_url, filename)`` for a CV upload."""
    if not content:
        raise IntakeError("CV file is empty")
    if len(content) > max_bytes:
        raise AttachmentTooLarge(len(content), max_bytes)
    mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime};base64,{encoded}", filename


def _decoded_size(data_url: str) -> int:
    payload = data_url.split(",", 1)[1] if data_url.startswith("data:") else data_url
    try:
        return len(base64.b64decode(payload, validate=True))
    except (binascii.Error, ValueError) as e:
        raise IntakeError("CV attachment is not valid base64") from e


def check_attachment(form: LeadFormData, max_bytes: int = DEFAULT_MAX_CV_BYTES) -> None:
    if not form.cv_base64:
        return
    size = _decoded_size(form.cv_base64)
    if size > max_bytes:
        raise AttachmentTooLarge(size, max_bytes)


async def submit_application(
    gateway: LeadGateway, form: LeadFormData, max_cv_bytes: int = DEFAULT_MAX_CV_BYTES,
) -> MutationResult:
    """Validate, then hand the submission to the gateway.

    ``IntakeError`` propagates to the caller; anything the gateway raises is
    logged and reported as a generic failure.
    """
    check_attachment(form, max_cv_bytes)
    try:
        result = await gateway.create(form)
    except Exception:
        log.exception("Submitting application for %s failed", form.email)
        return MutationResult(success=False, error=GENERIC_FAILURE)
    if not result.success:
        log.error("Backend rejected application for %s: %s", form.email, result.error)
    return result
