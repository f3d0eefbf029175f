"""routers/contact.py - Public contact form, forwarded to the support inbox."""

import logging
from html import escape

from fastapi import APIRouter

import mailer
from errors import UpstreamError
from schemas.email import ContactRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def render_contact_email(payload: ContactRequest) -> str:
    return (
        "<h2>New Contact Form Submission</h2>"
        f"<p><strong>Name:</strong> {escape(payload.fullName)}</p>"
        f"<p><strong>Email:</strong> {escape(payload.email)}</p>"
        f"<p><strong>Company:</strong> {escape(payload.companyName or 'N/A')}</p>"
        f"<p><strong>Phone:</strong> {escape(payload.phone or 'N/A')}</p>"
        "<br/><h3>Message:</h3>"
        f'<p style="white-space: pre-wrap;">{escape(payload.message)}</p>'
    )


@router.post("/contact")
def submit_contact(payload: ContactRequest):
    recipient = mailer.contact_recipient()
    result = mailer.send_email(
        to=recipient,
        subject=f"New Contact Form Submission from {payload.fullName}",
        html=render_contact_email(payload),
        reply_to=payload.email,
    )
    if not result.success:
        logger.warning(f"[contact] delivery failed error={result.error}")
        raise UpstreamError("Failed to send message")

    logger.info(f"[contact] forwarded from={payload.email}")
    return {"success": True, "message": "Message sent successfully"}
