import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import parseaddr
from typing import List, Optional, Tuple

from config import (
    CONTACT_EMAIL,
    FALLBACK_CONTACT_EMAIL,
    SMTP_FROM,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USERNAME,
)

logger = logging.getLogger(__name__)


# =======================================
# SECTION: RESULT TYPES
# =======================================

@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def _is_email(value: Optional[str]) -> bool:
    if not value:
        return False
    _, addr = parseaddr(value)
    return "@" in addr and "." in addr.split("@")[-1]


def from_address() -> str:
    return SMTP_FROM or SMTP_USERNAME or FALLBACK_CONTACT_EMAIL


def contact_recipient() -> str:
    """CONTACT_EMAIL, then SMTP_USERNAME when it is an address, then the address in SMTP_FROM."""
    if _is_email(CONTACT_EMAIL):
        return CONTACT_EMAIL
    if _is_email(SMTP_USERNAME):
        return SMTP_USERNAME
    if SMTP_FROM:
        _, addr = parseaddr(SMTP_FROM)
        if _is_email(addr):
            return addr
    return FALLBACK_CONTACT_EMAIL


# =======================================
# SECTION: SINGLE EMAIL SENDER
# =======================================

def send_email(to: str, subject: str, html: str, reply_to: Optional[str] = None) -> EmailResult:
    """
    Send one HTML email over SMTP (STARTTLS + login).
    Delivery problems are returned as EmailResult(success=False), never raised.
    """
    if not (SMTP_USERNAME and SMTP_PASSWORD):
        logger.warning(f"[mail] smtp not configured, dropping email to={to}")
        return EmailResult(False, "SMTP settings are not fully configured on the server")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_address()
    msg["To"] = to
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content("This message requires an HTML capable email client.")
    msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.starttls()
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning(f"[mail] send failed to={to} error={e}")
        return EmailResult(False, str(e))

    logger.info(f"[mail] sent to={to} subject={subject!r}")
    return EmailResult(True)


# =======================================
# SECTION: BULK SENDER
# =======================================

def send_bulk_emails(recipients: List[str], subject: str, html: str) -> List[Tuple[str, EmailResult]]:
    """One send per recipient; a failure is recorded and the batch continues."""
    results = []
    for to in recipients:
        results.append((to, send_email(to, subject, html)))
    sent = sum(1 for _, r in results if r.success)
    logger.info(f"[mail] bulk subject={subject!r} sent={sent} failed={len(results) - sent}")
    return results
