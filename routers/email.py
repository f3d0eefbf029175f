"""routers/email.py - Admin email campaigns to users."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func

import mailer
from auth import require_permission
from db import SessionLocal
from models import EmailCampaign, EmailCampaignRecipient, User
from permissions import Role
from schemas.email import AdminBulkEmailRequest, AdminEmailRequest, EmailSendResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/email")

can_send = require_permission("email", "send")


def accepts_email(user: User) -> bool:
    """Newsletter preference only applies to customers."""
    return user.role != Role.USER.value or bool(user.wants_newsletter)


def campaign_status(outcomes: List[bool]) -> str:
    """sent when every delivery succeeded, failed when none did, partial otherwise."""
    if outcomes and all(outcomes):
        return "sent"
    if not any(outcomes):
        return "failed"
    return "partial"


def _send_campaign(db, admin: User, recipients: List[User], subject: str, content: str) -> EmailCampaign:
    """Deliver one email per recipient and record the campaign with per-recipient status."""
    campaign = EmailCampaign(
        subject=subject,
        content=content,
        sent_by_id=admin.id,
        recipient_count=len(recipients),
        status="sending",
    )
    db.add(campaign)
    db.flush()

    results = mailer.send_bulk_emails([u.email for u in recipients], subject, content)
    campaign.status = campaign_status([result.success for _, result in results])
    for user, (_, result) in zip(recipients, results):
        db.add(EmailCampaignRecipient(
            campaign_id=campaign.id,
            user_id=user.id,
            email=user.email,
            status="sent" if result.success else "failed",
            error=result.error,
        ))
    db.commit()
    db.refresh(campaign)
    return campaign


def _counts(db, campaign_id: str):
    sent = (
        db.query(func.count(EmailCampaignRecipient.id))
        .filter(EmailCampaignRecipient.campaign_id == campaign_id, EmailCampaignRecipient.status == "sent")
        .scalar()
    ) or 0
    failed = (
        db.query(func.count(EmailCampaignRecipient.id))
        .filter(EmailCampaignRecipient.campaign_id == campaign_id, EmailCampaignRecipient.status == "failed")
        .scalar()
    ) or 0
    return sent, failed


@router.post("/send", response_model=EmailSendResponse)
def send_to_user(payload: AdminEmailRequest, admin: User = Depends(can_send)):
    db = SessionLocal()
    try:
        target = db.query(User).filter(User.id == payload.userId).first()
        if not target:
            raise HTTPException(status_code=404, detail="User not found")
        if not accepts_email(target):
            raise HTTPException(
                status_code=403,
                detail={"message": "User has disabled newsletter/emails", "blocked": True},
            )

        campaign = _send_campaign(db, admin, [target], payload.subject, payload.content)
        sent, failed = _counts(db, campaign.id)
        logger.info(f"[email] send by={admin.id} to={target.id} sent={sent}")
        return {"success": sent > 0, "campaignId": campaign.id, "sent": sent, "failed": failed, "blocked": 0}
    finally:
        db.close()


@router.post("/send-bulk", response_model=EmailSendResponse)
def send_bulk(payload: AdminBulkEmailRequest, admin: User = Depends(can_send)):
    requested = list(dict.fromkeys(payload.userIds))

    db = SessionLocal()
    try:
        users = db.query(User).filter(User.id.in_(requested)).all()
        eligible = [u for u in users if accepts_email(u)]
        blocked = len(users) - len(eligible)

        if not eligible:
            return {"success": False, "campaignId": None, "sent": 0, "failed": 0, "blocked": blocked}

        campaign = _send_campaign(db, admin, eligible, payload.subject, payload.content)
        sent, failed = _counts(db, campaign.id)
        logger.info(f"[email] bulk by={admin.id} sent={sent} failed={failed} blocked={blocked}")
        return {"success": True, "campaignId": campaign.id, "sent": sent, "failed": failed, "blocked": blocked}
    finally:
        db.close()


# =====================================================================
# SECTION: CAMPAIGN HISTORY
# =====================================================================

@router.get("/campaigns")
def list_campaigns(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: User = Depends(can_send),
):
    db = SessionLocal()
    try:
        total = db.query(func.count(EmailCampaign.id)).scalar() or 0
        campaigns = (
            db.query(EmailCampaign)
            .order_by(EmailCampaign.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        out = []
        for c in campaigns:
            sent, failed = _counts(db, c.id)
            out.append({
                "id": c.id,
                "subject": c.subject,
                "sentById": c.sent_by_id,
                "recipientCount": c.recipient_count,
                "status": c.status,
                "createdAt": c.created_at,
                "sentCount": sent,
                "failedCount": failed,
            })
        return {"campaigns": out, "total": total, "limit": limit, "offset": offset}
    finally:
        db.close()


@router.get("/campaigns/{campaign_id}")
def get_campaign(campaign_id: str, admin: User = Depends(can_send)):
    db = SessionLocal()
    try:
        c = db.query(EmailCampaign).filter(EmailCampaign.id == campaign_id).first()
        if not c:
            raise HTTPException(status_code=404, detail="Campaign not found")
        recipients = (
            db.query(EmailCampaignRecipient)
            .filter(EmailCampaignRecipient.campaign_id == c.id)
            .all()
        )
        return {
            "id": c.id,
            "subject": c.subject,
            "content": c.content,
            "sentById": c.sent_by_id,
            "recipientCount": c.recipient_count,
            "status": c.status,
            "createdAt": c.created_at,
            "recipients": [
                {"userId": r.user_id, "email": r.email, "status": r.status, "error": r.error}
                for r in recipients
            ],
        }
    finally:
        db.close()


@router.get("/stats")
def email_stats(admin: User = Depends(can_send)):
    db = SessionLocal()
    try:
        customers = db.query(User).filter(User.role == Role.USER.value)
        total_customers = customers.count()
        subscribers = customers.filter(User.wants_newsletter.is_(True)).count()
        return {
            "totalCampaigns": db.query(func.count(EmailCampaign.id)).scalar() or 0,
            "totalRecipients": db.query(func.count(EmailCampaignRecipient.id)).scalar() or 0,
            "subscriberCount": subscribers,
            "unsubscribedCount": total_customers - subscribers,
        }
    finally:
        db.close()


@router.get("/check-eligibility/{user_id}")
def check_eligibility(user_id: str, admin: User = Depends(can_send)):
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        ok = accepts_email(user)
        return {
            "userId": user.id,
            "email": user.email,
            "canReceiveEmail": ok,
            "reason": None if ok else "User has disabled newsletter/emails",
        }
    finally:
        db.close()
