import pytest

import mailer
from conftest import auth
from mailer import EmailResult
from models import EmailCampaign, EmailCampaignRecipient
from routers import email as email_router


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to, subject, html, reply_to=None):
        sent.append({"to": to, "subject": subject, "html": html, "reply_to": reply_to})
        if to.startswith("bounce"):
            return EmailResult(False, "mailbox unavailable")
        return EmailResult(True)

    monkeypatch.setattr(mailer, "send_email", fake_send)
    return sent


CONTACT = {
    "fullName": "Grace <script>",
    "email": "grace@example.com",
    "companyName": "Navy",
    "message": "Hello\nthere",
}


def test_contact_forwards_escaped_html(client, outbox):
    res = client.post("/api/contact", json=CONTACT)

    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Message sent successfully"}
    assert len(outbox) == 1
    mail = outbox[0]
    assert mail["reply_to"] == "grace@example.com"
    assert mail["subject"] == "New Contact Form Submission from Grace <script>"
    assert "Grace &lt;script&gt;" in mail["html"]
    assert "<strong>Phone:</strong> N/A" in mail["html"]


def test_contact_failure_is_bad_gateway(client, monkeypatch):
    monkeypatch.setattr(mailer, "send_email", lambda *a, **kw: EmailResult(False, "boom"))
    res = client.post("/api/contact", json=CONTACT)
    assert res.status_code == 502
    assert res.json() == {"message": "Failed to send message"}


def test_contact_validation(client, outbox):
    res = client.post("/api/contact", json={**CONTACT, "email": "not-an-email"})
    assert res.status_code == 400
    assert res.json()["validationError"]["path"] == "email"
    assert outbox == []


def test_send_unconfigured_smtp_reports_failure(monkeypatch):
    monkeypatch.setattr(mailer, "SMTP_USERNAME", None)
    result = mailer.send_email("a@example.com", "Hi", "<p>Hi</p>")
    assert result.success is False
    assert "not fully configured" in result.error


def test_contact_recipient_fallbacks(monkeypatch):
    monkeypatch.setattr(mailer, "CONTACT_EMAIL", "")
    monkeypatch.setattr(mailer, "SMTP_USERNAME", "apikey")
    monkeypatch.setattr(mailer, "SMTP_FROM", "Flights <hello@example.com>")
    assert mailer.contact_recipient() == "hello@example.com"

    monkeypatch.setattr(mailer, "SMTP_FROM", "")
    assert mailer.contact_recipient() == "noreply@localhost"

    monkeypatch.setattr(mailer, "CONTACT_EMAIL", "support@example.com")
    assert mailer.contact_recipient() == "support@example.com"


# =====================================================================
# SECTION: ADMIN EMAIL
# =====================================================================

def test_admin_send_records_campaign(client, db, admin_id, customer_id, outbox):
    res = client.post(
        "/api/admin/email/send",
        json={"userId": customer_id, "subject": "Deals", "content": "<p>Cheap</p>"},
        headers=auth(admin_id),
    )

    body = res.json()
    assert body["success"] is True
    assert (body["sent"], body["failed"], body["blocked"]) == (1, 0, 0)
    assert db.query(EmailCampaignRecipient).filter_by(campaign_id=body["campaignId"]).one().status == "sent"

    detail = client.get(f"/api/admin/email/campaigns/{body['campaignId']}", headers=auth(admin_id)).json()
    assert detail["subject"] == "Deals"
    assert detail["status"] == "sent"
    assert detail["recipients"][0]["userId"] == customer_id


def test_admin_send_respects_newsletter_opt_out(client, admin_id, make_user, outbox):
    quiet = make_user("user", wants_newsletter=False)
    res = client.post(
        "/api/admin/email/send",
        json={"userId": quiet, "subject": "Deals", "content": "x"},
        headers=auth(admin_id),
    )
    assert res.status_code == 403
    assert res.json()["blocked"] is True
    assert outbox == []


def test_bulk_send_tracks_failures(client, admin_id, make_user, outbox):
    ok = make_user("user")
    bounce = make_user("user", email="bounce@example.com")
    quiet = make_user("user", wants_newsletter=False)

    res = client.post(
        "/api/admin/email/send-bulk",
        json={"userIds": [ok, bounce, quiet], "subject": "News", "content": "x"},
        headers=auth(admin_id),
    )

    body = res.json()
    assert (body["success"], body["sent"], body["failed"], body["blocked"]) == (True, 1, 1, 1)

    campaigns = client.get("/api/admin/email/campaigns", headers=auth(admin_id)).json()
    assert campaigns["total"] == 1
    assert campaigns["campaigns"][0]["failedCount"] == 1
    assert campaigns["campaigns"][0]["status"] == "partial"


def test_bulk_send_with_nobody_eligible(client, admin_id, make_user, outbox):
    quiet = make_user("user", wants_newsletter=False)
    res = client.post(
        "/api/admin/email/send-bulk",
        json={"userIds": [quiet], "subject": "News", "content": "x"},
        headers=auth(admin_id),
    )
    assert res.json() == {"success": False, "campaignId": None, "sent": 0, "failed": 0, "blocked": 1}


def test_stats_and_eligibility(client, admin_id, make_user, outbox):
    make_user("user")
    quiet = make_user("user", wants_newsletter=False)

    stats = client.get("/api/admin/email/stats", headers=auth(admin_id)).json()
    assert stats["subscriberCount"] == 1
    assert stats["unsubscribedCount"] == 1

    check = client.get(f"/api/admin/email/check-eligibility/{quiet}", headers=auth(admin_id)).json()
    assert check["canReceiveEmail"] is False


def test_email_requires_permission(client, moderator_id, customer_id):
    res = client.post(
        "/api/admin/email/send",
        json={"userId": customer_id, "subject": "x", "content": "x"},
        headers=auth(moderator_id),
    )
    assert res.status_code == 403


def test_campaign_marked_failed_when_every_delivery_fails(client, db, admin_id, make_user, outbox):
    bounce = make_user("user", email="bounce@example.com")

    res = client.post(
        "/api/admin/email/send",
        json={"userId": bounce, "subject": "Deals", "content": "x"},
        headers=auth(admin_id),
    )

    body = res.json()
    assert (body["success"], body["sent"], body["failed"]) == (False, 0, 1)
    assert db.query(EmailCampaign).filter_by(id=body["campaignId"]).one().status == "failed"


@pytest.mark.parametrize(
    "outcomes,status",
    [([True, True], "sent"), ([True, False], "partial"), ([False], "failed"), ([], "failed")],
)
def test_campaign_status(outcomes, status):
    assert email_router.campaign_status(outcomes) == status
