from conftest import auth


def test_public_page_only_when_published(client, admin_id):
    client.put(
        "/api/admin/cms/faq",
        json={"title": "FAQ", "content": {"items": [{"q": "Bags?", "a": "One"}]}, "status": "draft"},
        headers=auth(admin_id),
    )
    assert client.get("/api/cms/public/faq").status_code == 404

    client.put(
        "/api/admin/cms/faq",
        json={"title": "FAQ", "content": {"items": [{"q": "Bags?", "a": "One"}]}},
        headers=auth(admin_id),
    )
    res = client.get("/api/cms/public/faq")
    assert res.status_code == 200
    assert res.json()["content"] == {"items": [{"q": "Bags?", "a": "One"}]}


def test_public_page_missing(client):
    res = client.get("/api/cms/public/nope")
    assert res.status_code == 404
    assert res.json() == {"message": "Page not found"}


def test_upsert_records_editor(client, admin_id):
    res = client.put("/api/admin/cms/about_us", json={"title": "About"}, headers=auth(admin_id))
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "published"
    assert body["updatedBy"] == admin_id

    res = client.get("/api/admin/cms/about_us", headers=auth(admin_id))
    assert res.json()["title"] == "About"


def test_moderator_can_draft_but_not_publish(client, moderator_id):
    draft = client.put(
        "/api/admin/cms/faq",
        json={"title": "FAQ", "status": "draft"},
        headers=auth(moderator_id),
    )
    assert draft.status_code == 200

    published = client.put("/api/admin/cms/faq", json={"title": "FAQ"}, headers=auth(moderator_id))
    assert published.status_code == 403


def test_moderator_cannot_delete(client, admin_id, moderator_id):
    client.put("/api/admin/cms/faq", json={"title": "FAQ"}, headers=auth(admin_id))
    assert client.delete("/api/admin/cms/faq", headers=auth(moderator_id)).status_code == 403
    assert client.delete("/api/admin/cms/faq", headers=auth(admin_id)).json() == {"success": True}
    assert client.get("/api/admin/cms/faq", headers=auth(admin_id)).status_code == 404


def test_seed_defaults_skips_existing(client, admin_id):
    client.put("/api/admin/cms/faq", json={"title": "Custom FAQ"}, headers=auth(admin_id))

    res = client.post("/api/admin/cms/seed-defaults", headers=auth(admin_id))
    assert res.json() == {"ok": True, "created": 4}

    again = client.post("/api/admin/cms/seed-defaults", headers=auth(admin_id))
    assert again.json() == {"ok": True, "created": 0}

    pages = client.get("/api/admin/cms/pages", headers=auth(admin_id)).json()
    assert [p["slug"] for p in pages] == ["about_us", "contact", "faq", "privacy_policy", "visa_requirements"]
    assert client.get("/api/admin/cms/faq", headers=auth(admin_id)).json()["title"] == "Custom FAQ"


def test_invalid_status_rejected(client, admin_id):
    res = client.put("/api/admin/cms/faq", json={"title": "FAQ", "status": "archived"}, headers=auth(admin_id))
    assert res.status_code == 400
    assert res.json()["validationError"]["type"] == "form"
