"""routers/cms.py - Public CMS pages and their admin editor endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from auth import require_permission
from db import SessionLocal
from models import CmsPage, User
from permissions import role_has_permission
from schemas.cms import CmsPageOut, CmsPageUpsert

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/cms")
admin_router = APIRouter(prefix="/admin/cms")


DEFAULT_PAGES = [
    {"slug": "about_us", "title": "About Us", "content": {"sections": []}},
    {"slug": "faq", "title": "FAQ", "content": {"items": []}},
    {"slug": "privacy_policy", "title": "Privacy Policy", "content": {"blocks": []}},
    {"slug": "contact", "title": "Contact", "content": {"address": {}, "channels": []}},
    {"slug": "visa_requirements", "title": "Visa Requirements", "content": {"countries": []}},
]


def page_out(p: CmsPage) -> dict:
    return {
        "slug": p.slug,
        "title": p.title,
        "content": p.content,
        "status": p.status,
        "updatedBy": p.updated_by,
        "createdAt": p.created_at,
        "updatedAt": p.updated_at,
    }


@public_router.get("/public/{slug}")
def public_page(slug: str):
    db = SessionLocal()
    try:
        page = db.query(CmsPage).filter(CmsPage.slug == slug, CmsPage.status == "published").first()
        if not page:
            raise HTTPException(status_code=404, detail="Page not found")
        return {"slug": page.slug, "title": page.title, "content": page.content, "updatedAt": page.updated_at}
    finally:
        db.close()


# =====================================================================
# SECTION: ADMIN
# =====================================================================

@admin_router.get("/pages")
def list_pages(user: User = Depends(require_permission("cms", "list"))):
    db = SessionLocal()
    try:
        pages = db.query(CmsPage).order_by(CmsPage.slug).all()
        return [
            {"id": p.id, "slug": p.slug, "title": p.title, "status": p.status, "updatedAt": p.updated_at}
            for p in pages
        ]
    finally:
        db.close()


# Declared before /{slug} routes so the literal path is not taken as a slug
@admin_router.post("/seed-defaults")
def seed_defaults(user: User = Depends(require_permission("cms", "create"))):
    db = SessionLocal()
    try:
        created = 0
        for d in DEFAULT_PAGES:
            exists = db.query(CmsPage.id).filter(CmsPage.slug == d["slug"]).first()
            if exists:
                continue
            db.add(CmsPage(slug=d["slug"], title=d["title"], content=d["content"], updated_by=user.id))
            created += 1
        db.commit()
        logger.info(f"[cms] seed-defaults by={user.id} created={created}")
        return {"ok": True, "created": created}
    finally:
        db.close()


@admin_router.get("/{slug}", response_model=CmsPageOut)
def get_page(slug: str, user: User = Depends(require_permission("cms", "view"))):
    db = SessionLocal()
    try:
        page = db.query(CmsPage).filter(CmsPage.slug == slug).first()
        if not page:
            raise HTTPException(status_code=404, detail="Not found")
        return page_out(page)
    finally:
        db.close()


@admin_router.put("/{slug}", response_model=CmsPageOut)
def upsert_page(
    slug: str,
    payload: CmsPageUpsert,
    user: User = Depends(require_permission("cms", "update")),
):
    if payload.status == "published" and not role_has_permission(user.role, "cms", "publish"):
        raise HTTPException(status_code=403, detail="Publishing requires cms:publish")

    db = SessionLocal()
    try:
        page = db.query(CmsPage).filter(CmsPage.slug == slug).first()
        if page is None:
            page = CmsPage(slug=slug)
            db.add(page)
        page.title = payload.title
        page.content = payload.content
        page.status = payload.status
        page.updated_by = user.id
        db.commit()
        db.refresh(page)
        logger.info(f"[cms] saved slug={slug} status={page.status} by={user.id}")
        return page_out(page)
    finally:
        db.close()


@admin_router.delete("/{slug}")
def delete_page(slug: str, user: User = Depends(require_permission("cms", "delete"))):
    db = SessionLocal()
    try:
        page = db.query(CmsPage).filter(CmsPage.slug == slug).first()
        if not page:
            raise HTTPException(status_code=404, detail="Not found")
        db.delete(page)
        db.commit()
        logger.info(f"[cms] deleted slug={slug} by={user.id}")
        return {"success": True}
    finally:
        db.close()
