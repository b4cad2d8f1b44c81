"""
Deep-Link Router.

Public, unauthenticated routes for every URL shape a share link or QR code
may carry. Legacy and indirect shapes redirect to the canonical
`/viewprofile/{userId}`; the canonical route serves the public profile.

Endpoints Provided:
- `/viewprofile/{user_id}`: The public view of a profile (empty state when the
  id is unknown).
- `/viewprofile/{user_id}/vcard`: The profile's contact card as `text/vcard`.
- `/public-profile/{user_id}`: Legacy shape, redirected permanently.
- `/qr?id=`: QR indirection, redirected to the profile or to `/` without an id.
- `/api/links/resolve`: Classify an arbitrary link.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel

from services.link_resolver import LinkResolver
from services.profile_service import ProfileService
from services.vcard import build_vcard, vcard_filename
from .dependencies import (
    ClientContext,
    get_client_context,
    get_public_profile_service,
    get_resolver,
)

logger = logging.getLogger(__name__)

links_router = APIRouter(tags=["Deep Links"])


class ResolveRequest(BaseModel):
    url: Optional[str] = None


@links_router.get("/viewprofile/{user_id}")
async def view_profile(
    user_id: str,
    client: ClientContext = Depends(get_client_context),
    profile_svc: ProfileService = Depends(get_public_profile_service),
) -> Dict[str, Any]:
    return await profile_svc.get_public_profile(user_id, origin=client.origin)


@links_router.get("/viewprofile/{user_id}/vcard")
async def download_vcard(
    user_id: str,
    profile_svc: ProfileService = Depends(get_public_profile_service),
) -> Response:
    profile = await profile_svc.get_public_profile(user_id)
    return Response(
        content=build_vcard(profile),
        media_type="text/vcard",
        headers={"Content-Disposition": f'attachment; filename="{vcard_filename(profile)}"'},
    )


@links_router.get("/public-profile/{user_id}")
async def legacy_public_profile(user_id: str) -> RedirectResponse:
    return RedirectResponse(url=f"/viewprofile/{user_id}", status_code=301)


@links_router.get("/qr")
async def qr_redirect(id: Optional[str] = Query(None)) -> RedirectResponse:
    """QR codes may point here; forward to the profile or the landing page"""
    user_id = (id or "").strip()
    if not user_id:
        logger.debug("QR redirect without id, sending to landing page")
        return RedirectResponse(url="/", status_code=302)
    return RedirectResponse(url=f"/viewprofile/{user_id}", status_code=302)


@links_router.post("/api/links/resolve")
async def resolve_link(
    request: ResolveRequest,
    resolver: LinkResolver = Depends(get_resolver),
) -> Dict[str, Any]:
    resolution = resolver.resolve(request.url)
    return {
        "kind": resolution.kind,
        "user_id": resolution.user_id,
        "canonical_url": resolution.canonical_url,
        "rule": resolution.rule,
        "legacy": resolution.legacy,
        "raw": resolution.raw,
    }
