from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from typing import List

from app.cards.qr import detail_page_url, qr_png
from app.cards.downloads import content_disposition
from app.cards.renderer import CardRenderError, render_card
from app.cards.vcard import VCARD_CONTENT_TYPE, build_vcard, vcard_filename
from app.models.registrations import Registration, RegistrationSummary
from app.wrapper.registration_client import RegistrationClient, get_client

router = APIRouter()


@router.get("/", response_model=List[RegistrationSummary])
def list_registrations(client: RegistrationClient = Depends(get_client)):
    """All registrations, reduced to the fields the admin list shows."""
    return [RegistrationSummary.model_validate(r.model_dump()) for r in client.list_registrations()]


@router.get("/{registration_id}", response_model=Registration)
def get_registration(registration_id: int, client: RegistrationClient = Depends(get_client)):
    return client.get_registration(registration_id)


@router.get("/{registration_id}/vcard")
def get_vcard(registration_id: int, client: RegistrationClient = Depends(get_client)):
    """
    The registration as a vCard file.
    Served inline so phones hand it straight to the contacts app.
    """
    user = client.get_registration(registration_id)
    return Response(
        content=build_vcard(user),
        media_type=VCARD_CONTENT_TYPE,
        headers={"Content-Disposition": content_disposition(vcard_filename(user), inline=True)},
    )


@router.get("/{registration_id}/card.png")
def get_card(registration_id: int, share: bool = False, client: RegistrationClient = Depends(get_client)):
    """Business card PNG, always rendered at 2x."""
    user = client.get_registration(registration_id)
    try:
        card = render_card(client, user, share=share)
    except CardRenderError as e:
        raise HTTPException(status_code=502, detail={"error": "Card Render Error", "message": str(e)})
    return Response(content=card.content, media_type=card.media_type, headers=card.headers())


@router.get("/{registration_id}/qr.png")
def get_qr(registration_id: int, request: Request, client: RegistrationClient = Depends(get_client)):
    """QR code linking to the registration's detail page."""
    user = client.get_registration(registration_id)
    return Response(content=qr_png(detail_page_url(user.id, str(request.base_url))), media_type="image/png")
