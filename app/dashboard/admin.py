from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from app.cards.images import resolve_image_url
from app.cards.qr import QRCodeTooLarge, detail_page_url, qr_data_uri
from app.cards.renderer import CardRenderError, render_card
from app.cards.vcard import build_vcard
from app.core.config import API_BASE_URL, ENABLE_BULK_UPLOAD, ENABLE_OTP_GATE, logger
from app.core.otp import OtpGate, get_otp_gate
from app.dashboard.forms import SubmittedForm, read_submitted_form
from app.dashboard.routes import templates
from app.models.registrations import BLOOD_GROUPS, GalleryEntry, RegistrationSummary
from app.wrapper.registration_client import RegistrationAPIError, RegistrationClient, get_client

router = APIRouter()

MISSING_ID = "User ID not provided."
CARD_ERROR = "Could not generate image card."


def _message_page(request: Request, message: str, status_code: int, back: str = "/admin-dashboard/"):
    """Replaces a view's content with a single message."""
    return templates.TemplateResponse(
        request,
        "admin/message.html",
        {"message": message, "back": back},
        status_code=status_code,
    )


def drop_registration(summaries: List[RegistrationSummary], registration_id: Optional[int]) -> List[RegistrationSummary]:
    """Removes exactly one id from the rendered set."""
    if registration_id is None:
        return summaries
    return [s for s in summaries if s.id != registration_id]


@router.get("/", response_class=HTMLResponse)
def registration_list(
    request: Request,
    deleted: Optional[int] = None,
    uploaded: Optional[int] = None,
    alert: Optional[str] = None,
    client: RegistrationClient = Depends(get_client),
):
    try:
        records = client.list_registrations()
    except RegistrationAPIError as e:
        return _message_page(request, f"Error fetching users: {e}", e.http_status, back="/")

    summaries = [RegistrationSummary.model_validate(r.model_dump()) for r in records]
    summaries = drop_registration(summaries, deleted)

    if deleted is not None:
        alert = "User deleted successfully!"
    elif uploaded is not None:
        alert = f"Bulk upload complete: {uploaded} registrations created."

    return templates.TemplateResponse(
        request,
        "admin/list.html",
        {
            "users": summaries,
            "alert": alert,
            "bulk_upload_enabled": ENABLE_BULK_UPLOAD,
        },
    )


@router.post("/{registration_id}/delete")
def delete_registration(registration_id: int, client: RegistrationClient = Depends(get_client)):
    """Deletes one registration; the list only drops it once the API confirms."""
    try:
        client.delete_registration(registration_id)
    except RegistrationAPIError as e:
        logger.error(f"Delete failed for registration {registration_id}: {e}")
        return RedirectResponse(
            url=request_url("/admin-dashboard/", alert=f"Failed to delete user: {e}"),
            status_code=303,
        )
    return RedirectResponse(url=request_url("/admin-dashboard/", deleted=registration_id), status_code=303)


@router.post("/bulk-upload")
def bulk_upload(file: UploadFile = File(...), client: RegistrationClient = Depends(get_client)):
    """Posts a spreadsheet to the API's importer, then goes back to a fresh list."""
    if not ENABLE_BULK_UPLOAD:
        raise HTTPException(status_code=404, detail="Bulk upload is disabled.")
    if not file.filename:
        return RedirectResponse(url=request_url("/admin-dashboard/", alert="Choose a spreadsheet to upload."), status_code=303)

    try:
        result = client.bulk_upload(
            file.filename,
            file.file,
            file.content_type or "application/octet-stream",
        )
    except RegistrationAPIError as e:
        logger.error(f"Bulk upload of {file.filename} failed: {e}")
        return RedirectResponse(url=request_url("/admin-dashboard/", alert=f"Bulk upload failed: {e}"), status_code=303)
    return RedirectResponse(url=request_url("/admin-dashboard/", uploaded=len(result.created)), status_code=303)


@router.get("/details", response_class=HTMLResponse)
def registration_details(
    request: Request,
    registration_id: Optional[int] = Query(None, alias="id"),
    card_error: bool = False,
    client: RegistrationClient = Depends(get_client),
):
    if registration_id is None:
        return _message_page(request, MISSING_ID, 400)

    try:
        user = client.get_registration(registration_id)
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)

    try:
        vcard_qr = qr_data_uri(build_vcard(user))
    except QRCodeTooLarge:
        vcard_qr = None

    return templates.TemplateResponse(
        request,
        "admin/details.html",
        {
            "user": user,
            "profile_pic_url": resolve_image_url(user.profile_pics, API_BASE_URL),
            "company_logo_url": resolve_image_url(user.company_logo, API_BASE_URL),
            "vcard_qr": vcard_qr,
            "otp_enabled": ENABLE_OTP_GATE,
            "error": CARD_ERROR if card_error else None,
        },
    )


@router.get("/details/card")
def registration_card(
    registration_id: Optional[int] = Query(None, alias="id"),
    share: bool = False,
    client: RegistrationClient = Depends(get_client),
):
    """Card PNG for the detail page's Download and Share buttons."""
    if registration_id is None:
        raise HTTPException(status_code=400, detail=MISSING_ID)

    try:
        user = client.get_registration(registration_id)
        card = render_card(client, user, share=share)
    except (RegistrationAPIError, CardRenderError) as e:
        logger.error(f"Card export failed for registration {registration_id}: {e}")
        if share:
            raise HTTPException(status_code=502, detail=CARD_ERROR)
        return RedirectResponse(
            url=request_url("/admin-dashboard/details", id=registration_id, card_error=1),
            status_code=303,
        )
    return Response(content=card.content, media_type=card.media_type, headers=card.headers())


@router.get("/details/otp", response_class=HTMLResponse)
def otp_page(
    request: Request,
    registration_id: Optional[int] = Query(None, alias="id"),
    client: RegistrationClient = Depends(get_client),
):
    if not ENABLE_OTP_GATE:
        return RedirectResponse(url=request_url("/admin-dashboard/edit", id=registration_id), status_code=303)
    if registration_id is None:
        return _message_page(request, MISSING_ID, 400)

    try:
        user = client.get_registration(registration_id)
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)
    return templates.TemplateResponse(request, "admin/otp.html", {"user": user, "sent": False, "error": None})


@router.post("/details/otp/send", response_class=HTMLResponse)
def send_otp(
    request: Request,
    registration_id: int = Form(..., alias="id"),
    client: RegistrationClient = Depends(get_client),
    gate: OtpGate = Depends(get_otp_gate),
):
    try:
        user = client.get_registration(registration_id)
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)

    gate.send_code(user)
    return templates.TemplateResponse(request, "admin/otp.html", {"user": user, "sent": True, "error": None})


@router.post("/details/otp/verify", response_class=HTMLResponse)
def verify_otp(
    request: Request,
    registration_id: int = Form(..., alias="id"),
    code: str = Form(""),
    client: RegistrationClient = Depends(get_client),
    gate: OtpGate = Depends(get_otp_gate),
):
    try:
        user = client.get_registration(registration_id)
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)

    if gate.verify(user, code):
        return RedirectResponse(url=request_url("/admin-dashboard/edit", id=user.id), status_code=303)
    return templates.TemplateResponse(
        request,
        "admin/otp.html",
        {"user": user, "sent": True, "error": "Invalid OTP."},
        status_code=400,
    )


def _render_edit(request: Request, user, values: dict, error: str = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "admin/edit.html",
        {
            "user": user,
            "form": values,
            "blood_groups": BLOOD_GROUPS,
            "profile_preview": resolve_image_url(user.profile_pics, API_BASE_URL),
            "logo_preview": resolve_image_url(user.company_logo, API_BASE_URL),
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/edit", response_class=HTMLResponse)
def edit_page(
    request: Request,
    registration_id: Optional[int] = Query(None, alias="id"),
    client: RegistrationClient = Depends(get_client),
):
    if registration_id is None:
        return _message_page(request, MISSING_ID, 400)

    try:
        user = client.get_registration(registration_id)
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)
    return _render_edit(request, user, user.form_values())


@router.post("/edit", response_class=HTMLResponse)
def submit_edit(
    request: Request,
    registration_id: Optional[int] = Query(None, alias="id"),
    submitted: SubmittedForm = Depends(read_submitted_form),
    client: RegistrationClient = Depends(get_client),
):
    """
    Partial update. Image fields go out only when a new file was picked,
    so the server keeps the existing picture otherwise.
    """
    if registration_id is None:
        return _message_page(request, MISSING_ID, 400)

    logger.info(
        f"Editing registration {registration_id} "
        f"(profile picture changed: {submitted.profile_changed}, logo changed: {submitted.logo_changed})"
    )
    try:
        client.update_registration(registration_id, submitted.update_payload(), submitted.file_parts())
    except RegistrationAPIError as e:
        return _message_page(
            request,
            e.body or str(e),
            e.http_status,
            back=request_url("/admin-dashboard/edit", id=registration_id),
        )
    return RedirectResponse(url="/admin-dashboard/", status_code=303)


@router.get("/qr", response_class=HTMLResponse)
def qr_gallery(request: Request, client: RegistrationClient = Depends(get_client)):
    """One QR per registration, each opening that registration's detail page."""
    try:
        records = client.list_registrations()
    except RegistrationAPIError as e:
        return _message_page(request, str(e), e.http_status)

    cards = []
    for record in records:
        entry = GalleryEntry.model_validate(record.model_dump())
        link = detail_page_url(entry.id, str(request.base_url))
        cards.append({
            "user": entry,
            "profile_pic_url": resolve_image_url(entry.profile_pics, API_BASE_URL),
            "details_url": link,
            "qr": qr_data_uri(link, size=150),
        })
    return templates.TemplateResponse(request, "admin/qr.html", {"cards": cards})


def request_url(path: str, **params) -> str:
    """Builds a local URL with query parameters, skipping unset ones."""
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{path}?{query}" if query else path
