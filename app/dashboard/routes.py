from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.core.auth import remove_token
from app.core.config import TEMPLATES_DIR, logger
from app.dashboard.forms import SubmittedForm, read_submitted_form
from app.models.registrations import BLOOD_GROUPS, blank_form
from app.wrapper.registration_client import RegistrationAPIError, RegistrationClient, get_client

router = APIRouter()
templates = Jinja2Templates(directory=TEMPLATES_DIR)

SUCCESS_MESSAGE = "Registration submitted successfully."


def _render_form(request: Request, values: dict, message: str = None, error: bool = False, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "register.html",
        {
            "form": values,
            "blood_groups": BLOOD_GROUPS,
            "message": message,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
def registration_page(request: Request):
    return _render_form(request, blank_form())


@router.post("/", response_class=HTMLResponse)
def submit_registration(
    request: Request,
    submitted: SubmittedForm = Depends(read_submitted_form),
    client: RegistrationClient = Depends(get_client),
):
    """
    Creates a registration from the public form.
    Success clears the form; any failure keeps what was typed so it can be corrected.
    """
    missing = submitted.missing()
    if missing:
        labels = ", ".join(name.replace("_", " ").title() for name in missing)
        return _render_form(request, submitted.values, f"Error: {labels} required.", error=True, status_code=400)

    try:
        client.create_registration(submitted.create_payload(), submitted.file_parts())
    except RegistrationAPIError as e:
        logger.error(f"Registration submission failed: {e}")
        return _render_form(request, submitted.values, f"Error: {e.body or e}", error=True, status_code=e.http_status)

    return _render_form(request, blank_form(), SUCCESS_MESSAGE)


@router.get("/logout")
def logout():
    """Forgets the browser's API token."""
    response = RedirectResponse(url="/", status_code=303)
    remove_token(response)
    return response
