from dataclasses import dataclass, field
from typing import Dict, List

from fastapi import Request
from starlette.datastructures import UploadFile

from app.models.registrations import FILE_FIELDS, FORM_FIELDS, missing_required
from app.wrapper.registration_client import FilePart

DEFAULT_IMAGE_TYPE = "application/octet-stream"


@dataclass
class SubmittedForm:
    """Scalar values and newly selected files from a registration or edit form."""
    values: Dict[str, str]
    files: Dict[str, UploadFile] = field(default_factory=dict)

    @property
    def profile_changed(self) -> bool:
        return "profile_pics" in self.files

    @property
    def logo_changed(self) -> bool:
        return "company_logo" in self.files

    def missing(self) -> List[str]:
        return missing_required(self.values)

    def file_parts(self) -> List[FilePart]:
        return [
            (name, (upload.filename, upload.file, upload.content_type or DEFAULT_IMAGE_TYPE))
            for name, upload in self.files.items()
        ]

    def create_payload(self) -> Dict[str, str]:
        """Every scalar field, blanks included."""
        return {name: self.values.get(name, "") for name in FORM_FIELDS}

    def update_payload(self) -> Dict[str, str]:
        """Only fields with a value; blanks are left to the server's stored value."""
        return {name: value for name, value in self.create_payload().items() if value != ""}


async def read_submitted_form(request: Request) -> SubmittedForm:
    """Dependency that parses a multipart registration form."""
    form = await request.form()
    values = {name: str(form.get(name) or "") for name in FORM_FIELDS}

    files = {}
    for name in FILE_FIELDS:
        upload = form.get(name)
        # browsers send an empty part when no file is chosen
        if isinstance(upload, UploadFile) and upload.filename:
            files[name] = upload
    return SubmittedForm(values=values, files=files)
