"""
vCard 3.0 text for a registration.

The same text is encoded in the QR code on the detail card and served
as the "Save Contact" file.
"""
from app.models.registrations import Registration

VCARD_CONTENT_TYPE = "text/vcard"


def escape_text(value: str) -> str:
    """Escapes a value for a vCard text property (RFC 6350 section 3.4)."""
    return (
        value.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def _line(prop: str, value: str) -> str:
    return f"{prop}:{value}" if value else ""


def build_vcard(record: Registration) -> str:
    """
    Renders a registration as a CRLF-joined vCard.

    BEGIN, VERSION, N, FN and END are always present. Every other line is
    left out when its field is blank.
    """
    first = escape_text(record.first_name.strip())
    last = escape_text(record.last_name.strip())
    address = escape_text(record.office_address.strip())

    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last};{first};;;",
        f"FN:{f'{first} {last}'.strip()}",
        _line("ORG", escape_text(record.company_name.strip())),
        _line("TITLE", escape_text(record.designation.strip())),
        _line("EMAIL;TYPE=WORK", record.email.strip()),
        _line("TEL;TYPE=CELL", record.phone_number.strip()),
        f"ADR;TYPE=WORK:;;{address};;;;" if address else "",
        _line("URL", record.company_website.strip()),
        _line("BDAY", record.birth_date.strip()),
        "END:VCARD",
    ]
    return "\r\n".join(line for line in lines if line)


def vcard_filename(record: Registration) -> str:
    return f"{record.first_name}_{record.last_name}.vcf"
