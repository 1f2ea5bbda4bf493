import os
from urllib.parse import quote


def ascii_filename(filename: str) -> str:
    """Printable ASCII version of a filename, safe inside a quoted header value."""
    cleaned = "".join(c for c in filename if 32 <= ord(c) < 127 and c not in '"\\')
    stem, ext = os.path.splitext(cleaned)
    stem = stem.strip("_ ")
    if not any(c.isalnum() for c in stem):
        stem = "download"
    return f"{stem}{ext}"


def content_disposition(filename: str, inline: bool = False) -> str:
    """
    Content-Disposition value for a generated file.

    Names built from registrant fields can hold any character, while header
    values must stay latin-1. Non-ASCII names get an ASCII `filename` plus
    the RFC 5987 `filename*` form.
    """
    kind = "inline" if inline else "attachment"
    encoded = quote(filename, safe="")
    if encoded == filename:
        return f'{kind}; filename="{filename}"'
    return f"{kind}; filename=\"{ascii_filename(filename)}\"; filename*=UTF-8''{encoded}"
