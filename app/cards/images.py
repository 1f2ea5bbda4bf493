from typing import Optional

from app.core.config import API_BASE_URL
from app.models.registrations import normalize_image_ref


def resolve_image_url(path: Optional[str], base_url: str = API_BASE_URL) -> Optional[str]:
    """
    Turns a stored image reference into a fetchable URL.

    Returns None when there is no image. Absolute URLs come back unchanged;
    relative paths are joined to the API base with exactly one slash.
    """
    path = normalize_image_ref(path)
    if path is None:
        return None
    if path.startswith("http"):
        return path

    base = base_url[:-1] if base_url.endswith("/") else base_url
    clean_path = path if path.startswith("/") else f"/{path}"
    return f"{base}{clean_path}"
