"""Map named template variables to the positional {{1}}..{{9}} slots of WhatsApp content templates."""
import posixpath
from urllib.parse import urlparse

from app.config import get_settings

WHATSAPP_VARIABLE_MAPPING = {
    "familyName": 1,
    "coupleNames": 2,
    "weddingDate": 3,
    "weddingTime": 4,
    "inviteImageName": 5,
    "magicLink": 6,
    "rsvpCutoffDate": 7,
    "referenceCode": 8,
    "location": 9,
}


def invite_image_name(image_url: str | None) -> str:
    """Slot 5: the file name for locally served images, the full URL on blob storage."""
    if not image_url:
        return ""
    if get_settings().uses_blob_storage:
        return image_url
    path = urlparse(image_url).path if "://" in image_url else image_url
    return posixpath.basename(path)


def map_whatsapp_variables(variables: dict[str, str | None], image_url: str | None = None) -> dict[str, str]:
    mapped = dict(variables)
    mapped["inviteImageName"] = invite_image_name(image_url)
    return {str(pos): mapped.get(name) or "" for name, pos in WHATSAPP_VARIABLE_MAPPING.items()}


def mapping_display() -> list[dict]:
    return [
        {"position": pos, "app_variable": name, "placeholder": "{{" + str(pos) + "}}"}
        for name, pos in WHATSAPP_VARIABLE_MAPPING.items()
    ]
