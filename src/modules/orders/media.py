"""Product image URL resolution for order line items.

Products carry either a ``media`` list (ids, absolute URLs or media
objects) or a legacy ``images`` list.  Only the first entry is used.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from django.conf import settings

PLACEHOLDER_IMAGE_URL = (
    "https://images.pexels.com/photos/1021693/pexels-photo-1021693.jpeg"
    "?auto=compress&cs=tinysrgb&w=600"
)

_ABSOLUTE_PREFIXES = ("http", "data:")


def _is_absolute(ref: str) -> bool:
    return ref.startswith(_ABSOLUTE_PREFIXES)


def _first(product: Mapping[str, Any], key: str) -> Any:
    refs = product.get(key) or []
    return refs[0] if refs else None


def resolve_product_image_url(
    product: Optional[Mapping[str, Any]], base_url: Optional[str] = None
) -> str:
    """Return a displayable URL for ``product``'s primary image.

    ``base_url`` defaults to ``settings.ORDERS_MEDIA_BASE_URL``.  Falls back
    to ``PLACEHOLDER_IMAGE_URL`` when the product has no usable reference.
    """
    if not product:
        return PLACEHOLDER_IMAGE_URL
    base = (base_url or settings.ORDERS_MEDIA_BASE_URL).rstrip("/")

    media = _first(product, "media")
    if isinstance(media, str) and media:
        return media if _is_absolute(media) else f"{base}/upload/media/{media}"
    if isinstance(media, Mapping):
        if media.get("dataUrl"):
            return media["dataUrl"]
        if media.get("_id"):
            return f"{base}/upload/media/{media['_id']}"

    image = _first(product, "images")
    if isinstance(image, str) and image:
        return image if _is_absolute(image) else f"{base}/upload/images/{image}"

    return PLACEHOLDER_IMAGE_URL
