from __future__ import annotations

import json
from typing import Any, Iterable


def serialize_images(urls: Iterable[str]) -> str | None:
    """Encode additional image URLs for the ``images_text`` column (None when empty)."""
    cleaned = [u for u in urls if u]
    if not cleaned:
        return None
    return json.dumps(cleaned, ensure_ascii=False)


def parse_images(images_text: str | None) -> list[str]:
    if not images_text:
        return []
    try:
        parsed: Any = json.loads(images_text)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    return [u for u in parsed if isinstance(u, str) and u]


def get_all_images(listing: Any) -> list[str]:
    """Main image first, then the additional images, skipping blank entries."""
    images: list[str] = []
    main_image = getattr(listing, "main_image", None)
    if main_image and main_image.strip():
        images.append(main_image)
    images.extend(u for u in parse_images(getattr(listing, "images_text", None)) if u.strip())
    return images
