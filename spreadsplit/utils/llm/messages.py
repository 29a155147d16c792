"""Chat message assembly for vision calls that reference images by URL."""

from __future__ import annotations

import textwrap
from typing import Any

from .models import ImageDetail, Messages


def _text(value: str) -> dict[str, Any]:
    return {"type": "text", "text": textwrap.dedent(value)}


def prepare_messages(
    system_prompt_text: str | None,
    user_message_text: str | None,
    user_message_image_url: str | list[str] | None = None,
    image_detail: ImageDetail | None = None,
) -> Messages:
    """Build a chat payload; images come before the instruction text in the user turn."""
    urls = [user_message_image_url] if isinstance(user_message_image_url, str) else user_message_image_url or []

    content: list[dict[str, Any]] = []
    for url in urls:
        image_url: dict[str, Any] = {"url": url}
        if image_detail is not None:
            image_url["detail"] = image_detail
        content.append({"type": "image_url", "image_url": image_url})
    if user_message_text:
        content.append(_text(user_message_text))

    messages: Messages = []
    if system_prompt_text:
        messages.append({"role": "system", "content": [_text(system_prompt_text)]})
    messages.append({"role": "user", "content": content})
    return messages
