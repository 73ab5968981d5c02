"""Helpers for reading unified requests and building OpenAI-shaped responses."""

import time
from typing import Any


def extract_prompt_and_images(messages: list[dict]) -> tuple[str, list[str]]:
    """Pull the prompt text and image URLs out of a message list.

    The last text seen wins as the prompt; image URLs are collected in order.
    Content may be a plain string or a list of ``text``/``image_url`` parts.
    """
    prompt = ""
    image_urls: list[str] = []
    for message in messages:
        content = message.get("content")
        if isinstance(content, str):
            prompt = content
        elif isinstance(content, list):
            for part in content:
                if part.get("type") == "text":
                    prompt = part.get("text") or ""
                elif part.get("type") == "image_url" and part.get("image_url"):
                    image_urls.append(part["image_url"]["url"])
    return prompt, image_urls


def has_image_part(messages: list[dict]) -> bool:
    for message in messages:
        content = message.get("content")
        if isinstance(content, list) and any(p.get("type") == "image_url" for p in content):
            return True
    return False


def last_user_text(messages: list[dict]) -> str:
    """Text of the most recent user message, or empty string."""
    for message in reversed(messages):
        if message.get("role") != "user":
            continue
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return " ".join(p.get("text", "") for p in content if p.get("type") == "text")
    return ""


def chat_completion(
    content: str,
    model: str,
    completion_id: str | None = None,
    finish_reason: str | None = "stop",
    usage: dict | None = None,
) -> dict:
    """Build a non-streaming ``chat.completion`` response dict."""
    created = int(time.time())
    response: dict[str, Any] = {
        "id": completion_id or f"chatcmpl-{created}",
        "object": "chat.completion",
        "created": created,
        "model": model,
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": finish_reason,
        }],
    }
    if usage is not None:
        response["usage"] = usage
    return response


def chat_completion_chunk(
    content: str,
    model: str,
    completion_id: str,
    finish_reason: str | None = None,
) -> dict:
    """Build one streaming ``chat.completion.chunk`` dict."""
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": model,
        "choices": [{
            "index": 0,
            "delta": {"content": content},
            "finish_reason": finish_reason,
        }],
    }
