"""Hashtag suggestions for a finished video."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

# Only the start of the script is sent; it carries the topic well enough.
_SCRIPT_EXCERPT_CHARS = 500


def build_hashtag_prompt(topic: str, script_text: str) -> str:
    return (
        "Generate 15-20 relevant hashtags for a short-form video about: {topic}\n\n"
        "Script excerpt: {excerpt}\n\n"
        "Include a mix of:\n"
        "- Broad popular hashtags\n"
        "- Niche specific hashtags\n"
        "- Trending style hashtags\n\n"
        "Return as JSON array of strings, without the # symbol.\n"
        'Example: ["facts", "learnontiktok", "didyouknow"]\n'
        "Do NOT include the # symbol."
    ).format(topic=topic, excerpt=script_text[:_SCRIPT_EXCERPT_CHARS])


def parse_hashtags(text: str) -> list[str]:
    """Extract hashtags from a reply: strip '#', drop blanks and duplicates.

    Raises:
        ValueError: The reply holds no JSON array of strings.
    """
    match = _JSON_ARRAY_RE.search(text or "")
    if match is None:
        raise ValueError("No JSON array in hashtag reply")
    items = json.loads(match.group(0))
    if not isinstance(items, list):
        raise ValueError("Hashtag reply is not a list")

    tags: list[str] = []
    seen = set()
    for item in items:
        if not isinstance(item, str):
            continue
        tag = item.strip().lstrip("#").strip()
        key = tag.lower()
        if tag and key not in seen:
            seen.add(key)
            tags.append(tag)
    return tags


async def generate_hashtags(topic: str, script_text: str, llm) -> list[str]:
    """Ask the language model for hashtags; any failure yields an empty list.

    Args:
        topic: Project topic or title.
        script_text: Full narration text.
        llm: Object with ``async complete(prompt, max_tokens)``, or None.
    """
    if llm is None:
        return []
    try:
        reply = await llm.complete(build_hashtag_prompt(topic, script_text), max_tokens=300)
        return parse_hashtags(reply)
    except Exception:
        logger.exception("Hashtag generation failed")
        return []
