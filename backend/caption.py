"""Short social-media caption for a repository visualization.

The prompt is built from the graph's metadata block only; the LLM reply is
treated as opaque text and trimmed to :data:`MAX_CAPTION_LENGTH` characters.
"""

from __future__ import annotations

import logging
from typing import Any

from backend.config import settings

logger = logging.getLogger(__name__)

MAX_CAPTION_LENGTH = 100
FALLBACK_CAPTION = "Code visualization complete! 🧠✨"


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _get_llm() -> Any:
    """Return a configured LangChain chat model based on ``settings``."""
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.openai_chat_model,
            temperature=settings.caption_temperature,
            max_tokens=MAX_CAPTION_LENGTH,
        )

    from langchain_ollama import ChatOllama

    return ChatOllama(
        model=settings.ollama_chat_model,
        base_url=settings.ollama_base_url,
        temperature=settings.caption_temperature,
        num_predict=MAX_CAPTION_LENGTH,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_prompt(metadata: dict[str, Any]) -> str:
    """Caption prompt for a graph ``metadata`` block (camelCase keys)."""
    repo = metadata.get("repoName") or "Unknown"
    return (
        "Generate a creative, engaging caption for a GitHub repository visualization.\n\n"
        f"Repository: {repo}\n"
        f"Language: {metadata.get('language') or 'Unknown'}\n"
        f"Stars: {metadata.get('stars') or 0}\n"
        f"Branches: {metadata.get('totalBranches') or 0}\n"
        f"Commits: {metadata.get('totalCommits') or 0}\n\n"
        "The visualization shows this repository as a neural network or code tree. "
        "Create a caption that:\n"
        f"- Is creative and engaging (max {MAX_CAPTION_LENGTH} characters)\n"
        "- Mentions the repository name\n"
        "- Uses relevant emojis\n"
        "- Could work well for social media sharing\n"
        '- Captures the essence of "code coming alive"\n\n'
        "Examples of good captions:\n"
        f'- "Watching {repo} come alive! 🧠⚡️"\n'
        f'- "Code neurons firing in {repo} 🧠✨"\n'
        f'- "The brain of {repo} visualized 🧠🌳"\n\n'
        "Generate ONE caption:"
    )


def _clean(text: str) -> str:
    text = text.strip().strip('"').strip()
    return text[:MAX_CAPTION_LENGTH].rstrip()


def generate_caption(metadata: dict[str, Any]) -> str:
    """Ask the configured LLM for a caption.

    Raises:
        RuntimeError: If the model call fails or returns nothing usable.
    """
    llm = _get_llm()
    try:
        response = llm.invoke(build_prompt(metadata))
    except Exception as exc:
        raise RuntimeError(f"Caption generation failed: {exc}") from exc
    raw = response.content if hasattr(response, "content") else str(response)
    caption = _clean(raw if isinstance(raw, str) else str(raw))
    if not caption:
        raise RuntimeError("Caption generation returned an empty reply")
    return caption


def caption_or_fallback(metadata: dict[str, Any]) -> tuple[str, bool]:
    """Return ``(caption, is_fallback)``; never raises for LLM failures."""
    try:
        return generate_caption(metadata), False
    except Exception as exc:  # noqa: BLE001
        logger.warning("caption fallback for %s: %s", metadata.get("repoName"), exc)
        return FALLBACK_CAPTION, True
