from __future__ import annotations

import logging
from typing import Any, Optional

from domain.repositories import ContentModerator


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

PROMPT_TEMPLATE = (
    'Is the group name "{name} {secret}" appropriate? '
    'Return "yes" if it is appropriate, otherwise return "no". '
    "Do not include any additional text or explanations."
)


def _extract_text(resp: Any) -> str:
    text = getattr(resp, "text", None)
    if isinstance(text, str):
        return text
    try:
        parts = resp.candidates[0].content.parts
    except (AttributeError, IndexError, TypeError):
        return ""
    return "".join(
        p.text for p in parts if isinstance(getattr(p, "text", None), str)
    )


def parse_verdict(text: str) -> bool:
    """Only an exact "yes" counts as approval; anything else rejects."""

    return (text or "").strip().lower() == "yes"


class GeminiModerator(ContentModerator):
    """
    Screens group names and secrets with a Gemini model.

    Fails closed: a missing API key, an API error or an unclear answer all
    mean the content is rejected.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = DEFAULT_MODEL,
        model: Any = None,
    ) -> None:
        self._model = model
        if self._model is None and api_key:
            import google.generativeai as genai

            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(model_name)

    def is_appropriate(self, name: str, secret: str) -> bool:
        if self._model is None:
            logger.warning("No moderation model configured; rejecting group content.")
            return False

        try:
            resp = self._model.generate_content(
                PROMPT_TEMPLATE.format(name=name, secret=secret)
            )
            return parse_verdict(_extract_text(resp))
        except Exception as exc:
            logger.warning("Gemini moderation failed: %s", exc, exc_info=True)
            return False
