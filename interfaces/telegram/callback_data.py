from __future__ import annotations

import secrets
from typing import Dict, Optional, Tuple


def encode_join_prompt(prompt_id: str) -> str:
    """
    Encode a "join this group" button.

    Format: join:{prompt_id}

    Only an opaque id travels through Telegram; the group and its code stay
    in `PendingJoinPrompts`.
    """

    return f"join:{prompt_id}"


def parse_join_prompt(data: str) -> str:
    parts = data.split(":")
    if len(parts) != 2 or parts[0] != "join" or not parts[1]:
        raise ValueError(f"Invalid join prompt callback data: {data}")
    return parts[1]


class PendingJoinPrompts:
    """
    Join prompts waiting for a button press, keyed by prompt id.

    A prompt belongs to the user it was shown to; nobody else can claim it.
    """

    def __init__(self) -> None:
        self._prompts: Dict[str, Tuple[str, str, int]] = {}
        # value: (group_name, code, telegram_user_id)

    def add(self, group_name: str, code: str, telegram_user_id: int) -> str:
        prompt_id = secrets.token_hex(8)
        self._prompts[prompt_id] = (group_name, code, telegram_user_id)
        return prompt_id

    def is_known(self, prompt_id: str) -> bool:
        return prompt_id in self._prompts

    def claim(self, prompt_id: str, telegram_user_id: int) -> Optional[Tuple[str, str]]:
        """
        Return (group_name, code) and forget the prompt if `telegram_user_id`
        is the prompted user; otherwise return None and keep it.
        """

        pending = self._prompts.get(prompt_id)
        if pending is None or pending[2] != telegram_user_id:
            return None
        del self._prompts[prompt_id]
        return pending[0], pending[1]
