from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class DialogueAgentPort(ABC):
    @abstractmethod
    def reply(
        self,
        user_number: str,
        user_name: str,
        text: str,
        history: list[dict[str, Any]],
    ) -> str:
        """
        Produce the assistant's reply to one inbound message.

        The agent may call booking tools while producing the reply. `history` holds the
        previous turns as {"role": "user"|"assistant", "content": str} dicts, oldest first,
        not including `text`.

        Raises:
            LLMUpstreamError: provider/network failures
            LLMContractError: malformed provider output
        """
        raise NotImplementedError
