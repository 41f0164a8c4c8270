from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from openai import OpenAI

from app.application.exceptions import LLMContractError, LLMUpstreamError
from app.application.ports.dialogue_agent import DialogueAgentPort
from app.application.use_cases.booking_tools import BookingTools
from app.infrastructure.llm.prompts import build_system_prompt


class OpenAIBookingAgent(DialogueAgentPort):
    """
    OpenAI chat-completions agent that drives the booking tools.

    Contract guarantees:
    - reply returns the final assistant text after any tool calls
    - Raises:
        LLMUpstreamError: networking/provider failures
        LLMContractError: empty output, or tool calls beyond max_tool_rounds
    """

    def __init__(
        self,
        tools: BookingTools,
        api_key: str,
        model: str,
        temperature: float,
        business_name: str,
        price: int,
        currency: str,
        timezone: str,
        max_tool_rounds: int = 6,
        client: OpenAI | None = None,
    ) -> None:
        self.client = client or OpenAI(api_key=api_key)
        self._tools = tools
        self._model = model
        self._temperature = temperature
        self._business_name = business_name
        self._price = price
        self._currency = currency
        self._timezone = ZoneInfo(timezone)
        self._max_tool_rounds = max_tool_rounds
        self._logger = logging.getLogger(__name__)

    def reply(
        self,
        user_number: str,
        user_name: str,
        text: str,
        history: list[dict[str, Any]],
    ) -> str:
        system_prompt = build_system_prompt(
            mode=self._tools.mode,
            business_name=self._business_name,
            price=self._price,
            currency=self._currency,
            user_name=user_name,
            today=datetime.now(self._timezone).strftime("%A %Y-%m-%d"),
        )
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": text})

        for _ in range(self._max_tool_rounds + 1):
            message = self._complete(messages)
            tool_calls = message.tool_calls or []
            if not tool_calls:
                content = (message.content or "").strip()
                if not content:
                    raise LLMContractError("LLM returned empty response text.")
                return content

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.function.name, "arguments": call.function.arguments},
                        }
                        for call in tool_calls
                    ],
                }
            )
            for call in tool_calls:
                result = self._tools.execute(
                    call.function.name,
                    _parse_arguments(call.function.arguments),
                    user_number=user_number,
                )
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(result, ensure_ascii=False),
                    }
                )

        raise LLMContractError(f"Agent exceeded {self._max_tool_rounds} tool rounds without replying.")

    def _complete(self, messages: list[dict[str, Any]]) -> Any:
        try:
            resp = self.client.chat.completions.create(
                model=self._model,
                messages=messages,
                tools=self._tools.openai_tools(),
                temperature=self._temperature,
                max_tokens=800,
            )
        except Exception as e:
            raise LLMUpstreamError(f"OpenAI API error: {e}") from e

        if not resp.choices:
            raise LLMContractError("LLM returned no choices.")
        return resp.choices[0].message


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        snippet = raw[:200].replace("\n", " ")
        raise LLMContractError(f"Tool arguments are not valid JSON. Snippet: {snippet!r}")
    if not isinstance(data, dict):
        raise LLMContractError("Tool arguments must be a JSON object.")
    return data
