import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from food_coach.core.config import OPENAI_MAX_TOKENS, OPENAI_MODEL, OPENAI_TEMPERATURE
from food_coach.core.messages import MESSAGES
from food_coach.core.text import truncate_text
from food_coach.core.tool_contracts import ROUTING_SYSTEM_PROMPT, openai_tools
from food_coach.services.llm import LLMClient

logger = logging.getLogger("uvicorn.error")


@dataclass
class RoutingContext:
    goal: Optional[str] = None
    tone: Optional[str] = None
    report_time: Optional[str] = None
    focus: Optional[list[str]] = None


@dataclass
class RoutingResult:
    kind: Literal["tool", "reply"]
    tool_name: Optional[str] = None
    args: dict[str, Any] = field(default_factory=dict)
    text: Optional[str] = None

    @classmethod
    def tool(cls, name: str, args: dict[str, Any]) -> "RoutingResult":
        return cls(kind="tool", tool_name=name, args=args)

    @classmethod
    def reply(cls, text: str) -> "RoutingResult":
        return cls(kind="reply", text=text)


def build_context_summary(context: Optional[RoutingContext]) -> str:
    parts: list[str] = []
    if context is not None:
        if context.goal:
            parts.append(f"goal={context.goal}")
        if context.tone:
            parts.append(f"tone={context.tone}")
        if context.report_time:
            parts.append(f"reportTime={context.report_time}")
        if context.focus:
            parts.append(f"focus=[{','.join(context.focus)}]")
    if not parts:
        return "current_prefs: none set"
    return f"current_prefs: {', '.join(parts)}"


def _fallback(text: str) -> RoutingResult:
    return RoutingResult.tool("ask_coach", {"question": text})


class IntentRouter:
    def __init__(self, llm_client: LLMClient, model: str = OPENAI_MODEL):
        self.llm_client = llm_client
        self.model = model

    def route(self, text: str, context: Optional[RoutingContext] = None) -> RoutingResult:
        """Pick one tool (or a free-text reply) for a user message.

        Never raises: transport errors, unparsable tool arguments and empty
        responses all degrade to an ask_coach call carrying the original text.
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": ROUTING_SYSTEM_PROMPT},
                {"role": "assistant", "content": build_context_summary(context)},
                {"role": "user", "content": text},
            ],
            "tools": openai_tools(),
            "tool_choice": "auto",
            "temperature": OPENAI_TEMPERATURE,
            "max_tokens": OPENAI_MAX_TOKENS,
        }
        try:
            message = self.llm_client.chat_completion(payload)
            if not message:
                raise ValueError("No response message from routing model")

            tool_calls = message.get("tool_calls") or []
            if tool_calls:
                if len(tool_calls) > 1:
                    logger.warning("routing_multiple_tool_calls count=%s", len(tool_calls))
                function = tool_calls[0].get("function") or {}
                name = function.get("name")
                args = json.loads(function.get("arguments") or "{}")
                if not name or not isinstance(args, dict):
                    raise ValueError("Malformed tool call in routing response")
                logger.info("intent_routed tool=%s", name)
                return RoutingResult.tool(name, args)

            content = (message.get("content") or "").strip()
            return RoutingResult.reply(content or MESSAGES["default_reply"])
        except Exception:
            logger.exception("intent_routing_failed text=%s", truncate_text(text))
            return _fallback(text)
