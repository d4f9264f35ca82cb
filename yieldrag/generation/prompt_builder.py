"""
Prompt Builder - System Prompt Assembly
=======================================

Wraps the retrieved context into the assistant's system prompt.

The builder only produces the prompt. Model selection, conversation
storage and the completion call belong to the caller.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config.settings import settings
from yieldrag.pipeline.query import ContextAssembler


@dataclass
class PromptResult:
    """Messages to send plus the system prompt grounding them."""
    messages: List[Dict[str, str]]
    system_prompt: str
    context: str = ""
    query: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "messages": self.messages,
            "system_prompt": self.system_prompt,
        }


SYSTEM_PROMPT_TEMPLATE = """You are the **{chain} Yield Insight Agent**, an assistant specialized in yield opportunities on the {chain} blockchain.

## CONTEXT
Base every answer **only** on the data below.

{context}

## INSTRUCTIONS
1. Use only the data in the context above.
2. Compare options by APY, TVL, impermanent loss risk and exposure.
3. Use bullet points and **bold** for key metrics. Do not use tables.
4. If asked about protocols or chains not in the context, reply:
   "I currently only provide insights for {chain}-based protocols."
5. If asked about history beyond the context, reply:
   "Historical data beyond the current context is not available."
6. Interpret the numbers: point out what is notable, rising or risky, and
   suggest at least one next step.
7. When several pools qualify, rank them by yield and risk and tag each as
   Conservative, Balanced or Aggressive.

## FORMAT
- Organize answers with ## and ### headings
- Keep answers concise and easy to scan
- For complex answers, close with a "Key Takeaways" section of 2-3 bullets

Never speculate beyond the available data.
"""


class PromptBuilder:
    """
    Builds system prompts grounded in retrieved context.
    """

    def __init__(
        self,
        assembler: ContextAssembler,
        chain_name: Optional[str] = None,
        template: str = SYSTEM_PROMPT_TEMPLATE
    ):
        self.assembler = assembler
        self.chain_name = chain_name or settings.synthesis.chain_display_name
        self.template = template

    def build_prompt(self, messages: List[Dict[str, str]]) -> PromptResult:
        """
        Build a prompt for a conversation.

        The last user message is the retrieval query.

        Args:
            messages: Conversation as [{"role": ..., "content": ...}]

        Returns:
            PromptResult with the unchanged messages and the system prompt
        """
        query = self._last_user_message(messages)
        context = self.assembler.query(query)

        return PromptResult(
            messages=messages,
            system_prompt=self.build_system_prompt(context),
            context=context,
            query=query
        )

    def build_system_prompt(self, context: str) -> str:
        return self.template.format(chain=self.chain_name, context=context)

    @staticmethod
    def _last_user_message(messages: List[Dict[str, str]]) -> str:
        for message in reversed(messages):
            if message.get("role") == "user":
                return message.get("content") or ""
        return ""
