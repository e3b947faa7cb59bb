# chatbot_agent/agent.py

import json
import logging
from typing import Any, Mapping, Sequence

from ..common.errors import ProviderError
from ..semantic_db.models import Match

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = (
    "I'm sorry, but I couldn't find any exact matches in our database for your query. "
    "Could you please provide more details or rephrase your request?"
)
FAILURE_MESSAGE = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again later or rephrase your query."
)

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant. Provide detailed information based on the matching items "
    "from the database, including distance information when available."
)

STYLE_INSTRUCTION = (
    "Please provide a good response based on the matching items from our database. "
    "Tell it in a human readable manner and not in the form of key:value pairs in the way it is "
    "stored by computers. Also leave out similarity because that's for computer to understand and "
    "not for humans to know. Tell detailed information about the highest similarity thing only. "
    "Include distance information when available and mention the distance in kilometers every time, "
    "not in longitudes/latitudes. Tell it short and sweet within {max_tokens} tokens."
)


class ResponseComposer:
    """Describes the top match in plain language with the LLM."""

    def __init__(self, llm, max_tokens: int = 150):
        self.llm = llm
        self.max_tokens = max_tokens

    def compose(self, prompt: str, attributes: Mapping[str, Any], matches: Sequence[Match]) -> str:
        if not matches:
            return NO_MATCH_MESSAGE

        top = matches[0]
        context = (
            f"Prompt: {prompt}\n"
            f"Attributes: {json.dumps(dict(attributes), default=str)}\n"
            f"Highest Similarity Item: {json.dumps(top.to_dict(), default=str)}"
        )

        try:
            message = self.llm.complete(
                SYSTEM_INSTRUCTION,
                [context, STYLE_INSTRUCTION.format(max_tokens=self.max_tokens)],
                max_tokens=self.max_tokens,
            )
        except ProviderError as e:
            logger.error(f"Error composing response: {e}")
            return FAILURE_MESSAGE

        if not message or not message.strip():
            logger.warning("Empty response from LLM, using fallback message")
            return FAILURE_MESSAGE
        return message.strip()
