"""
LocalRadar — AttributeExtractor
───────────────────────────────
Turns a free-text request ("red jacket near me") into a flat attribute map
({"type": "items", "color": "red"}) with an LLM, tolerating markdown fences,
leading commentary and trailing prose around the JSON object.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from ..common.errors import ProviderError
from ..semantic_db.models import AttributeMap, coerce_attribute_value

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are an AI trained to extract attributes from text. Extract relevant attributes as a valid "
    "JSON object with no additional text before or after. "
    'For example: {"color": "red", "size": "large"}. '
    "Useful attributes include color, size, type (one of job, item, event, shop, service when it "
    "applies), material, condition and distance (maximum search distance in kilometers). "
    "If an attribute is not present, omit it from the response."
)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_PAIR_RE = re.compile(
    r"""["']?(?P<key>[A-Za-z_][\w\- ]{0,40}?)["']?\s*[:=]\s*"""
    r"""(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^,;\n{}]+))"""
)


def clean_response(text: str) -> str:
    """Strip code fences and surrounding whitespace."""
    return _FENCE_RE.sub("", text or "").strip()


def _decode_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Locate and parse the JSON object in text: first the object that starts
    at the first '{' (trailing prose ignored), then the span from the first
    '{' to the last '}'.
    """
    start = text.find("{")
    if start == -1:
        return None

    try:
        obj, _ = json.JSONDecoder().raw_decode(text[start:])
        if isinstance(obj, dict):
            return obj
    except ValueError:
        pass

    end = text.rfind("}")
    if end > start:
        try:
            obj = json.loads(text[start:end + 1])
            if isinstance(obj, dict):
                return obj
        except ValueError:
            pass
    return None


def scan_pairs(text: str) -> Dict[str, str]:
    """Recover "key: value" pairs from text that is not valid JSON."""
    pairs: Dict[str, str] = {}
    for m in _PAIR_RE.finditer(text):
        key = m.group("key").strip().lower()
        value = next((g for g in (m.group("dq"), m.group("sq"), m.group("bare")) if g is not None), "")
        value = value.strip().strip("\"'").strip()
        if key and value and key not in pairs:
            pairs[key] = value
    return pairs


def to_attribute_map(data: Dict[str, Any]) -> AttributeMap:
    attributes: AttributeMap = {}
    for key, value in data.items():
        key = str(key).strip()
        value = coerce_attribute_value(value)
        if key and value is not None and value != "":
            attributes[key] = value
    return attributes


def parse_attributes(content: str, prompt: str) -> AttributeMap:
    """
    Parse an LLM reply into an attribute map. Falls back to a key: value
    scan, and finally to {"query": prompt} when nothing can be recovered.
    """
    cleaned = clean_response(content)

    data = _decode_object(cleaned)
    if data is not None:
        return to_attribute_map(data)

    logger.error(f"Error parsing JSON attributes, content: {cleaned[:200]!r}")
    body = cleaned
    if "{" in body:
        body = body[body.find("{") + 1:body.rfind("}")] if "}" in body else body[body.find("{") + 1:]
    pairs = to_attribute_map(scan_pairs(body))
    if pairs:
        logger.info(f"Recovered {len(pairs)} attributes from non-JSON reply")
        return pairs

    return {"query": prompt}


class AttributeExtractor:
    """
    Args:
        llm: client with complete(system_instruction, messages, max_tokens) -> str
        max_tokens: completion budget for the extraction call
    """

    def __init__(self, llm, max_tokens: int = 150):
        self.llm = llm
        self.max_tokens = max_tokens

    def extract(self, prompt: str) -> AttributeMap:
        """Never raises for provider failures or malformed output."""
        try:
            content = self.llm.complete(SYSTEM_INSTRUCTION, [prompt], max_tokens=self.max_tokens)
        except ProviderError as e:
            logger.error(f"Error extracting attributes: {e}")
            return {"query": prompt}

        attributes = parse_attributes(content, prompt)
        logger.info(f"Extracted attributes: {attributes}")
        return attributes
