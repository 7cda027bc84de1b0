# ingest/answer_parser.py
import json
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

# Tried in order when the answer is not bare JSON
JSON_PATTERNS = [
    re.compile(r"```json\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE),
    re.compile(r"```\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE),
    re.compile(r"(\{[\s\S]*\})"),
]

RAW_TEXT_KEY = "原始识别结果"


def fallback_extraction(answer: str) -> Dict[str, Any]:
    """Minimal extraction that keeps the raw answer for manual review"""
    return {
        RAW_TEXT_KEY: answer,
        "姓名": "",
        "性别": "",
        "年龄": "",
    }


def parse_answer(answer: str) -> Dict[str, Any]:
    """
    Parse the recognition model's answer text into a JSON object
    Accepts bare JSON, fenced ```json blocks, or JSON embedded in prose
    """
    try:
        data = json.loads(answer)
        if isinstance(data, dict):
            return data
        logger.warning(f"Answer is JSON but not an object ({type(data).__name__})")
    except json.JSONDecodeError as e:
        logger.info(f"Answer is not bare JSON, looking for an embedded object: {e}")

    for pattern in JSON_PATTERNS:
        match = pattern.search(answer)
        if not match:
            continue
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            logger.info(f"Embedded JSON did not parse ({pattern.pattern}): {e}")
            continue
        if isinstance(data, dict):
            logger.info("Extracted JSON object from answer text")
            return data

    logger.warning("Could not find a JSON object in the answer, keeping raw text")
    return fallback_extraction(answer)
