"""Keyword/regex classifier for free-text symptom input.

This is a heuristic screen, not a model: the phrase and pattern lists live in
``rules/input_rules.yaml`` and are loaded once per process.
"""
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from healthcare_pro.config import RULES_DIR
from healthcare_pro.utils.exceptions import EmergencyDetected, ValidationError

logger = logging.getLogger("healthcare_pro")

RULES_PATH = RULES_DIR / "input_rules.yaml"

ACCEPTABLE = "acceptable"
EMERGENCY = "emergency"
INAPPROPRIATE = "inappropriate"
UNRELATED = "unrelated"
INVALID = "invalid"


@dataclass(frozen=True)
class Classification:
    acceptable: bool
    emergency_flag: bool
    message: Optional[str]
    category: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "acceptable": self.acceptable,
            "emergency_flag": self.emergency_flag,
            "message": self.message,
            "category": self.category,
        }


@dataclass(frozen=True)
class Rules:
    min_chars: int
    max_chars: int
    min_words: int
    emergency_phrases: List[str]
    emergency_message: str
    inappropriate: List[re.Pattern]
    inappropriate_message: str
    unrelated: List[re.Pattern]
    unrelated_message: str
    messages: Dict[str, str]


def load_rules(path: Path = RULES_PATH) -> Rules:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return Rules(
        min_chars=int(raw["length"]["min_chars"]),
        max_chars=int(raw["length"]["max_chars"]),
        min_words=int(raw["length"]["min_words"]),
        emergency_phrases=[p.lower() for p in raw["emergency"]["phrases"]],
        emergency_message=raw["emergency"]["message"],
        inappropriate=[re.compile(p, re.IGNORECASE) for p in raw["inappropriate"]["patterns"]],
        inappropriate_message=raw["inappropriate"]["message"],
        unrelated=[re.compile(p, re.IGNORECASE) for p in raw["unrelated"]["patterns"]],
        unrelated_message=raw["unrelated"]["message"],
        messages=dict(raw["messages"]),
    )


@lru_cache(maxsize=1)
def get_rules() -> Rules:
    return load_rules()


def _normalize(text: str) -> str:
    # Curly apostrophes from mobile keyboards would otherwise miss "can't breathe"
    return text.replace("’", "'").replace("‘", "'").lower().strip()


def classify(text: Any, rules: Optional[Rules] = None) -> Classification:
    rules = rules or get_rules()
    if not isinstance(text, str) or not text.strip():
        return Classification(False, False, rules.messages["invalid"], INVALID)

    lowered = _normalize(text)
    if len(lowered) < rules.min_chars:
        return Classification(False, False, rules.messages["too_short"], INVALID)
    if len(lowered) > rules.max_chars:
        return Classification(False, False, rules.messages["too_long"], INVALID)

    # Emergency wins over every other rule
    if any(phrase in lowered for phrase in rules.emergency_phrases):
        logger.warning({"function": "classify", "category": EMERGENCY})
        return Classification(True, True, rules.emergency_message, EMERGENCY)

    if any(p.search(lowered) for p in rules.inappropriate):
        return Classification(False, False, rules.inappropriate_message, INAPPROPRIATE)
    if any(p.search(lowered) for p in rules.unrelated):
        return Classification(False, False, rules.unrelated_message, UNRELATED)
    if len(lowered.split()) < rules.min_words:
        return Classification(False, False, rules.messages["too_few_words"], INVALID)

    return Classification(True, False, None, ACCEPTABLE)


def ensure_acceptable(text: Any, rules: Optional[Rules] = None) -> Classification:
    """Raise EmergencyDetected or ValidationError unless the text can go to the model."""
    verdict = classify(text, rules)
    if verdict.emergency_flag:
        raise EmergencyDetected(verdict.message, verdict.as_dict())
    if not verdict.acceptable:
        raise ValidationError(verdict.message, verdict.as_dict())
    return verdict
