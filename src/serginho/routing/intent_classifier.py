"""
Intent Classifier - Heuristic prompt analysis for initial tier selection
Uses pattern matching only; no model calls, no I/O.
"""

import re
from collections.abc import Iterable, Sequence
from typing import Protocol

from serginho.core.types import Exchange, IntentCategory, Tier


class Classifier(Protocol):
    """Strategy interface for mapping a prompt to an intent category."""

    def classify(self, prompt: str, history: Sequence[Exchange] = ()) -> IntentCategory:
        ...


# Intent -> initial tier. Anything unmapped goes to the most capable tier.
INTENT_TIERS: dict[IntentCategory, Tier] = {
    IntentCategory.CASUAL: Tier.FAST,
    IntentCategory.TECHNICAL: Tier.EXPERT,
    IntentCategory.DEEP: Tier.GENIUS,
}


def tier_for_intent(intent: IntentCategory) -> Tier:
    return INTENT_TIERS.get(intent, Tier.GENIUS)


class PatternIntentClassifier:
    """
    Heuristic intent classifier

    Ordered rules, first match wins:
    1. greeting / small talk / closing (Portuguese or English) -> casual
    2. any technical keyword -> technical
    3. everything else -> deep

    Ambiguous prompts land on ``deep``.
    """

    # Anchored at the start of the prompt
    CASUAL_PATTERNS = [
        r"^(oi|olá|ola|hey|hi|hello|e\s+a[ií])\b",
        r"^(tudo\s+bem|como\s+vai|how\s+are\s+you)\b",
        r"^(obrigad[oa]s?|valeu|thanks|thank\s+you)\b",
        r"^(tchau|bye|goodbye|até\s+mais|até\s+logo|até)\b",
    ]

    # Plain substrings, matched case-insensitively
    TECHNICAL_KEYWORDS = [
        "react", "node", "javascript", "typescript", "python", "api",
        "código", "function", "função", "class", "component",
        "debug", "error", "erro", "implement", "implementar",
        "criar", "desenvolver",
    ]

    def __init__(
        self,
        casual_patterns: Iterable[str] | None = None,
        technical_keywords: Iterable[str] | None = None,
    ) -> None:
        patterns = list(casual_patterns) if casual_patterns is not None else self.CASUAL_PATTERNS
        keywords = list(technical_keywords) if technical_keywords is not None else self.TECHNICAL_KEYWORDS
        self._casual_re = [re.compile(p, re.IGNORECASE) for p in patterns]
        self._keywords = tuple(k.lower() for k in keywords if k)

    def is_casual(self, prompt: str) -> bool:
        return any(p.search(prompt) for p in self._casual_re)

    def matched_keywords(self, prompt: str) -> list[str]:
        lowered = prompt.lower()
        return [k for k in self._keywords if k in lowered]

    def classify(self, prompt: str, history: Sequence[Exchange] = ()) -> IntentCategory:
        """Classify a prompt. History is accepted for interface parity and not used."""
        text = prompt.strip()
        if not text:
            return IntentCategory.DEEP

        if self.is_casual(text):
            return IntentCategory.CASUAL

        if self.matched_keywords(text):
            return IntentCategory.TECHNICAL

        return IntentCategory.DEEP
