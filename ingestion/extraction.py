"""
Extração heurística de dados de lead a partir de texto livre (WhatsApp).

Não é NLP: regex + listas de palavras-chave. O resultado é consultivo
(confidence) e a implementação pode ser trocada registrando outro objeto
com o mesmo contrato em app.extensions["lead_extractor"].
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass
class ExtractionResult:
    fields: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0

    @property
    def name(self) -> Optional[str]:
        return self.fields.get("name")

    @property
    def has_scheduling_intent(self) -> bool:
        return bool(self.fields.get("scheduling_intent"))

    def as_dict(self) -> Dict[str, Any]:
        return {**self.fields, "confidence_score": self.confidence}


class LeadSignalExtractor(Protocol):
    def extract(self, text: str) -> ExtractionResult:
        ...


def _fold(s: str) -> str:
    """minúsculas sem acento, para comparação de palavras-chave"""
    nfkd = unicodedata.normalize("NFKD", s.lower())
    return "".join(ch for ch in nfkd if not unicodedata.combining(ch))


DISCIPLINES = ("natação", "musculação", "pilates", "yoga", "crossfit", "dança", "funcional")
AGE_GROUPS = ("infantil", "adolescente", "adulto", "idoso")
SCHEDULING_KEYWORDS = ("agendar", "visita", "conhecer", "quando posso", "horário")
HOT_KEYWORDS = ("urgente", "hoje", "agora")
COLD_KEYWORDS = ("talvez", "pensando", "futuramente")

_NAME_PATTERNS = (
    re.compile(r"meu nome (?:é|e)\s+([a-zà-ÿ\s]+)", re.IGNORECASE),
    re.compile(r"me chamo\s+([a-zà-ÿ\s]+)", re.IGNORECASE),
    re.compile(r"eu sou (?:o |a )?([a-zà-ÿ\s]+)", re.IGNORECASE),
)

# palavras que encerram o nome capturado ("Carla e quero agendar")
_NAME_STOPWORDS = {
    "e", "quero", "queria", "gostaria", "tenho", "sou", "estou", "aqui", "para",
    "pra", "preciso", "vou", "posso", "com", "mas", "minha", "meu", "do", "no", "na",
}
_NAME_PARTICLES = {"da", "de", "do", "dos", "das"}
_WORD = re.compile(r"^[A-Za-zÀ-ÿ]+$")


def _clean_name(raw: str) -> Optional[str]:
    words = []
    for w in raw.split():
        lw = w.lower()
        if lw in _NAME_STOPWORDS and not (words and lw in _NAME_PARTICLES):
            break
        words.append(lw if lw in _NAME_PARTICLES else w[:1].upper() + w[1:].lower())
        if len(words) == 4:
            break
    while words and words[-1] in _NAME_PARTICLES:
        words.pop()
    return " ".join(words) or None


def _first_capitalized_word(message: str) -> Optional[str]:
    for w in message.split():
        w = w.strip(".,;:!?")
        if len(w) > 2 and w[0].isupper() and _WORD.match(w):
            return w
    return None


def _find_keyword(folded: str, keywords) -> Optional[str]:
    for kw in keywords:
        if _fold(kw) in folded:
            return kw
    return None


class HeuristicExtractor:
    confidence_explicit_name = 0.8
    confidence_fallback_name = 0.4

    def extract(self, text: str) -> ExtractionResult:
        message = (text or "").strip()
        if not message:
            return ExtractionResult()

        folded = _fold(message)

        name = None
        explicit = False
        for pattern in _NAME_PATTERNS:
            m = pattern.search(message)
            if m:
                name = _clean_name(m.group(1))
                if name:
                    explicit = True
                    break
        if not name:
            name = _first_capitalized_word(message)

        interest = "morno"
        if _find_keyword(folded, HOT_KEYWORDS):
            interest = "quente"
        elif _find_keyword(folded, COLD_KEYWORDS):
            interest = "frio"

        fields = {
            "name": name,
            "discipline": _find_keyword(folded, DISCIPLINES),
            "age_group": _find_keyword(folded, AGE_GROUPS),
            "who_searched": "Própria pessoa",
            "interest_level": interest,
            "scheduling_intent": _find_keyword(folded, SCHEDULING_KEYWORDS) is not None,
        }

        if explicit:
            confidence = self.confidence_explicit_name
        elif name:
            confidence = self.confidence_fallback_name
        else:
            confidence = 0.0
        return ExtractionResult(fields=fields, confidence=confidence)
