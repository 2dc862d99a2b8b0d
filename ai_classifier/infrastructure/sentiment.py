from __future__ import annotations
import re
from ai_classifier.domain.models import SentimentSignal


POSITIVE_LEXICON: dict[str, float] = {
    "bom": 1.0,
    "otimo": 2.0,
    "ótimo": 2.0,
    "excelente": 2.0,
    "maravilhoso": 2.0,
    "feliz": 1.0,
    "satisfeito": 1.0,
    "agradecido": 1.0,
    "obrigado": 1.0,
    "gostei": 1.0,
    "amo": 2.0,
    "perfeito": 2.0,
    "funcionando": 1.0,
    "resolvido": 1.0,
    "ajuda": 1.0,
    "suporte": 1.0,
    "rapido": 1.0,
    "rápido": 1.0,
    "eficiente": 1.5,
}

NEGATIVE_LEXICON: dict[str, float] = {
    "ruim": 1.0,
    "pessimo": 2.0,
    "péssimo": 2.0,
    "terrivel": 2.0,
    "terrível": 2.0,
    "horrivel": 2.0,
    "horrível": 2.0,
    "triste": 1.0,
    "insatisfeito": 1.0,
    "frustrado": 1.0,
    "problema": 1.0,
    "erro": 1.0,
    "falha": 1.0,
    "quebrado": 1.0,
    "nao funciona": 2.0,
    "não funciona": 2.0,
    "odeio": 2.0,
    "detesto": 2.0,
    "reclamacao": 1.0,
    "reclamação": 1.0,
    "lento": 1.0,
    "travando": 1.5,
    "demora": 1.0,
    "impossivel": 1.5,
    "impossível": 1.5,
}

URGENCY_TERMS: tuple[str, ...] = (
    "urgente",
    "emergencia",
    "emergência",
    "critico",
    "crítico",
    "critica",
    "crítica",
    "imediato",
    "imediatamente",
    "asap",
    "agora",
    "prioritario",
    "prioritário",
    "prioridade",
    "grave",
    "serio",
    "sério",
    "parado",
    "travado",
    "bloqueado",
    "indisponivel",
    "indisponível",
    "caiu",
    "quebrou",
    "offline",
    "fora do ar",
)

POSITIVE_LABEL_THRESHOLD = 0.1
NEGATIVE_LABEL_THRESHOLD = -0.1
ESCALATION_CRITICALITY = 2

def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(term) + r"\b", re.IGNORECASE)

_POSITIVE_PATTERNS = [(_term_pattern(term), weight) for term, weight in POSITIVE_LEXICON.items()]
_NEGATIVE_PATTERNS = [(_term_pattern(term), weight) for term, weight in NEGATIVE_LEXICON.items()]
_URGENCY_PATTERNS = [_term_pattern(term) for term in URGENCY_TERMS]

class LexiconSentimentAnalyzer:
    """Lexicon-based sentiment and urgency scoring for Portuguese ticket text.

        Each whole-word hit adds its weight; the score is positive minus
        negative, clamped to [-1, 1]. Criticality is 1 for a negative label
        plus 2 when any urgency term shows up, and a criticality of 2 or more
        asks for higher severity.
        """

    def analyze(self, text: str | None) -> SentimentSignal:
        if text is None or not text.strip():
            return SentimentSignal()

        text_lower = text.lower()

        positive = _weighted_hits(text_lower, _POSITIVE_PATTERNS)
        negative = _weighted_hits(text_lower, _NEGATIVE_PATTERNS)
        score = max(-1.0, min(1.0, positive - negative))

        if score > POSITIVE_LABEL_THRESHOLD:
            label = "positive"
        elif score < NEGATIVE_LABEL_THRESHOLD:
            label = "negative"
        else:
            label = "neutral"

        urgency = any(pattern.search(text_lower) for pattern in _URGENCY_PATTERNS)

        criticality = 0
        if label == "negative":
            criticality += 1
        if urgency:
            criticality += 2

        return SentimentSignal(
            score=round(score, 2),
            label=label,
            urgency_detected=urgency,
            criticality_score=criticality,
            should_increase_severity=criticality >= ESCALATION_CRITICALITY,
        )

def _weighted_hits(text: str, patterns: list[tuple[re.Pattern[str], float]]) -> float:
    return sum(len(pattern.findall(text)) * weight for pattern, weight in patterns)
