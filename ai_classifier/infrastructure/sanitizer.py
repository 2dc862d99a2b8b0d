from __future__ import annotations
import re
from ai_classifier.config import SanitizerConfig
from ai_classifier.domain.models import SanitizedTicket


EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.IGNORECASE)
CPF_PATTERN = re.compile(r"\d{3}\.?\d{3}\.?\d{3}-?\d{2}")
CNPJ_PATTERN = re.compile(r"\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}")
PHONE_PATTERN = re.compile(r"\+?\d{1,3}[-.\s]?\(?\d{2,3}\)?[-.\s]?\d{4,5}[-.\s]?\d{4}")
PHONE_BR_PATTERN = re.compile(r"\(\d{2}\)\s*\d{4,5}-?\d{4}")
CREDIT_CARD_PATTERN = re.compile(r"\d{4}[-.\s]?\d{4}[-.\s]?\d{4}[-.\s]?\d{4}")
IP_PATTERN = re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")
HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")

# everything from the signature marker to the end is dropped
SIGNATURE_PATTERNS = [
    re.compile(r"--\s*\n.*", re.DOTALL),
    re.compile(r"_{3,}.*", re.DOTALL),
    re.compile(r"Enviado do meu.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"Sent from my.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"Esta mensagem.*confidencial.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"Atenciosamente,?\s*\n.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"Att,?\s*\n.*", re.IGNORECASE | re.DOTALL),
]

TICKET_NUMBER_PATTERN = re.compile(r"\[Ticket#\d+\]\s*|Ticket#\d+\s*:?\s*", re.IGNORECASE)
REPLY_FWD_PATTERN = re.compile(r"^(Re|Fw|Fwd|Enc|RES|ENC):\s*", re.IGNORECASE)

class TicketSanitizer:
    """Removes PII and noise from ticket text before it is sent to an LLM."""

    def __init__(self, config: SanitizerConfig | None = None) -> None:
        config = config or SanitizerConfig()
        self._body_max_length = config.body_max_length
        self._body_min_length = config.body_min_length
        self._sanitize_pii = config.sanitize_pii

    def sanitize(self, subject: str | None, body: str | None, sender: str | None) -> SanitizedTicket:
        return SanitizedTicket(
            subject=self.sanitize_subject(subject),
            body=self.sanitize_body(body),
            masked_sender=mask_email(sender),
        )

    def sanitize_body(self, body: str | None) -> str:
        """Strip HTML, signatures and PII, then truncate on a word boundary."""

        if body is None or not body.strip():
            return ""

        sanitized = HTML_TAG_PATTERN.sub("", body)

        # signature markers are line-based, so strip them before collapsing whitespace
        for pattern in SIGNATURE_PATTERNS:
            sanitized = pattern.sub("", sanitized)

        sanitized = WHITESPACE_PATTERN.sub(" ", sanitized).strip()

        if self._sanitize_pii:
            sanitized = remove_pii(sanitized)

        if len(sanitized) > self._body_max_length:
            sanitized = sanitized[: self._body_max_length]
            last_space = sanitized.rfind(" ")
            if last_space > self._body_min_length:
                sanitized = sanitized[:last_space]
            sanitized = sanitized + "..."

        return sanitized.strip()

    def sanitize_subject(self, subject: str | None) -> str:
        if subject is None or not subject.strip():
            return ""

        sanitized = TICKET_NUMBER_PATTERN.sub("", subject)
        sanitized = REPLY_FWD_PATTERN.sub("", sanitized)

        if self._sanitize_pii:
            sanitized = remove_pii(sanitized)

        return sanitized.strip()

def mask_email(email: str | None) -> str:
    """john.doe@example.com -> j****@example.com; accepts 'Name <addr>' form."""

    if email is None or not email.strip():
        return ""

    to_mask = email
    start = email.find("<")
    end = email.find(">")
    if start != -1 and end != -1 and start < end:
        to_mask = email[start + 1:end]

    at_index = to_mask.find("@")
    if at_index > 0:
        return to_mask[0] + "****" + to_mask[at_index:]

    return to_mask

def remove_pii(text: str | None) -> str:
    if text is None or not text.strip():
        return ""

    # order matters: phones before CPF, CNPJ before cards
    sanitized = EMAIL_PATTERN.sub("[EMAIL]", text)
    sanitized = PHONE_PATTERN.sub("[PHONE]", sanitized)
    sanitized = PHONE_BR_PATTERN.sub("[PHONE]", sanitized)
    sanitized = CPF_PATTERN.sub("[CPF]", sanitized)
    sanitized = CNPJ_PATTERN.sub("[CNPJ]", sanitized)
    sanitized = CREDIT_CARD_PATTERN.sub("[CARD]", sanitized)
    sanitized = IP_PATTERN.sub("[IP]", sanitized)
    return sanitized
