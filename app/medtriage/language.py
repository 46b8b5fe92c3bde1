"""Language policy: per-language model directive and localized fallback texts."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class LanguageProfile:
    code: str
    name: str
    native_name: str
    directive: str
    credentials_missing: str
    upstream_failure: str

    def credentials_missing_message(self, emergency_number: str) -> str:
        return self.credentials_missing.format(emergency_number=emergency_number)

    def upstream_failure_message(self, emergency_number: str) -> str:
        return self.upstream_failure.format(emergency_number=emergency_number)


DEFAULT_LANGUAGE = "en"

_PROFILES: dict[str, LanguageProfile] = {
    "en": LanguageProfile(
        code="en",
        name="English",
        native_name="English",
        directive="Respond in English.",
        credentials_missing=(
            "The symptom assistant is not available right now. "
            "If this is an emergency, call {emergency_number} or go to your nearest emergency room immediately. "
            "Otherwise, please contact a healthcare provider for advice."
        ),
        upstream_failure=(
            "I'm sorry, I'm having trouble processing your request right now. "
            "If this is an emergency, please call {emergency_number} immediately. "
            "Otherwise, please try again in a moment or contact a healthcare provider."
        ),
    ),
    "es": LanguageProfile(
        code="es",
        name="Spanish",
        native_name="Español",
        directive="Respond in Spanish (Español). Use appropriate medical terminology in Spanish.",
        credentials_missing=(
            "El asistente de síntomas no está disponible en este momento. "
            "Si se trata de una emergencia, llame al {emergency_number} o acuda de inmediato a la sala de "
            "emergencias más cercana. De lo contrario, comuníquese con un profesional de la salud."
        ),
        upstream_failure=(
            "Lo siento, tengo problemas para procesar su solicitud en este momento. "
            "Si se trata de una emergencia, llame al {emergency_number} de inmediato. "
            "De lo contrario, inténtelo de nuevo en un momento o comuníquese con un profesional de la salud."
        ),
    ),
    "hi": LanguageProfile(
        code="hi",
        name="Hindi",
        native_name="हिन्दी",
        directive="Respond in Hindi (हिन्दी). Use appropriate medical terminology in Hindi.",
        credentials_missing=(
            "लक्षण सहायक अभी उपलब्ध नहीं है। "
            "यदि यह आपातकाल है, तो तुरंत {emergency_number} पर कॉल करें या नज़दीकी आपातकालीन कक्ष में जाएँ। "
            "अन्यथा, सलाह के लिए किसी स्वास्थ्य सेवा प्रदाता से संपर्क करें।"
        ),
        upstream_failure=(
            "क्षमा करें, अभी आपके अनुरोध को संसाधित करने में समस्या हो रही है। "
            "यदि यह आपातकाल है, तो कृपया तुरंत {emergency_number} पर कॉल करें। "
            "अन्यथा, थोड़ी देर बाद पुनः प्रयास करें या किसी स्वास्थ्य सेवा प्रदाता से संपर्क करें।"
        ),
    ),
}


def normalize_language_code(code: str | None) -> str:
    """Reduce a requested code (``es-MX``, `` HI ``, ``hi_IN``) to a supported base code.

    Never raises; anything unrecognised resolves to English.
    """
    token = str(code or "").strip().lower()
    base = re.split(r"[-_]", token, maxsplit=1)[0] if token else ""
    return base if base in _PROFILES else DEFAULT_LANGUAGE


def resolve_language(code: str | None) -> LanguageProfile:
    return _PROFILES[normalize_language_code(code)]


def language_directive(code: str | None) -> str:
    return resolve_language(code).directive


def supported_languages() -> list[dict[str, str]]:
    return [
        {"code": profile.code, "name": profile.name, "native_name": profile.native_name}
        for profile in _PROFILES.values()
    ]
