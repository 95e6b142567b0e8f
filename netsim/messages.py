from __future__ import annotations

import os
from typing import Dict


DEFAULT_LANGUAGE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "start": "Starting transmission...",
        "arrived": "Packet arrived successfully!",
        "dropped": "Packet dropped. No path found.",
        "explain_missing_key": "API Key missing. Cannot generate explanation.",
        "explain_no_response": "No response.",
        "explain_error": "Error consulting AI.",
    },
    "fr": {
        "start": "Début de la transmission...",
        "arrived": "Paquet arrivé avec succès !",
        "dropped": "Paquet perdu. Aucun chemin trouvé.",
        "explain_missing_key": "Clé API manquante. Impossible de générer l'explication.",
        "explain_no_response": "Pas de réponse.",
        "explain_error": "Erreur lors de la consultation de l'IA.",
    },
}

LANGUAGE_NAMES = {"en": "English", "fr": "French"}


def normalize_language(language: str | None) -> str:
    lang = (language or "").strip().lower()
    return lang if lang in MESSAGES else DEFAULT_LANGUAGE


def default_language() -> str:
    return normalize_language(os.getenv("NETSIM_LANGUAGE", DEFAULT_LANGUAGE))


def message(key: str, language: str | None = None) -> str:
    return MESSAGES[normalize_language(language)][key]
