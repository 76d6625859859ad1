"""Response language instructions and speech-recognition locales."""

DEFAULT_LANGUAGE = "en"

LANGUAGE_INSTRUCTIONS: dict[str, str] = {
    "en": "Respond ONLY in ENGLISH. Do not include any other language.",
    "hi": "Respond ONLY in HINDI. Use farmer-friendly Indian Hindi terms. No English.",
    "mr": "Respond ONLY in MARATHI. Use farmer-friendly Marathi terms. No English.",
    "bn": "Respond ONLY in BENGALI (বাংলা). No English.",
    "ta": "Respond ONLY in TAMIL (தமிழ்). No English.",
    "te": "Respond ONLY in TELUGU (తెలుగు). No English.",
    "gu": "Respond ONLY in GUJARATI (ગુજરાતી). No English.",
    "kn": "Respond ONLY in KANNADA (ಕನ್ನಡ). No English.",
    "ml": "Respond ONLY in MALAYALAM (മലയാളം). No English.",
    "pa": "Respond ONLY in PUNJABI (ਪੰਜਾਬੀ). No English.",
    "or": "Respond ONLY in ODIA (ଓଡିଆ). No English.",
    "as": "Respond ONLY in ASSAMESE (অসমীয়া). No English.",
    "ur": "Respond ONLY in URDU (اُردُو). No English.",
    "ks": "Respond ONLY in KASHMIRI. No English.",
    "kok": "Respond ONLY in KONKANI (कोंकणी). No English.",
    "sd": "Respond ONLY in SINDHI (سنڌي). No English.",
    "sa": "Respond ONLY in SANSKRIT (संस्कृतम्). No English.",
    "ne": "Respond ONLY in NEPALI (नेपाली). No English.",
    "mni": "Respond ONLY in MANIPURI. No English.",
    "mai": "Respond ONLY in MAITHILI (मैथिली). No English.",
    "doi": "Respond ONLY in DOGRI (डोगरी). No English.",
    "sat": "Respond ONLY in SANTALI (ᱥᱟᱱᱛᱟᱲᱤ). No English.",
    "brx": "Respond ONLY in BODO. No English.",
}

SPEECH_LOCALES: dict[str, str] = {
    "en": "en-US",
    "hi": "hi-IN",
    "mr": "mr-IN",
    "bn": "bn-IN",
    "ta": "ta-IN",
    "te": "te-IN",
    "gu": "gu-IN",
    "kn": "kn-IN",
    "ml": "ml-IN",
    "pa": "pa-IN",
    "or": "or-IN",
    "as": "as-IN",
    "ur": "ur-IN",
    "ne": "ne-NP",
    "sa": "sa-IN",
}


def normalize_language(code: str | None) -> str:
    """Lower-cased supported code, or the default language."""
    code = (code or "").strip().lower()
    return code if code in LANGUAGE_INSTRUCTIONS else DEFAULT_LANGUAGE


def get_language_instructions(code: str | None) -> str:
    """Instruction line telling the model which language to answer in."""
    return LANGUAGE_INSTRUCTIONS[normalize_language(code)]


def get_speech_locale(code: str | None) -> str:
    """Speech-recognition locale for a language code; en-US when unmapped."""
    return SPEECH_LOCALES.get((code or "").strip().lower(), SPEECH_LOCALES[DEFAULT_LANGUAGE])
