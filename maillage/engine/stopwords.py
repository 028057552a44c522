"""Stopword lists for the nine corpus languages.

Unknown language codes fall back to English. Regional variants such as
``pt-BR`` resolve to their base language.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

FR_STOPWORDS: FrozenSet[str] = frozenset({
    "le", "la", "les", "un", "une", "des", "de", "du", "et", "est", "en", "au", "aux",
    "pour", "par", "sur", "dans", "avec", "ce", "cette", "ces", "qui", "que", "quoi",
    "son", "sa", "ses", "leur", "leurs", "nous", "vous", "ils", "elles", "être", "avoir",
    "fait", "faire", "comme", "plus", "tout", "tous", "toute", "toutes", "pas", "mais",
    "donc", "car", "ainsi", "aussi", "bien", "très", "peut", "peuvent", "doit", "doivent",
})

EN_STOPWORDS: FrozenSet[str] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "as", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "this", "that", "these", "those", "it", "its", "they", "them", "their", "you", "your",
    "can", "not", "all", "any", "more", "most", "other", "some", "such", "than", "too",
    "very", "what", "which", "who", "when", "where", "why", "how", "about", "into",
})

ES_STOPWORDS: FrozenSet[str] = frozenset({
    "el", "la", "los", "las", "un", "una", "unos", "unas", "de", "del", "al", "y", "o",
    "en", "con", "por", "para", "que", "como", "más", "pero", "su", "sus", "es", "son",
    "ser", "estar", "hay", "tiene", "tienen", "fue", "era", "sido", "siendo", "hacer",
})

DE_STOPWORDS: FrozenSet[str] = frozenset({
    "der", "die", "das", "ein", "eine", "und", "oder", "aber", "in", "auf", "an", "für",
    "mit", "von", "zu", "bei", "ist", "sind", "war", "werden", "wird", "haben", "hat",
    "sein", "kann", "können", "muss", "müssen", "diese", "dieser", "dieses", "wenn", "auch",
    "den", "dem", "des", "einen", "einem", "einer", "nicht", "sich", "als", "nach", "wie",
})

PT_STOPWORDS: FrozenSet[str] = frozenset({
    "o", "a", "os", "as", "um", "uma", "de", "do", "da", "dos", "das", "e", "ou", "em",
    "no", "na", "por", "para", "com", "que", "como", "mais", "mas", "seu", "sua",
    "ser", "estar", "ter", "foi", "era", "são", "está", "pode", "podem", "deve",
})

RU_STOPWORDS: FrozenSet[str] = frozenset({
    "и", "в", "во", "не", "что", "он", "на", "я", "с", "со", "как", "а", "то", "все",
    "она", "так", "его", "но", "да", "ты", "к", "у", "же", "вы", "за", "бы", "по",
    "только", "её", "мне", "было", "вот", "от", "меня", "ещё", "нет", "о", "из", "ему",
    "теперь", "когда", "уже", "или", "ни", "быть", "был", "него", "до", "вас", "нибудь",
    "опять", "уж", "вам", "ведь", "там", "потом", "себя", "ничего", "ей", "может",
    "они", "тут", "где", "есть", "надо", "ней", "для", "мы", "тебя", "их", "чем",
    "была", "сам", "чтоб", "без", "будто", "чего", "раз", "тоже", "себе", "под",
})

ZH_STOPWORDS: FrozenSet[str] = frozenset({
    "的", "是", "在", "不", "了", "有", "和", "人", "这", "中", "大", "为", "上", "个",
    "我", "以", "要", "他", "时", "来", "用", "们", "到", "作", "地", "于", "就", "对",
    "会", "可", "也", "能", "下", "过", "说", "而", "后", "多", "所", "得", "之", "等",
    "如", "都", "两", "当", "使", "从", "我们", "他们", "这个", "那个", "因为", "所以",
})

AR_STOPWORDS: FrozenSet[str] = frozenset({
    "في", "من", "على", "إلى", "عن", "أن", "هذا", "هذه", "التي", "الذي", "ما", "مع",
    "كان", "قد", "و", "أو", "ثم", "بعد", "قبل", "حتى", "لكن", "إذا", "كل", "بين",
    "هو", "هي", "هم", "نحن", "أنت", "أنا", "ذلك", "تلك", "هنا", "هناك", "كيف", "لماذا",
    "متى", "أين", "كم", "أي", "لا", "نعم", "غير", "بل", "لم", "لن", "سوف", "قال",
    "عند", "منذ", "خلال", "حول", "ضد", "نحو", "بسبب", "رغم", "مثل", "فقط", "أيضا",
})

HI_STOPWORDS: FrozenSet[str] = frozenset({
    "का", "के", "की", "है", "हैं", "में", "को", "से", "पर", "और", "एक", "यह", "था",
    "थी", "थे", "होता", "होती", "होते", "हो", "गया", "गयी", "गये", "किया", "कर",
    "करते", "करता", "करती", "जो", "तो", "ने", "भी", "इस", "उस", "वह", "यहाँ", "वहाँ",
    "कि", "जब", "तब", "अब", "कब", "कहाँ", "क्या", "कैसे", "क्यों", "कितना", "कौन",
    "इसके", "उसके", "अपने", "अपना", "अपनी", "मैं", "हम", "तुम", "आप", "वे", "उन",
    "इन", "सब", "कुछ", "बहुत", "अधिक", "कम", "साथ", "बाद", "पहले", "अगर", "लेकिन",
    "या", "तथा", "एवं", "न", "नहीं",
})

STOPWORDS: Dict[str, FrozenSet[str]] = {
    "fr": FR_STOPWORDS,
    "en": EN_STOPWORDS,
    "es": ES_STOPWORDS,
    "de": DE_STOPWORDS,
    "pt": PT_STOPWORDS,
    "ru": RU_STOPWORDS,
    "zh": ZH_STOPWORDS,
    "ar": AR_STOPWORDS,
    "hi": HI_STOPWORDS,
}

SUPPORTED_LANGUAGES = tuple(STOPWORDS)


def base_language(language: str | None) -> str:
    """Return the two-letter base code for ``language`` (``pt-BR`` -> ``pt``)."""

    if not language:
        return "en"
    return language.replace("_", "-").split("-")[0].lower()


def get_stopwords(language: str | None) -> FrozenSet[str]:
    """Return the stopword set for a language code, defaulting to English."""

    return STOPWORDS.get(base_language(language), EN_STOPWORDS)
