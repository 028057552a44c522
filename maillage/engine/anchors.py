"""Anchor category allocation and anchor text generation."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .config import AnchorPolicy
from .stopwords import base_language
from .text import fingerprint, head_terms
from .types import AnchorAssignment, AnchorCategory, ScoredCandidate

_TEMPLATES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "fr": {
        "generic": ("en savoir plus", "lire la suite", "consulter le guide", "plus d'informations"),
        "cta": ("découvrez {topic}", "consultez notre guide {topic}", "tout savoir sur {topic}"),
        "question": ("comment gérer {topic} ?", "que savoir sur {topic} ?", "{topic} : par où commencer ?"),
        "modifiers": ("guide complet", "conseils pratiques", "démarches détaillées"),
    },
    "en": {
        "generic": ("learn more", "read more", "read the guide", "more information"),
        "cta": ("discover {topic}", "read our {topic} guide", "everything about {topic}"),
        "question": ("how does {topic} work?", "what to know about {topic}?", "where to start with {topic}?"),
        "modifiers": ("complete guide", "practical tips", "step by step"),
    },
    "es": {
        "generic": ("saber más", "leer más", "leer la guía", "más información"),
        "cta": ("descubre {topic}", "consulta nuestra guía {topic}", "todo sobre {topic}"),
        "question": ("¿cómo funciona {topic}?", "¿qué saber sobre {topic}?", "¿por dónde empezar con {topic}?"),
        "modifiers": ("guía completa", "consejos prácticos", "paso a paso"),
    },
    "de": {
        "generic": ("mehr erfahren", "weiterlesen", "leitfaden lesen", "mehr informationen"),
        "cta": ("entdecken sie {topic}", "unser leitfaden zu {topic}", "alles über {topic}"),
        "question": ("wie funktioniert {topic}?", "was sollte man über {topic} wissen?", "{topic}: wo anfangen?"),
        "modifiers": ("vollständiger leitfaden", "praktische tipps", "schritt für schritt"),
    },
    "pt": {
        "generic": ("saiba mais", "leia mais", "ler o guia", "mais informações"),
        "cta": ("descubra {topic}", "consulte o nosso guia {topic}", "tudo sobre {topic}"),
        "question": ("como funciona {topic}?", "o que saber sobre {topic}?", "por onde começar com {topic}?"),
        "modifiers": ("guia completo", "dicas práticas", "passo a passo"),
    },
    "ru": {
        "generic": ("подробнее", "читать далее", "читать руководство", "больше информации"),
        "cta": ("узнайте о {topic}", "наше руководство: {topic}", "всё о {topic}"),
        "question": ("как работает {topic}?", "что нужно знать о {topic}?", "с чего начать: {topic}?"),
        "modifiers": ("полное руководство", "практические советы", "пошагово"),
    },
    "zh": {
        "generic": ("了解更多", "阅读全文", "查看指南", "更多信息"),
        "cta": ("了解{topic}", "阅读我们的{topic}指南", "关于{topic}的一切"),
        "question": ("{topic}如何办理？", "关于{topic}需要知道什么？", "{topic}从哪里开始？"),
        "modifiers": ("完整指南", "实用建议", "详细步骤"),
    },
    "ar": {
        "generic": ("اعرف المزيد", "اقرأ المزيد", "اقرأ الدليل", "مزيد من المعلومات"),
        "cta": ("اكتشف {topic}", "اطلع على دليلنا حول {topic}", "كل شيء عن {topic}"),
        "question": ("كيف يعمل {topic}؟", "ماذا تعرف عن {topic}؟", "من أين تبدأ مع {topic}؟"),
        "modifiers": ("دليل شامل", "نصائح عملية", "خطوة بخطوة"),
    },
    "hi": {
        "generic": ("और जानें", "आगे पढ़ें", "गाइड पढ़ें", "अधिक जानकारी"),
        "cta": ("{topic} के बारे में जानें", "हमारी {topic} गाइड पढ़ें", "{topic} के बारे में सब कुछ"),
        "question": ("{topic} कैसे काम करता है?", "{topic} के बारे में क्या जानना चाहिए?", "{topic} कहाँ से शुरू करें?"),
        "modifiers": ("पूरी गाइड", "व्यावहारिक सुझाव", "चरण दर चरण"),
    },
}


def allocate(total: int, distribution: Sequence[Tuple[AnchorCategory, int]]) -> Dict[AnchorCategory, int]:
    """Split ``total`` links across categories by largest remainder.

    Leftover links go to the largest fractional parts; equal fractions keep
    the configured category order.
    """

    counts: Dict[AnchorCategory, int] = {}
    remainders: List[Tuple[float, int, AnchorCategory]] = []
    for order, (category, percent) in enumerate(distribution):
        quota = total * percent / 100.0
        counts[category] = int(quota)
        remainders.append((quota - int(quota), order, category))

    leftover = total - sum(counts.values())
    remainders.sort(key=lambda entry: (-entry[0], entry[1]))
    for _, _, category in remainders[:leftover]:
        counts[category] += 1
    return counts


def _pick(options: Sequence[str], seed: str) -> str:
    return options[int(fingerprint(seed), 16) % len(options)]


def anchor_text(candidate: ScoredCandidate, category: AnchorCategory, language: str) -> str:
    """Return deterministic anchor text for a candidate in the given category."""

    templates = _TEMPLATES.get(base_language(language), _TEMPLATES["en"])
    target = candidate.item
    title = " ".join(target.title.split())
    topic = head_terms(title).lower() or (candidate.keywords[0] if candidate.keywords else "")
    seed = f"{target.id}:{category.value}"

    if category is AnchorCategory.EXACT_MATCH:
        return head_terms(title) or topic
    if category is AnchorCategory.LONG_TAIL:
        if len(title.split()) > 4:
            return title
        return f"{title} {_pick(templates['modifiers'], seed)}".strip()
    if category is AnchorCategory.GENERIC:
        return _pick(templates["generic"], seed)
    key = "cta" if category is AnchorCategory.CTA else "question"
    return _pick(templates[key], seed).format(topic=topic)


class AnchorDistributor:
    """Assign anchor categories and texts to ranked candidates for one source."""

    def __init__(self, policy: AnchorPolicy) -> None:
        self.policy = policy

    def categories_for(self, total: int) -> List[AnchorCategory]:
        """Return ``total`` categories in configured order, one per rank position."""

        counts = allocate(total, self.policy.distribution)
        sequence: List[AnchorCategory] = []
        for category, _ in self.policy.distribution:
            sequence.extend([category] * counts[category])
        return sequence

    def assign(self, candidates: Sequence[ScoredCandidate], language: str) -> List[AnchorAssignment]:
        """Pair each candidate, best first, with its category and text."""

        categories = self.categories_for(len(candidates))
        return [
            AnchorAssignment(candidate=candidate, category=category, text=anchor_text(candidate, category, language))
            for candidate, category in zip(candidates, categories)
        ]
