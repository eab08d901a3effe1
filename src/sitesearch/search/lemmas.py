"""
Поиск лемм в тексте
"""
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from .morphology import MorphologyChain


# Признаки служебных слов: междометия, союзы, предлоги, частицы,
# вспомогательный глагол to be. Русские обозначения - для словарей АОТ
PARTICLES = frozenset({
    "INTJ", "CONJ", "PREP", "PRCL", "VBE",
    "МЕЖД", "СОЮЗ", "ПРЕДЛ", "ЧАСТ",
})

# Слово внутри токена. В русском языке внутри слова возможен дефис:
# "кто-то", "что-то", "какой-то"
WORD_PATTERN = re.compile(
    r"^[^а-яёa-z]*(?P<word>[а-яёa-z]+|[а-яё]+[а-яё\-]*[а-яё]+)[^а-яёa-z]*$"
)

TAG_SEPARATOR = re.compile(r"[\s,|]+")

# Теги, текст которых не показывается на странице
HIDDEN_TAGS = ("script", "style", "noscript", "template")


def html_to_text(html: str) -> str:
    """Текст HTML-документа без тегов. Переводы строк исходника сохраняются"""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(HIDDEN_TAGS):
        element.decompose()
    return soup.get_text(" ")


def title_of(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None or soup.title.string is None:
        return ""
    return soup.title.string.strip()


class LemmasFinder:
    """
    Поиск русских и английских лемм

    Этапы для каждого слова:
    1. Очистка от символов вокруг слова
    2. Определение языка по списку морфологий
    3. Отсев служебных частей речи
    4. Выбор первой нормальной формы
    """

    def __init__(self, morphology: MorphologyChain = None):
        self.morphology = morphology or MorphologyChain()

    def find_lemmas(self, text: str) -> Dict[str, int]:
        """
        Леммы текста

        Returns:
            {лемма: количество упоминаний в тексте}
        """
        lemmas: Counter = Counter()
        for token in text.strip().lower().split():
            lemma = self.lemma_of(self.search_word(token))
            if lemma:
                lemmas[lemma] += 1
        return dict(lemmas)

    def find_lemmas_in_html(self, html: str) -> Dict[str, int]:
        return self.find_lemmas(html_to_text(html))

    def lemma_set(self, text: str) -> set:
        return set(self.find_lemmas(text))

    @staticmethod
    def search_word(token: str) -> str:
        """Слово из токена в нижнем регистре без окружающих символов или пустая строка"""
        match = WORD_PATTERN.match(token.lower())
        return match.group("word") if match else ""

    def lemma_of(self, word: str) -> Optional[str]:
        """
        Нормальная форма слова для индекса

        Некоторые слова имеют несколько нормальных форм. Для индекса достаточно
        первой, самой приоритетной: у "testing" это "testing", а не "test".
        """
        if not word or not word.strip():
            return None

        provider = self.morphology.qualify(word)
        if provider is None:
            return None

        if self._is_particle(provider.tags(word)):
            return None

        forms = provider.normal_forms(word)
        return forms[0] if forms else None

    @staticmethod
    def _is_particle(tags: Iterable[str]) -> bool:
        for tag in tags:
            if not tag.strip():
                continue
            grammemes: List[str] = TAG_SEPARATOR.split(tag.strip().upper())
            if any(g in PARTICLES for g in grammemes):
                return True
        return False
