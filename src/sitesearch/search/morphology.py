"""
Морфология русского и английского языков

- RussianMorphology: словарь OpenCorpora через pymorphy3
- EnglishMorphology: WordNet и теггер частей речи из nltk
- MorphologyChain: упорядоченный список языков, первый подходящий язык
  определяет разбор слова
"""
import logging
import re
from typing import List, Optional, Sequence

from ..core.interfaces import IMorphology

logger = logging.getLogger(__name__)


class RussianMorphology(IMorphology):
    """
    Русская морфология на базе pymorphy3

    Признаки служебных частей речи: PREP, CONJ, PRCL, INTJ
    """

    language = "ru"

    # Дефис допустим внутри слова: "кто-то", "какой-либо"
    WORD_PATTERN = re.compile(r"^[а-яё]+(?:-[а-яё]+)*$")

    def __init__(self):
        self._analyzer = None

    def _load_analyzer(self):
        """Ленивая загрузка словаря"""
        if self._analyzer is None:
            import pymorphy3

            logger.info("[Morphology] Loading Russian dictionary")
            self._analyzer = pymorphy3.MorphAnalyzer()
        return self._analyzer

    def validate(self, word: str) -> bool:
        return bool(self.WORD_PATTERN.match(word))

    def normal_forms(self, word: str) -> List[str]:
        forms = []
        for parse in self._load_analyzer().parse(word):
            if parse.normal_form not in forms:
                forms.append(parse.normal_form)
        return forms

    def tags(self, word: str) -> List[str]:
        return [str(parse.tag) for parse in self._load_analyzer().parse(word)]


class EnglishMorphology(IMorphology):
    """
    Английская морфология на базе nltk

    Нормальные формы: леммы WordNet для разных частей речи и само слово.
    Слово идёт первым, только если оно само словарная форма:
    "tested" -> ["test", "tested"], "testing" -> ["testing", "test"].
    Признаки переводятся из тегов Penn Treebank в общие классы.
    """

    language = "en"

    WORD_PATTERN = re.compile(r"^[a-z]+$")

    # Penn Treebank -> класс служебного слова
    TAG_CLASSES = {
        "IN": "PREP",
        "TO": "PREP",
        "CC": "CONJ",
        "UH": "INTJ",
    }

    # Формы вспомогательного глагола to be
    BE_FORMS = {"be", "am", "is", "are", "was", "were", "been", "being"}

    WORDNET_POS = ("n", "v", "a", "r")

    NLTK_RESOURCES = (
        ("corpora/wordnet", "wordnet"),
        ("taggers/averaged_perceptron_tagger_eng", "averaged_perceptron_tagger_eng"),
    )

    def __init__(self):
        self._lemmatizer = None
        self._wordnet = None

    def _load_lemmatizer(self):
        """Ленивая загрузка WordNet и теггера"""
        if self._lemmatizer is None:
            import nltk
            from nltk.corpus import wordnet
            from nltk.stem import WordNetLemmatizer

            for path, package in self.NLTK_RESOURCES:
                try:
                    nltk.data.find(path)
                except LookupError:
                    logger.info(f"[Morphology] Downloading nltk resource '{package}'")
                    nltk.download(package, quiet=True)

            self._wordnet = wordnet
            self._lemmatizer = WordNetLemmatizer()
        return self._lemmatizer

    def validate(self, word: str) -> bool:
        return bool(self.WORD_PATTERN.match(word))

    def normal_forms(self, word: str) -> List[str]:
        lemmatizer = self._load_lemmatizer()

        forms = []
        for pos in self.WORDNET_POS:
            form = lemmatizer.lemmatize(word, pos)
            if form != word and form not in forms:
                forms.append(form)

        # morphy - первая словарная форма среди частей речи n, v, a, r
        if self._wordnet.morphy(word) == word:
            return [word] + forms
        return forms + [word]

    def tags(self, word: str) -> List[str]:
        import nltk

        self._load_lemmatizer()
        _, penn_tag = nltk.pos_tag([word])[0]

        tags = [penn_tag]
        if penn_tag in self.TAG_CLASSES:
            tags.append(self.TAG_CLASSES[penn_tag])
        if word in self.BE_FORMS:
            tags.append("VBE")
        return tags


class MorphologyChain:
    """
    Упорядоченный набор морфологий

    Слово относится к первому языку, морфология которого его принимает.
    """

    def __init__(self, providers: Sequence[IMorphology] = None):
        if providers is None:
            providers = [RussianMorphology(), EnglishMorphology()]
        self.providers = list(providers)

    def qualify(self, word: str) -> Optional[IMorphology]:
        for provider in self.providers:
            if provider.validate(word):
                return provider
        return None
