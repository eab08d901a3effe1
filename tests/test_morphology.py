import nltk
import pytest

from sitesearch.search.lemmas import LemmasFinder
from sitesearch.search.morphology import EnglishMorphology, MorphologyChain


class StubLemmatizer:
    """Леммы WordNet по (слово, часть речи)"""

    LEMMAS = {
        ("cats", "n"): "cat",
        ("tested", "v"): "test",
        ("running", "v"): "run",
        ("testing", "v"): "test",
        ("better", "a"): "good",
        ("better", "r"): "well",
    }

    def lemmatize(self, word, pos="n"):
        return self.LEMMAS.get((word, pos), word)


class StubWordNet:
    """Первая словарная форма слова, None для неизвестных слов"""

    MORPHY = {
        "cats": "cat",
        "tested": "test",
        "running": "running",
        "testing": "testing",
        "cat": "cat",
        "better": "better",
    }

    def morphy(self, word, pos=None):
        return self.MORPHY.get(word)


@pytest.fixture
def english():
    morphology = EnglishMorphology()
    morphology._lemmatizer = StubLemmatizer()
    morphology._wordnet = StubWordNet()
    return morphology


class TestEnglishNormalForms:
    @pytest.mark.parametrize("word, forms", [
        ("cats", ["cat", "cats"]),
        ("tested", ["test", "tested"]),
        ("testing", ["testing", "test"]),
        ("running", ["running", "run"]),
        ("cat", ["cat"]),
        ("better", ["better", "good", "well"]),
        ("zzz", ["zzz"]),
    ])
    def test_dictionary_form_first(self, english, word, forms):
        assert english.normal_forms(word) == forms

    def test_inflected_words_share_lemma(self, english, monkeypatch):
        monkeypatch.setattr(english, "tags", lambda word: ["NN"])
        finder = LemmasFinder(MorphologyChain([english]))

        assert finder.find_lemmas("Cats tested, cat test") == {"cat": 2, "test": 2}

    def test_query_matches_inflected_page_word(self, english, monkeypatch):
        monkeypatch.setattr(english, "tags", lambda word: ["NN"])
        finder = LemmasFinder(MorphologyChain([english]))

        assert finder.lemma_set("cat") <= finder.lemma_set("cats")


class TestEnglishTags:
    @pytest.mark.parametrize("word, penn_tag, tags", [
        ("of", "IN", ["IN", "PREP"]),
        ("to", "TO", ["TO", "PREP"]),
        ("and", "CC", ["CC", "CONJ"]),
        ("oh", "UH", ["UH", "INTJ"]),
        ("is", "VBZ", ["VBZ", "VBE"]),
        ("cats", "NNS", ["NNS"]),
    ])
    def test_service_word_classes(self, english, monkeypatch, word, penn_tag, tags):
        monkeypatch.setattr(nltk, "pos_tag", lambda words: [(words[0], penn_tag)])
        assert english.tags(word) == tags

    def test_service_words_are_skipped(self, english, monkeypatch):
        penn = {"the": "DT", "cats": "NNS", "of": "IN", "and": "CC", "is": "VBZ"}
        monkeypatch.setattr(nltk, "pos_tag", lambda words: [(words[0], penn[words[0]])])
        finder = LemmasFinder(MorphologyChain([english]))

        assert finder.find_lemmas("the cats of and is") == {"the": 1, "cat": 1}
