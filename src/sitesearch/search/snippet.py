"""
Сниппеты: фрагменты текста страницы с подсвеченными словами запроса
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from .lemmas import LemmasFinder

ELLIPSIS = "..."


@dataclass
class _Word:
    """Значимое слово строки"""
    position: int  # номер токена в строке
    lemma: str


class SnippetBuilder:
    """
    Построение сниппета

    Вокруг каждого найденного слова выводится до `words_range` значимых слов
    слева и справа. Пропущенные части текста заменяются многоточием.
    Когда сниппет становится длиннее `spoiler_threshold`, остальные
    фрагменты прячутся в <details>.
    """

    def __init__(
        self,
        finder: LemmasFinder,
        words_range: int = 2,
        spoiler_threshold: int = 270
    ):
        if words_range < 1:
            raise ValueError("words_range must not be less than 1")
        self.finder = finder
        self.words_range = words_range
        self.spoiler_threshold = spoiler_threshold

    def build(self, text: str, lemmas: Iterable[str]) -> str:
        targets = set(lemmas)
        pieces: List[str] = []
        spoiler_added = False
        # Есть невыведенные слова перед текущей позицией
        skipped = False

        for line in text.splitlines():
            tokens = line.split()
            if not tokens:
                continue

            words = self._significant_words(tokens)
            cursor = 0
            for lo, hi in self._clusters(words, targets):
                start = 0 if lo == 0 else words[lo].position
                end = len(tokens) - 1 if hi == len(words) - 1 else words[hi].position

                if (skipped or start > cursor) and (not pieces or pieces[-1] != ELLIPSIS):
                    pieces.append(ELLIPSIS)

                if not spoiler_added and len(" ".join(pieces)) > self.spoiler_threshold:
                    pieces.append("<details>")
                    spoiler_added = True

                hit_positions = {w.position for w in words[lo:hi + 1] if w.lemma in targets}
                pieces.append(self._render(tokens[start:end + 1], start, hit_positions))

                cursor = end + 1
                skipped = False

            if cursor < len(tokens):
                skipped = True

        if skipped and pieces and pieces[-1] != ELLIPSIS:
            pieces.append(ELLIPSIS)

        if spoiler_added:
            pieces.append("</details>")

        return " ".join(pieces).strip()

    def _significant_words(self, tokens: List[str]) -> List[_Word]:
        words = []
        for position, token in enumerate(tokens):
            lemma = self.finder.lemma_of(self.finder.search_word(token))
            if lemma:
                words.append(_Word(position, lemma))
        return words

    def _clusters(self, words: List[_Word], targets: Set[str]) -> List[Tuple[int, int]]:
        """Диапазоны значимых слов вокруг найденных, пересекающиеся объединяются"""
        clusters: List[Tuple[int, int]] = []
        for i, word in enumerate(words):
            if word.lemma not in targets:
                continue

            lo = max(0, i - self.words_range)
            hi = min(len(words) - 1, i + self.words_range)
            if clusters and lo <= clusters[-1][1] + 1:
                clusters[-1] = (clusters[-1][0], max(clusters[-1][1], hi))
            else:
                clusters.append((lo, hi))
        return clusters

    def _render(self, tokens: List[str], offset: int, hits: Set[int]) -> str:
        parts: List[str] = []
        # Предыдущее найденное слово закончилось без знаков после него
        span_open = False

        for i, token in enumerate(tokens):
            if offset + i not in hits:
                parts.append(token)
                span_open = False
                continue

            prefix, match, suffix = self._split_token(token)
            if match is None:
                parts.append(token)
                span_open = False
                continue

            if span_open and not prefix:
                # Соседние слова попадают в один <b>
                parts[-1] = f"{parts[-1][:-len('</b>')]} {match}</b>{suffix}"
            else:
                parts.append(f"{prefix}<b>{match}</b>{suffix}")
            span_open = not suffix

        return " ".join(parts)

    def _split_token(self, token: str) -> Tuple[str, Optional[str], str]:
        word = self.finder.search_word(token)
        position = token.lower().find(word) if word else -1
        if position < 0:
            return token, None, ""
        end = position + len(word)
        return token[:position], token[position:end], token[end:]
