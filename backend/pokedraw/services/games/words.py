"""Word source: the list of Pokémon a round can draw from.

The remote list comes from PokeAPI's species index. Names that are not a
single lower-case alphanumeric token (``mr-mime``, ``type-null``) are
dropped so guesses can be compared after stripping punctuation.
"""
import random
import re
from typing import Callable, Iterable, List, Optional, Sequence

import httpx

WORD_PATTERN = re.compile(r'^[a-z0-9]+$')

FALLBACK_WORDS = (
    'pikachu', 'bulbasaur', 'charmander', 'squirtle', 'jigglypuff',
    'meowth', 'psyduck', 'snorlax', 'eevee', 'gengar',
    'onix', 'magikarp', 'gyarados', 'lapras', 'ditto',
    'vulpix', 'growlithe', 'pidgey', 'rattata', 'caterpie',
    'butterfree', 'geodude', 'machop', 'abra', 'slowpoke',
    'cubone', 'koffing', 'staryu', 'horsea', 'mew',
)


class WordSource:
    """Non-empty, read-only list of candidate words plus a picker."""

    def __init__(self, words: Sequence[str], choose_index: Optional[Callable[[int], int]] = None,
                 origin: str = 'fallback'):
        words = tuple(words)
        if not words:
            raise ValueError('WordSource requires at least one word')
        self.words = words
        self.origin = origin
        self._choose_index = choose_index or random.randrange

    def __len__(self) -> int:
        return len(self.words)

    def choose(self) -> str:
        return self.words[self._choose_index(len(self.words))]

    def choose_other(self, current: Optional[str]) -> str:
        """Pick a word, avoiding ``current`` whenever another word exists."""
        if current is None or len(self.words) < 2:
            return self.choose()
        for _ in range(8):
            word = self.choose()
            if word != current:
                return word
        # Picker keeps landing on the same word; walk to its neighbour
        idx = self.words.index(current) if current in self.words else -1
        return self.words[(idx + 1) % len(self.words)]


def filter_words(names: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if not isinstance(name, str):
            continue
        word = name.strip().lower()
        if not WORD_PATTERN.match(word) or word in seen:
            continue
        seen.add(word)
        result.append(word)
    return result


def fetch_remote_names(url: str, timeout: float) -> List[str]:
    response = httpx.get(url, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    data = response.json()
    return [entry.get('name') for entry in data.get('results', []) if isinstance(entry, dict)]


def load_word_source(config, logger, choose_index=None, fetch=fetch_remote_names) -> WordSource:
    """Build the word source for the app. Never raises: every failure
    degrades to ``FALLBACK_WORDS``."""
    fallback = WordSource(FALLBACK_WORDS, choose_index=choose_index, origin='fallback')
    if not config.get('WORDS_REMOTE_ENABLED', True):
        logger.info(f"[words-fallback] remote disabled count={len(fallback)}")
        return fallback

    url = config.get('WORDS_SOURCE_URL')
    timeout = float(config.get('WORDS_FETCH_TIMEOUT_SEC', 10))
    minimum = int(config.get('WORDS_MIN_COUNT', 50))
    try:
        words = filter_words(fetch(url, timeout))
    except (httpx.HTTPError, ValueError, TypeError, AttributeError) as exc:
        logger.warning(f"[words-fallback] fetch failed url={url} error={exc!r}")
        return fallback

    if len(words) < minimum:
        logger.warning(f"[words-fallback] only {len(words)} usable words (min={minimum})")
        return fallback

    logger.info(f"[words-loaded] count={len(words)} url={url}")
    return WordSource(words, choose_index=choose_index, origin='remote')
