"""
Text processing for filter-match indexes.

Turns a field's raw string value into the ordered list of terms fed to a
KeyedBloomFilter. Configured from the index schema:

    {
        "tokenizer": {"kind": "standard"},
        "tokenFilters": [{"kind": "downcase"}, {"kind": "ngram", "tokenLength": 3}]
    }
"""
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from vaultsearch.errors import InvalidSchemaError

TokenFilter = Callable[[List[str]], List[str]]

_STANDARD_SPLIT = re.compile(r"\W+")


def standard_tokenizer(text: str) -> List[str]:
    """Split on runs of non-word characters."""
    return [t for t in _STANDARD_SPLIT.split(text) if t]


def whitespace_tokenizer(text: str) -> List[str]:
    """Split on whitespace only."""
    return text.split()


def ngrams(token: str, length: int) -> List[str]:
    """
    All substrings of the given length, in order.

    Tokens shorter than length are returned whole so they stay searchable.
    """
    if len(token) <= length:
        return [token]
    return [token[i:i + length] for i in range(len(token) - length + 1)]


TOKENIZERS: Dict[str, Callable[[str], List[str]]] = {
    "standard": standard_tokenizer,
    "whitespace": whitespace_tokenizer,
}


class TextProcessor:
    """
    Tokenizer followed by a chain of token filters.

    Supported token filters: downcase, upcase, ngram (requires tokenLength).
    """

    DEFAULT_TOKENIZER = {"kind": "standard"}
    DEFAULT_TOKEN_FILTERS = ({"kind": "downcase"},)

    def __init__(
        self,
        tokenizer: Optional[Mapping] = None,
        token_filters: Optional[Sequence[Mapping]] = None,
    ):
        """
        Build a text processor.

        Args:
            tokenizer: Tokenizer settings, e.g. {"kind": "standard"}
            token_filters: Token filter settings, applied in order

        Raises:
            InvalidSchemaError: unknown tokenizer or token filter
        """
        tokenizer = tokenizer or self.DEFAULT_TOKENIZER
        if token_filters is None:
            token_filters = self.DEFAULT_TOKEN_FILTERS

        kind = tokenizer.get("kind")
        if kind not in TOKENIZERS:
            raise InvalidSchemaError(f"unknown tokenizer kind {kind!r}")
        self._tokenize = TOKENIZERS[kind]
        self._filters = [_build_token_filter(f) for f in token_filters]

    @classmethod
    def from_settings(cls, settings: Mapping) -> "TextProcessor":
        """Build from index settings using the schema key names."""
        return cls(
            tokenizer=settings.get("tokenizer"),
            token_filters=settings.get("tokenFilters"),
        )

    def perform(self, text: str) -> List[str]:
        """Tokenize text and run it through the token filters."""
        tokens = self._tokenize(text)
        for token_filter in self._filters:
            tokens = token_filter(tokens)
        return tokens


def _build_token_filter(settings: Mapping) -> TokenFilter:
    kind = settings.get("kind")

    if kind == "downcase":
        return lambda tokens: [t.lower() for t in tokens]

    if kind == "upcase":
        return lambda tokens: [t.upper() for t in tokens]

    if kind == "ngram":
        length = settings.get("tokenLength")
        if not isinstance(length, int) or isinstance(length, bool) or length < 1:
            raise InvalidSchemaError(
                f"ngram tokenLength must be a positive integer (got {length!r})"
            )
        return lambda tokens: [g for t in tokens for g in ngrams(t, length)]

    raise InvalidSchemaError(f"unknown token filter kind {kind!r}")
