from __future__ import annotations

import math
from typing import Protocol

import tiktoken

from repo_prompt.config import APPROX_ENCODING, CHARS_PER_TOKEN


class TokenEstimator(Protocol):
    """Maps a text blob to a (possibly approximate) token count."""

    name: str

    def estimate(self, text: str) -> int:
        """Return the token count of `text`, always >= 0."""
        ...


class RatioEstimator:
    """Approximate estimator: character count over an average characters-per-token ratio.

    This is the default strategy. It needs no tokenizer table, so results are
    reproducible everywhere, at the cost of being an approximation.
    """

    name = APPROX_ENCODING

    def __init__(self, chars_per_token: float = CHARS_PER_TOKEN) -> None:
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token)


class TiktokenEstimator:
    """Exact estimator backed by a tiktoken byte-pair encoding (e.g. `cl100k_base`)."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self.name = encoding_name
        self._encoding: tiktoken.Encoding | None = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        """The tiktoken encoding, loaded on first use."""
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.name)
        return self._encoding

    def estimate(self, text: str) -> int:
        # special-token text in source files is counted as plain text
        return len(self.encoding.encode(text, disallowed_special=()))


def get_estimator(name: str = APPROX_ENCODING) -> TokenEstimator:
    """Return the estimator for a configured encoding name.

    Args:
        name (str): `approx` for the ratio estimator, otherwise a tiktoken encoding name

    Returns:
        TokenEstimator: the estimator to use for a whole run
    """
    if not name or name == APPROX_ENCODING:
        return RatioEstimator()
    return TiktokenEstimator(name)
