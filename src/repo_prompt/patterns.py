from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

from repo_prompt.exceptions import PatternCompileError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


def to_posix(path: str) -> str:
    """Convert a host path string to forward-slash separators.

    Args:
        path (str): the path to convert

    Returns:
        str: `path` with every backslash replaced by a slash
    """
    return path.replace("\\", "/")


def normalize_pattern(pattern: str) -> str:
    """Normalize a glob pattern without looking at the filesystem.

    - surrounding whitespace is removed,
    - backslashes become slashes,
    - a trailing `/` means "the directory and everything beneath" and becomes `/**`,
    - a leading `/` is stripped, patterns are always root-relative.

    Args:
        pattern (str): the raw pattern

    Returns:
        str: the normalized pattern
    """
    pat = to_posix(pattern.strip())
    if pat.endswith("/"):
        pat += "**"
    return pat.removeprefix("/")


def translate_glob(pattern: str) -> str:
    """Translate a normalized glob pattern into a regular expression source.

    The dialect uses `/` as the only separator:

    - `*` matches any run of characters within one segment,
    - `**` matches any run of characters, separators included; as a whole
      segment (`**/x`, `a/**/b`) it also matches zero segments,
    - `?` matches one character other than `/`,
    - `[abc]`, `[a-z]` and `[!abc]` match one character of a class,
    - `{a,b}` matches any of the comma separated alternatives, which may nest.

    Every other character matches itself.

    Args:
        pattern (str): the normalized pattern

    Raises:
        ValueError: on an empty or unterminated `[` class, or an unterminated `{` group

    Returns:
        str: the expression source, anchored at the end
    """
    out: list[str] = []
    depth = 0
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith("**", i):
            whole_segment = (i == 0 or pattern[i - 1] == "/") and pattern.startswith("/", i + 2)
            out.append("(?:.*/)?" if whole_segment else ".*")
            i += 3 if whole_segment else 2
            continue
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            start = i + 2 if pattern.startswith("[!", i) else i + 1
            end = pattern.find("]", start)
            if end <= start:
                raise ValueError(f"unterminated character class at position {i}")
            body = "".join("-" if ch == "-" else re.escape(ch) for ch in pattern[start:end])
            out.append(f"[{'^' if start == i + 2 else ''}{body}]")
            i = end
        elif c == "{":
            depth += 1
            out.append("(?:")
        elif c == "," and depth:
            out.append("|")
        elif c == "}" and depth:
            depth -= 1
            out.append(")")
        else:
            out.append(re.escape(c))
        i += 1
    if depth:
        raise ValueError("unterminated '{' group")
    return "(?s:" + "".join(out) + r")\Z"


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a normalized glob pattern into a regular expression.

    See `translate_glob` for the dialect. Dot files are matched like any other
    name and no case folding is applied.

    Args:
        pattern (str): the normalized pattern

    Raises:
        PatternCompileError: if the pattern is malformed, e.g. `src/[abc`,
            `*.{png,jpg` or a reversed range such as `[z-a]`

    Returns:
        re.Pattern[str]: the compiled expression, anchored at both ends
    """
    try:
        return re.compile(translate_glob(pattern))
    except (re.error, ValueError) as e:
        raise PatternCompileError(message=f"Invalid glob pattern {pattern!r}: {e}", pattern=pattern) from e


def matches(pattern: str, path: str) -> bool:
    """Check whether a relative path matches a glob pattern.

    Args:
        pattern (str): the glob pattern, normalized on the fly
        path (str): the candidate path, relative to its root

    Returns:
        bool: True if `path` matches `pattern`
    """
    return compile_pattern(normalize_pattern(pattern)).match(to_posix(path)) is not None


@dataclass(frozen=True)
class PatternList:
    """An ordered, de-duplicated and immutable list of compiled glob patterns."""

    patterns: tuple[str, ...] = ()
    compiled: tuple[re.Pattern[str], ...] = field(default=(), repr=False, compare=False)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> PatternList:
        """Build a list from already normalized patterns, compiling each one.

        Duplicates are dropped, keeping the first occurrence.

        Raises:
            PatternCompileError: on the first pattern that does not compile
        """
        unique = tuple(dict.fromkeys(p for p in patterns if p))
        return cls(patterns=unique, compiled=tuple(compile_pattern(p) for p in unique))

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def match_any(self, path: str) -> bool:
        """Check if a relative path matches any pattern of the list."""
        posix = to_posix(path)
        return any(rx.match(posix) is not None for rx in self.compiled)


def should_process(path: str, include: PatternList, ignore: PatternList) -> bool:
    """Decide whether a relative file path is selected.

    A non-empty include list narrows the candidates to the paths it matches.
    The ignore list is then applied regardless, so ignore always wins.

    Args:
        path (str): the path relative to its root
        include (PatternList): include patterns, empty for "everything"
        ignore (PatternList): ignore patterns

    Returns:
        bool: True if the file should be exported
    """
    if include and not include.match_any(path):
        return False
    return not ignore.match_any(path)
