from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from repo_prompt.config import BUILTIN_IGNORES, GITIGNORE_FILE_NAME, IGNORE_FILE_NAME, INCLUDE_FILE_NAME
from repo_prompt.exceptions import ConfigurationError
from repo_prompt.logging import logger
from repo_prompt.patterns import PatternList, normalize_pattern

if TYPE_CHECKING:
    from collections.abc import Iterable


def read_rule_file(path: Path) -> list[str]:
    """Read glob patterns from a `.gptignore`-style rule file.

    One pattern per line. Blank lines and lines starting with `#` are skipped,
    the remaining ones go through `normalize_pattern`.

    Args:
        path (Path): the rule file to read

    Raises:
        ConfigurationError: if the file cannot be read as UTF-8 text

    Returns:
        list[str]: the patterns, in file order
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(message=f"Cannot read rule file {path}: {e}") from e
    patterns: list[str] = []
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        patterns.append(normalize_pattern(s))
    return patterns


def normalize_pattern_list(root: Path, patterns: Iterable[str]) -> PatternList:
    """Turn raw patterns into the immutable list used during a walk.

    Patterns are de-duplicated in order, and every pattern naming an existing
    directory under `root` is rewritten to `pattern/**`.

    Args:
        root (Path): the root the patterns are relative to
        patterns (Iterable[str]): normalized patterns

    Raises:
        PatternCompileError: if one of the patterns cannot be compiled

    Returns:
        PatternList: the compiled list
    """
    out: list[str] = []
    for pat in dict.fromkeys(patterns):
        if pat and (root / pat).is_dir():
            pat = pat.rstrip("/") + "/**"  # noqa: PLW2901
        out.append(pat)
    return PatternList.from_patterns(out)


def _resolve_rule_file(root: Path, explicit: Path | None, default_name: str) -> Path | None:
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigurationError(message=f"Rule file {explicit} does not exist")
        return explicit
    candidate = root / default_name
    return candidate if candidate.is_file() else None


def build_ignore_list(root: Path, ignore_file: Path | None = None, *, use_gitignore: bool = True) -> PatternList:
    """Build the ignore list of a root.

    Reads `ignore_file` (or `<root>/.gptignore`), appends the built-in exclusions
    (version-control metadata and the rule files themselves) and, if requested,
    the entries of `<root>/.gitignore`.

    Args:
        root (Path): the root directory
        ignore_file (Path | None): explicit ignore rule file
        use_gitignore (bool): also honour `<root>/.gitignore`

    Raises:
        ConfigurationError: if an explicit rule file does not exist

    Returns:
        PatternList: the ignore list, never empty
    """
    patterns: list[str] = []
    source = _resolve_rule_file(root, ignore_file, IGNORE_FILE_NAME)
    if source is not None:
        patterns.extend(read_rule_file(source))
    patterns.extend(BUILTIN_IGNORES)
    if use_gitignore:
        gitignore = root / GITIGNORE_FILE_NAME
        if gitignore.is_file():
            patterns.extend(read_rule_file(gitignore))
    ignore = normalize_pattern_list(root, patterns)
    logger.info("Ignore list built", root=str(root), source=str(source or ""), patterns=len(ignore))
    return ignore


def build_include_list(root: Path, include_file: Path | None = None) -> PatternList:
    """Build the include list of a root.

    Args:
        root (Path): the root directory
        include_file (Path | None): explicit include rule file, else `<root>/.gptinclude`

    Raises:
        ConfigurationError: if an explicit rule file does not exist

    Returns:
        PatternList: the include list; empty when there is no rule file
    """
    source = _resolve_rule_file(root, include_file, INCLUDE_FILE_NAME)
    if source is None:
        return PatternList()
    include = normalize_pattern_list(root, read_rule_file(source))
    logger.info("Include list built", root=str(root), source=str(source), patterns=len(include))
    return include
