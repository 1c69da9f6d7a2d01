from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from repo_prompt.config import FileRecord
from repo_prompt.exceptions import WalkError
from repo_prompt.logging import logger
from repo_prompt.patterns import should_process

if TYPE_CHECKING:
    from collections.abc import Iterator

    from repo_prompt.patterns import PatternList
    from repo_prompt.tokens import TokenEstimator

_LINE_COMMENT = re.compile(r"^\s*(//|#|--|<!--|%|;|REM\s)")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/|<!--.*?-->", re.DOTALL)


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
    """
    return path.relative_to(root).as_posix()


def decode_text(data: bytes) -> str | None:
    """Decode file bytes as UTF-8 text.

    Args:
        data (bytes): the raw file contents

    Returns:
        str | None: the decoded text, or None if `data` is not valid UTF-8 (binary content)
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def is_utf8_name(name: str) -> bool:
    """Check that a path decoded from the filesystem is valid UTF-8.

    Undecodable bytes in file names come back from `os.scandir` as lone
    surrogates, which cannot be encoded again.
    """
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def iter_tree(root: Path) -> Iterator[Path]:
    """Yield the regular files under `root` in pre-order, siblings sorted by name.

    Symbolic links are skipped entirely, whether they point at files or
    directories, so links can neither loop nor duplicate content. Only regular
    files are yielded.

    Args:
        root (Path): the directory to walk

    Yields:
        Path: absolute paths of the regular files

    Raises:
        OSError: if a directory cannot be listed
    """
    for entry in _sorted_entries(root):
        if entry.is_symlink():
            continue
        if entry.is_dir(follow_symlinks=False):
            yield from iter_tree(Path(entry.path))
        elif entry.is_file(follow_symlinks=False):
            yield Path(entry.path)


def walk_tree(
    root: Path,
    include: PatternList,
    ignore: PatternList,
    estimator: TokenEstimator,
) -> list[FileRecord]:
    """Walk a root and build a record for every selected text file.

    Files are selected with `should_process` on their root-relative path. Files
    that are not valid UTF-8, by contents or by name, are silently skipped. Any
    I/O failure aborts the walk: no partial result is returned.

    Args:
        root (Path): the root directory
        include (PatternList): include patterns of the root
        ignore (PatternList): ignore patterns of the root
        estimator (TokenEstimator): per-file token estimator

    Raises:
        WalkError: if the root is not a directory, or a directory or file cannot be read

    Returns:
        list[FileRecord]: the records, in walk order
    """
    if not root.is_dir():
        raise WalkError(message=f"Error walking the path {str(root)!r}: not a directory", root=root)

    records: list[FileRecord] = []
    try:
        for path in iter_tree(root):
            rel = relpath(path, root)
            if not is_utf8_name(rel):
                logger.debug("Skipping file with non UTF-8 name", root=str(root), path=ascii(rel))
                continue
            if not should_process(rel, include, ignore):
                continue
            contents = decode_text(path.read_bytes())
            if contents is None:
                logger.debug("Skipping binary file", root=str(root), path=rel)
                continue
            records.append(FileRecord(path=rel, tokens=estimator.estimate(contents), contents=contents))
    except OSError as e:
        raise WalkError(message=f"Error walking the path {str(root)!r}: {e}", root=root) from e

    logger.info("Walked root", root=str(root), files=len(records))
    return records


def scrub_comments(code: str) -> str:
    """Remove code comments from a text, best effort.

    This is a language-unaware heuristic, not a parser:

    1) block comments (`/* ... */`, `<!-- ... -->`) are removed, also across lines,
    2) lines that are whole-line comments (`//`, `#`, `--`, `<!--`, `%`, `;`, `REM `) are dropped,
    3) lines left blank are dropped and trailing newlines are trimmed.

    Applying it to its own output returns that output unchanged.

    Args:
        code (str): the text to clean

    Returns:
        str: the text without comments
    """
    text = code
    while True:
        cleaned = _BLOCK_COMMENT.sub("", text)
        if cleaned == text:
            break
        text = cleaned
    kept = [ln for ln in text.splitlines() if ln.strip() and not _LINE_COMMENT.match(ln)]
    return "\n".join(kept)
