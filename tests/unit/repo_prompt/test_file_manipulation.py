import os
import sys
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_prompt.exceptions import WalkError
from repo_prompt.file_manipulation import decode_text, is_utf8_name, iter_tree, relpath, scrub_comments, walk_tree
from repo_prompt.patterns import PatternList
from repo_prompt.tokens import RatioEstimator


def _write(root: Path, rel: str, content: str | bytes) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.unit
def test_relpath_uses_posix_separators(tmp_path: Path) -> None:
    assert relpath(tmp_path / "a" / "b.py", tmp_path) == "a/b.py"


@pytest.mark.unit
def test_decode_text_rejects_invalid_utf8() -> None:
    assert decode_text("héllo".encode()) == "héllo"
    assert decode_text(b"\x89PNG\r\n\x1a\n\xff\xfe") is None


@pytest.mark.unit
def test_iter_tree_is_preorder_and_lexicographic(tmp_path: Path) -> None:
    for rel in ["c.txt", "b/z.txt", "b/a/y.txt", "a.txt", "B.txt"]:
        _write(tmp_path, rel, rel)

    rels = [relpath(p, tmp_path) for p in iter_tree(tmp_path)]

    assert rels == ["B.txt", "a.txt", "b/a/y.txt", "b/z.txt", "c.txt"]


@pytest.mark.unit
def test_walk_tree_builds_records_with_tokens(tmp_path: Path) -> None:
    _write(tmp_path, "file1.txt", "Content of file1")

    records = walk_tree(tmp_path, PatternList(), PatternList(), RatioEstimator())

    assert len(records) == 1
    assert records[0].path == "file1.txt"
    assert records[0].contents == "Content of file1"
    assert records[0].tokens == 5


@pytest.mark.unit
def test_walk_tree_applies_include_and_ignore(tmp_path: Path) -> None:
    _write(tmp_path, "file1.txt", "one")
    _write(tmp_path, "src/main.go", "package main")
    _write(tmp_path, "src/lib/util.go", "package lib")
    _write(tmp_path, "src/lib/util_test.go", "package lib")

    include = PatternList.from_patterns(["src/**"])
    ignore = PatternList.from_patterns(["**/*_test.go"])
    records = walk_tree(tmp_path, include, ignore, RatioEstimator())

    assert [r.path for r in records] == ["src/lib/util.go", "src/main.go"]


@pytest.mark.unit
def test_walk_tree_skips_binary_files(tmp_path: Path) -> None:
    _write(tmp_path, "assets/image.png", b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff")
    _write(tmp_path, "README.md", "# Project")

    records = walk_tree(tmp_path, PatternList(), PatternList(), RatioEstimator())

    assert [r.path for r in records] == ["README.md"]


@pytest.mark.unit
@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts arbitrary bytes in names")
def test_walk_tree_skips_files_with_non_utf8_names(tmp_path: Path) -> None:
    (tmp_path / os.fsdecode(b"caf\xe9.txt")).write_bytes(b"latin-1 name")
    _write(tmp_path, "cafe.txt", "utf-8 name")

    records = walk_tree(tmp_path, PatternList(), PatternList(), RatioEstimator())

    assert [r.path for r in records] == ["cafe.txt"]


@pytest.mark.unit
def test_is_utf8_name_rejects_surrogates() -> None:
    assert is_utf8_name("café.txt") is True
    assert is_utf8_name(os.fsdecode(b"caf\xe9.txt")) is False


@pytest.mark.unit
def test_walk_tree_skips_symlinks(tmp_path: Path) -> None:
    root = tmp_path / "repo"
    _write(root, "storage/test.txt", "stored")
    outside = _write(tmp_path, "outside.txt", "outside")
    (root / "public").mkdir()
    os.symlink(root / "storage", root / "public" / "storage", target_is_directory=True)
    os.symlink(outside, root / "link.txt")
    os.symlink(root, root / "loop", target_is_directory=True)
    os.symlink(tmp_path / "missing", root / "broken")

    records = walk_tree(root, PatternList(), PatternList(), RatioEstimator())

    assert [r.path for r in records] == ["storage/test.txt"]


@pytest.mark.unit
def test_walk_tree_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(WalkError) as exc_info:
        walk_tree(tmp_path / "missing", PatternList(), PatternList(), RatioEstimator())

    assert exc_info.value.root == tmp_path / "missing"


@pytest.mark.unit
def test_walk_tree_read_error_aborts_with_root(tmp_path: Path, mocker: MockerFixture) -> None:
    _write(tmp_path, "a.txt", "a")
    _write(tmp_path, "b.txt", "b")
    mocker.patch.object(Path, "read_bytes", side_effect=PermissionError("denied"))

    with pytest.raises(WalkError, match="denied") as exc_info:
        walk_tree(tmp_path, PatternList(), PatternList(), RatioEstimator())

    assert exc_info.value.root == tmp_path
    assert str(tmp_path) in str(exc_info.value)


@pytest.mark.unit
def test_scrub_comments_removes_line_and_block_comments() -> None:
    code = (
        "// header\n"
        "package main\n"
        "\n"
        "/* block\n"
        "   spanning lines */\n"
        "func main() { /* inline */ }\n"
        "    # shell style\n"
        "<!-- html -->\n"
        "-- sql\n"
        "REM batch\n"
        "; ini\n"
        "% tex\n"
        "x := 1\n"
    )

    assert scrub_comments(code) == "package main\nfunc main() {  }\nx := 1"


@pytest.mark.unit
@pytest.mark.parametrize(
    "code",
    [
        "a /* one\n two */ // three\nb\n",
        "/ /* x */* y */\nkeep\n",
        "<!--\n# not a line\n-->\n  <p>hi</p>\n\n\n",
        "no comments here\n",
        "",
    ],
)
def test_scrub_comments_is_idempotent(code: str) -> None:
    once = scrub_comments(code)

    assert scrub_comments(once) == once
