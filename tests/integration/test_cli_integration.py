from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from repo_prompt import pipeline
from repo_prompt.exceptions import ConfigurationError, WalkError
from repo_prompt.settings import Settings
from repo_prompt.tokens import RatioEstimator


def _write(root: Path, rel: str, content: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.mark.integration
def test_collect_document_builds_lists_per_root(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first, ".gptignore", "*.log\n")
    _write(first, "app.log", "noise")
    _write(first, "app.py", "print('first')")
    _write(second, "app.log", "kept, the ignore list is per root")

    document = pipeline.collect_document(Settings(roots=[first, second]), RatioEstimator())

    assert [f.path for f in document.files] == ["app.py", "app.log"]
    assert document.file_count == 2
    assert document.total_tokens == 0


@pytest.mark.integration
def test_collect_document_aborts_on_failing_root(tmp_path: Path, mocker: MockerFixture) -> None:
    good = tmp_path / "good"
    _write(good, "a.txt", "a")
    walk = mocker.spy(pipeline, "walk_tree")

    with pytest.raises(WalkError):
        pipeline.collect_document(Settings(roots=[good, tmp_path / "missing"]), RatioEstimator())

    assert walk.call_count == 2


@pytest.mark.integration
def test_collect_document_follows_symlinked_root(tmp_path: Path) -> None:
    real = tmp_path / "real"
    _write(real, "main.go", "package main")
    link = tmp_path / "link"
    link.symlink_to(real, target_is_directory=True)

    document = pipeline.collect_document(Settings(roots=[link]), RatioEstimator())

    assert [f.path for f in document.files] == ["main.go"]


@pytest.mark.integration
def test_run_scrubs_before_measuring(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path, "main.go", "// a very long comment that only costs tokens\npackage main\n")

    scrubbed = pipeline.run(Settings(roots=[tmp_path], scrub_comments=True, debug=True))
    raw = pipeline.run(Settings(roots=[tmp_path], debug=True))

    assert scrubbed.files[0].contents == "package main"
    assert scrubbed.total_tokens < raw.total_tokens
    assert capsys.readouterr().out == ""


@pytest.mark.integration
def test_run_prints_estimate_line(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path, "a.txt", "a")

    document = pipeline.run(Settings(roots=[tmp_path], debug=True, estimate=True))

    assert capsys.readouterr().out == f"Estimated number of tokens: {document.total_tokens}\n"


@pytest.mark.integration
def test_run_missing_preamble_is_configuration_error(tmp_path: Path, mocker: MockerFixture) -> None:
    walk = mocker.patch.object(pipeline, "walk_tree")

    with pytest.raises(ConfigurationError, match="preamble"):
        pipeline.run(Settings(roots=[tmp_path], preamble=tmp_path / "missing.txt"))

    walk.assert_not_called()


@pytest.mark.integration
def test_run_uses_configured_estimator(tmp_path: Path, mocker: MockerFixture) -> None:
    _write(tmp_path, "a.txt", "a")
    estimator = mocker.Mock()
    estimator.estimate.return_value = 7
    get_estimator = mocker.patch.object(pipeline, "get_estimator", return_value=estimator)

    document = pipeline.run(Settings(roots=[tmp_path], debug=True, encoding="cl100k_base"))

    get_estimator.assert_called_once_with("cl100k_base")
    assert document.total_tokens == 7
    assert document.files[0].tokens == 7
