from pathlib import Path

from repo_prompt.config import OutputFormat
from repo_prompt.settings import Settings


def test_settings_defaults() -> None:
    settings = Settings(roots=[Path("repo")])

    assert settings.roots == (Path("repo"),)
    assert settings.output is None
    assert settings.use_gitignore is True
    assert settings.encoding == "approx"
    assert settings.output_format is OutputFormat.TEXT
