from pathlib import Path

import pytest

from revdiff.config import Config, ConfigError, load_config


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path, environ={})
    assert config.source is None
    assert config.repo_path == tmp_path.resolve()
    assert config.default_branch == "main"
    assert config.revision_limit == 100
    assert config.diff_flags() == ["-U3", "-M"]


def test_file_is_found_from_subdirectory(tmp_path):
    (tmp_path / ".revdiff.toml").write_text('default_branch = "develop"\ncontext-lines = 1\ndetect_renames = false\n')
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    config = load_config(nested, environ={})
    assert config.source == (tmp_path / ".revdiff.toml").resolve()
    assert config.default_branch == "develop"
    assert config.diff_flags() == ["-U1"]


def test_pyproject_table(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[tool.revdiff]\nrevision_limit = 20\nrepo_path = "checkout"\n')
    config = load_config(tmp_path, environ={})
    assert config.revision_limit == 20
    assert config.repo_path == (tmp_path / "checkout").resolve()


def test_pyproject_without_table_is_skipped(tmp_path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "other"\n')
    assert load_config(tmp_path, environ={}).source is None


def test_environment_overrides_file(tmp_path):
    (tmp_path / ".revdiff.toml").write_text('revision_limit = 20\nlog_level = "debug"\n')
    config = load_config(tmp_path, environ={"REVDIFF_REVISION_LIMIT": "5", "REVDIFF_DETECT_RENAMES": "no"})
    assert config.revision_limit == 5
    assert config.detect_renames is False
    assert config.log_level == "DEBUG"


def test_unknown_key(tmp_path):
    (tmp_path / ".revdiff.toml").write_text('colour = "always"\n')
    with pytest.raises(ConfigError, match="colour"):
        load_config(tmp_path, environ={})


def test_unknown_environment_key(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={"REVDIFF_NOPE": "1"})


@pytest.mark.parametrize("line", [
    'revision_limit = "many"',
    'revision_limit = true',
    'detect_renames = "sometimes"',
    'default_branch = 3',
    'revision_limit = 0',
    'log_level = "loud"',
])
def test_bad_values(tmp_path, line):
    (tmp_path / ".revdiff.toml").write_text(line + "\n")
    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_invalid_toml(tmp_path):
    (tmp_path / ".revdiff.toml").write_text("this is = = not toml\n")
    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path, environ={})


def test_config_accepts_string_path():
    assert Config(repo_path="somewhere").repo_path == Path("somewhere")
