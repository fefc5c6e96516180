import pytest

from needs_core.engine import NeedsConfig


def test_defaults() -> None:
    config = NeedsConfig()
    assert config.strict is True
    assert config.on_error is None


def test_from_yaml(tmp_path) -> None:
    path = tmp_path / "needs.yaml"
    path.write_text("strict: false\n", encoding="utf-8")

    def hook(err):
        return err

    config = NeedsConfig.from_yaml(path, on_error=hook)
    assert config.strict is False
    assert config.on_error is hook


def test_from_yaml_empty_file(tmp_path) -> None:
    path = tmp_path / "needs.yaml"
    path.write_text("", encoding="utf-8")
    assert NeedsConfig.from_yaml(path).strict is True


def test_from_yaml_unknown_key(tmp_path) -> None:
    path = tmp_path / "needs.yaml"
    path.write_text("strict: true\nverbose: true\n", encoding="utf-8")
    with pytest.raises(TypeError):
        NeedsConfig.from_yaml(path)


@pytest.mark.parametrize(
    "value,expected",
    [("0", False), ("false", False), ("no", False), ("1", True), ("yes", True), ("TRUE", True), (" on ", True)],
)
def test_from_env(monkeypatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("NEEDS_STRICT", value)
    assert NeedsConfig.from_env().strict is expected


def test_from_env_default(monkeypatch) -> None:
    monkeypatch.delenv("NEEDS_STRICT", raising=False)
    assert NeedsConfig.from_env().strict is True
    assert NeedsConfig.from_env(strict=False).strict is False
