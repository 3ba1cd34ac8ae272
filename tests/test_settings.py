from pathlib import Path

import pytest

from plan_atlas.settings import Settings, SettingsError, load_settings


def test_defaults_without_file():
    settings = load_settings()

    assert settings == Settings()
    assert settings.collapse_modules is True
    assert settings.log_level == "INFO"


def test_yaml_settings_file(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "atlas.yaml"
    path.write_text(
        "name: network\n"
        "output_dir: build/assets\n"
        "collapse_modules: false\n"
        "log_level: debug\n"
        "unknown_key: ignored\n",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.name == "network"
    assert settings.output_dir == Path("build/assets")
    assert settings.collapse_modules is False
    assert settings.log_level == "DEBUG"


def test_json_settings_file(tmp_path):
    path = tmp_path / "atlas.json"
    path.write_text('{"terraform_bin": "tofu", "sensitive_placeholder": "***"}', encoding="utf-8")

    settings = load_settings(path)

    assert settings.terraform_bin == "tofu"
    assert settings.sensitive_placeholder == "***"


def test_merged_ignores_none_values():
    base = Settings(name="network")

    merged = base.merged({"name": None, "working_dir": "infra", "log_level": None})

    assert merged.name == "network"
    assert merged.working_dir == Path("infra")
    assert merged.log_level == "INFO"


def test_invalid_log_level_raises():
    with pytest.raises(SettingsError):
        Settings().merged({"log_level": "chatty"})


def test_missing_file_raises(tmp_path):
    with pytest.raises(SettingsError):
        load_settings(tmp_path / "absent.yaml")


def test_non_mapping_file_raises(tmp_path):
    path = tmp_path / "atlas.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(path)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("false", False), ("No", False), ("off", False), ("0", False), ("true", True), ("yes", True), (1, True)],
)
def test_boolean_settings_accept_common_spellings(value, expected):
    assert Settings().merged({"collapse_modules": value}).collapse_modules is expected


def test_invalid_boolean_setting_raises():
    with pytest.raises(SettingsError):
        Settings().merged({"collapse_modules": "maybe"})
