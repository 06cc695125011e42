import pytest

from stylens.stylens_datatypes import SettingsError
from stylens.stylens_settings import Settings, load_settings, DEFAULT_MODULE_NAMES


def test_defaults():
    settings = Settings()
    assert settings.hover and settings.suggestions
    assert not settings.use_rem_for_font_size
    assert settings.module_names == DEFAULT_MODULE_NAMES


def test_from_mapping_accepts_editor_keys():
    settings = Settings.from_mapping({
        "hover": False,
        "useRemForFontSize": True,
        "aliasModuleNames": ["@acme/styles"],
        "colorDecorators": True,
    })
    assert settings.hover is False
    assert settings.use_rem_for_font_size is True
    assert settings.module_names == DEFAULT_MODULE_NAMES + ("@acme/styles",)


def test_from_mapping_accepts_field_names():
    assert Settings.from_mapping({"use_rem_for_font_size": True}).use_rem_for_font_size


@pytest.mark.parametrize("data", [
    {"hover": "yes"},
    {"aliasModuleNames": "@acme/styles"},
    {"aliasModuleNames": [1]},
    ["hover"],
], ids=["bool_as_string", "alias_string", "alias_not_strings", "not_a_mapping"])
def test_from_mapping_rejects_bad_values(data):
    with pytest.raises(SettingsError):
        Settings.from_mapping(data)


def test_load_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("stylex:\n  suggestions: false\n  aliasModuleNames:\n    - '@acme/styles'\n")
    settings = load_settings(str(path))
    assert settings.suggestions is False
    assert "@acme/styles" in settings.module_names


def test_load_toml(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("hover = false\nuseRemForFontSize = true\n")
    settings = load_settings(str(path))
    assert settings.hover is False
    assert settings.use_rem_for_font_size is True


def test_load_empty_yaml(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_settings(str(path)) == Settings()


@pytest.mark.parametrize("name, content", [
    ("bad.toml", "hover = "),
    ("bad.yaml", "hover: [unclosed"),
    ("settings.json", "{}"),
])
def test_load_errors(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    with pytest.raises(SettingsError):
        load_settings(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(SettingsError):
        load_settings(str(tmp_path / "nope.yaml"))
