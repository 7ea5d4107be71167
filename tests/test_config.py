import json

import pytest

from code_slop_guard.config import ConfigError, SlopGuardConfig, load_config, validate_config

RC = {
    "customPatterns": [
        {
            "id": "no_lodash",
            "pattern": "from ['\"]lodash['\"]",
            "message": "Use native array methods",
            "severity": "low",
            "learnMore": "https://youmightnotneed.com/lodash",
        }
    ],
    "severityOverrides": {"magic_css_value": "high"},
    "ignorePaths": ["scripts/**"],
    "blockOnCritical": True,
}


class TestValidateConfig:
    def test_empty(self):
        config = validate_config({})
        assert config.custom_rules == []
        assert config.severity_overrides == {}
        assert config.ignore_paths == []
        assert config.strict is False

    def test_camel_case_keys(self):
        config = validate_config(RC)
        assert [rule.id for rule in config.custom_rules] == ["no_lodash"]
        assert config.custom_rules[0].learn_more == "https://youmightnotneed.com/lodash"
        assert config.severity_overrides == {"magic_css_value": "high"}
        assert config.ignore_paths == ["scripts/**"]
        assert config.strict is True

    def test_snake_case_keys(self):
        config = validate_config({"ignore_paths": ["a/*"], "strict": True, "custom_rules": []})
        assert config.ignore_paths == ["a/*"]
        assert config.strict is True

    def test_passes_through_model(self):
        config = SlopGuardConfig()
        assert validate_config(config) is config

    def test_not_an_object(self):
        with pytest.raises(ConfigError, match="must be an object"):
            validate_config(["customPatterns"])

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="unknownKey"):
            validate_config({"unknownKey": 1})

    def test_bad_custom_rule_rejects_everything(self):
        raw = dict(RC, customPatterns=RC["customPatterns"] + [{"id": "x", "pattern": "[", "message": "m", "severity": "low"}])
        with pytest.raises(ConfigError) as exc_info:
            validate_config(raw)
        assert str(exc_info.value).startswith("customPatterns[1] (id='x').pattern: is not a valid regex")

    def test_bad_override_severity(self):
        with pytest.raises(ConfigError, match="magic_css_value"):
            validate_config({"severityOverrides": {"magic_css_value": "urgent"}})

    def test_ignore_paths_must_be_list(self):
        with pytest.raises(ConfigError, match="ignore"):
            validate_config({"ignorePaths": "scripts/**"})


class TestLoadConfig:
    def test_absent(self, tmp_path):
        assert load_config(tmp_path) is None

    def test_rc_file(self, tmp_path):
        (tmp_path / ".slopguardrc.json").write_text(json.dumps(RC))
        config = load_config(tmp_path)
        assert config is not None
        assert config.strict is True
        assert config.custom_rules[0].id == "no_lodash"

    def test_first_file_wins(self, tmp_path):
        (tmp_path / ".slopguardrc").write_text(json.dumps({"strict": True}))
        (tmp_path / "slopguard.config.json").write_text(json.dumps({"strict": False}))
        assert load_config(tmp_path).strict is True

    def test_invalid_json(self, tmp_path):
        (tmp_path / "slopguard.config.json").write_text("{not json")
        with pytest.raises(ConfigError, match="invalid JSON"):
            load_config(tmp_path)

    def test_invalid_content(self, tmp_path):
        (tmp_path / ".slopguardrc.json").write_text(json.dumps({"severityOverrides": {"any_type_usage": "meh"}}))
        with pytest.raises(ConfigError):
            load_config(tmp_path)
