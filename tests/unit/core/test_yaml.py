"""
Unit tests for core.yaml module.

Tests:
- Loading a YAML file
- Empty file yields an empty dict
- Missing file raises FileNotFoundError
- ${VAR} and ${VAR:-default} expansion
"""

import pytest
import yaml

from sqlpulse.core import load_yaml


class TestLoadYaml:
    """load_yaml behavior."""

    def test_loads_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("interval: 120\ntargets:\n  key: /a/b\n")
        assert load_yaml(str(path)) == {"interval": 120, "targets": {"key": "/a/b"}}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(str(path)) == {}

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_yaml("/nonexistent/config.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml(str(path))


class TestEnvExpansion:
    """Environment references in string values."""

    def test_expands_set_variable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SQLPULSE_TEST_KEY", "/prod/targets")
        path = tmp_path / "c.yaml"
        path.write_text("key: ${SQLPULSE_TEST_KEY}\n")
        assert load_yaml(str(path)) == {"key": "/prod/targets"}

    def test_uses_default_when_unset(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SQLPULSE_TEST_BACKEND", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text('backend: "${SQLPULSE_TEST_BACKEND:-file}"\n')
        assert load_yaml(str(path)) == {"backend": "file"}

    def test_unset_without_default_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SQLPULSE_TEST_MISSING", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text('url: "${SQLPULSE_TEST_MISSING}"\n')
        assert load_yaml(str(path)) == {"url": ""}

    def test_expands_nested_lists(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SQLPULSE_TEST_HOST", "db1")
        path = tmp_path / "c.yaml"
        path.write_text("hosts:\n  - ${SQLPULSE_TEST_HOST}\n  - static\n")
        assert load_yaml(str(path)) == {"hosts": ["db1", "static"]}

    def test_non_strings_untouched(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("port: 5432\nssl: true\n")
        assert load_yaml(str(path)) == {"port": 5432, "ssl": True}
