"""Unit tests for loading connection configs from YAML."""

import pytest

from sqlio import from_yaml
from sqlio.core.exceptions import ConfigurationError
from sqlio.models.loader import load_connection_config


def write_config(temp_dir, content: str) -> str:
    path = temp_dir / "connection.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestLoadConnectionConfig:
    """Tests for load_connection_config."""

    def test_top_level_fields(self, temp_dir):
        path = write_config(
            temp_dir,
            """
driver_class_name: postgresql+psycopg2
url: postgresql://db.example.com/app
username: app
password: secret
""",
        )

        config = load_connection_config(path)

        assert config.driver_class_name == "postgresql+psycopg2"
        assert config.url == "postgresql://db.example.com/app"
        assert config.username == "app"
        assert config.password.get_secret_value() == "secret"

    def test_connection_section(self, temp_dir, sqlite_url):
        path = write_config(
            temp_dir,
            f"""
connection:
  driver_class_name: sqlite
  url: {sqlite_url}
""",
        )

        config = load_connection_config(path)

        assert config.url == sqlite_url
        assert config.username is None

    def test_templates_rendered(self, temp_dir, monkeypatch):
        monkeypatch.setenv("SQLIO_TEST_PASSWORD", "from-env")
        path = write_config(
            temp_dir,
            """
driver_class_name: postgresql+psycopg2
url: "postgresql://db.example.com/{{ var('database') }}"
username: app
password: "{{ env_var('SQLIO_TEST_PASSWORD') }}"
""",
        )

        config = load_connection_config(path, cli_vars={"database": "analytics"})

        assert config.url == "postgresql://db.example.com/analytics"
        assert config.password.get_secret_value() == "from-env"

    def test_from_yaml_builds_usable_config(self, temp_dir, sqlite_url):
        path = write_config(temp_dir, f"driver_class_name: sqlite\nurl: {sqlite_url}\n")

        connection = from_yaml(path).acquire()
        connection.close()

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            load_connection_config(str(temp_dir / "nope.yaml"))

    def test_invalid_yaml(self, temp_dir):
        path = write_config(temp_dir, "url: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_connection_config(path)

    def test_not_a_mapping(self, temp_dir):
        path = write_config(temp_dir, "- sqlite\n- sqlite:///x.db\n")

        with pytest.raises(ConfigurationError):
            load_connection_config(path)

    def test_unknown_fields(self, temp_dir):
        path = write_config(
            temp_dir, "driver_class_name: sqlite\nurl: sqlite:///x.db\npool_size: 5\n"
        )

        with pytest.raises(ConfigurationError) as exc_info:
            load_connection_config(path)

        assert exc_info.value.context["unknown"] == ["pool_size"]

    def test_missing_url(self, temp_dir):
        path = write_config(temp_dir, "driver_class_name: sqlite\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_connection_config(path)

        assert exc_info.value.context["missing"] == ["url"]

    def test_wrong_field_type(self, temp_dir):
        path = write_config(
            temp_dir, "driver_class_name: sqlite\nurl: sqlite:///x.db\nusername: [a, b]\n"
        )

        with pytest.raises(ConfigurationError, match="validation failed"):
            load_connection_config(path)
