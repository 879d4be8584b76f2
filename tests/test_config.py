import pytest

from mumble.client.config import ClientConfig, load_config
from mumble.shared.errors import ConfigError


def test_defaults_without_file_or_env():
    config = load_config(env={})

    assert config == ClientConfig()
    assert config.port == 64738
    assert config.handshake_timeout == 30.0


def test_yaml_file(tmp_path):
    path = tmp_path / "mumble.yaml"
    path.write_text(
        "mumble:\n"
        "  host: voice.example.org\n"
        "  port: 50000\n"
        "  username: alice\n"
        "  handshake_timeout: 5\n"
        "  secure: true\n"
        "  log_level: debug\n"
    )

    config = load_config(path, env={})

    assert config.host == "voice.example.org"
    assert config.port == 50000
    assert config.username == "alice"
    assert config.handshake_timeout == 5.0
    assert config.secure is True
    assert config.log_level == "DEBUG"


def test_flat_yaml_and_null_timeout(tmp_path):
    path = tmp_path / "mumble.yaml"
    path.write_text("host: a.example\nhandshake_timeout: null\n")

    config = load_config(path, env={})

    assert config.host == "a.example"
    assert config.handshake_timeout is None


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "mumble.yaml"
    path.write_text("host: from-file\nusername: file-user\n")

    config = load_config(path, env={"MUMBLE_HOST": "from-env", "MUMBLE_PORT": "1234", "MUMBLE_PASSWORD": "pw"})

    assert config.host == "from-env"
    assert config.port == 1234
    assert config.username == "file-user"
    assert config.password == "pw"


@pytest.mark.parametrize("content", [
    "- just\n- a list\n",
    "host: [unclosed\n",
    "colour: blue\n",
    "port: not-a-number\n",
    "port: 70000\n",
    "secure: maybe\n",
])
def test_invalid_files(tmp_path, content):
    path = tmp_path / "mumble.yaml"
    path.write_text(content)

    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml", env={})


def test_invalid_env_value():
    with pytest.raises(ConfigError):
        load_config(env={"MUMBLE_TIMEOUT": "soon"})
