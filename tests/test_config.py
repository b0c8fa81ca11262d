from pathlib import Path

import pytest

from hookbot import config as config_module
from hookbot.config import (
    ENV_AI_ACCOUNT_ID,
    ENV_AI_API_TOKEN,
    ENV_BOT_TOKEN,
    BotConfig,
    ConfigError,
    load_config,
    load_raw_config,
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (ENV_BOT_TOKEN, ENV_AI_ACCOUNT_ID, ENV_AI_API_TOKEN):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        config_module, "HOME_CONFIG_PATH", tmp_path / "home" / "hookbot.toml"
    )


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadRawConfig:
    def test_load_from_explicit_path(self, tmp_path: Path) -> None:
        config_file = _write(tmp_path / "custom.toml", 'title = "x"')
        raw, path = load_raw_config(config_file)
        assert raw == {"title": "x"}
        assert path == config_file

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Missing config file"):
            load_raw_config(tmp_path / "nonexistent.toml")

    def test_malformed_toml_raises(self, tmp_path: Path) -> None:
        bad_file = _write(tmp_path / "bad.toml", "invalid = [unclosed")
        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_raw_config(bad_file)

    def test_path_exists_but_is_directory(self, tmp_path: Path) -> None:
        dir_path = tmp_path / "config_dir"
        dir_path.mkdir()
        with pytest.raises(ConfigError, match="Failed to read config file"):
            load_raw_config(dir_path)

    def test_discovers_local_file(self, tmp_path: Path) -> None:
        local = _write(tmp_path / "hookbot.toml", "[server]\nport = 9000\n")
        raw, path = load_raw_config()
        assert raw == {"server": {"port": 9000}}
        assert path == tmp_path / "hookbot.toml"
        assert local.exists()

    def test_discovers_home_file(self, tmp_path: Path) -> None:
        home = tmp_path / "home"
        home.mkdir()
        _write(home / "hookbot.toml", "[server]\nport = 9001\n")
        raw, path = load_raw_config()
        assert raw["server"]["port"] == 9001
        assert path == home / "hookbot.toml"

    def test_no_file_is_empty(self) -> None:
        assert load_raw_config() == ({}, None)


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        cfg = _write(
            tmp_path / "hookbot.toml",
            """
[[bots]]
name = "helper"
token = "111:aaa"
kind = "assistant"

[[bots]]
name = "finder"
token = "222:bbb"
kind = "search"

[rate_limit]
max_calls = 20
window_s = 2

[inference]
account_id = "acct"
api_token = "cf-token"
chat_model = "@cf/custom/model"

[server]
host = "127.0.0.1"
port = 9090
""",
        )
        config = load_config(cfg)
        assert config.bots == (
            BotConfig(name="helper", token="111:aaa", kind="assistant"),
            BotConfig(name="finder", token="222:bbb", kind="search"),
        )
        assert config.rate_limit.max_calls == 20
        assert config.rate_limit.window_s == 2.0
        assert config.inference.enabled
        assert config.inference.chat_model == "@cf/custom/model"
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9090
        assert config.path == cfg

    def test_defaults(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "hookbot.toml", '[[bots]]\ntoken = "111:aaa"\n')
        config = load_config(cfg)
        assert config.bots == (BotConfig(name="bot1", token="111:aaa"),)
        assert config.rate_limit.max_calls == 30
        assert config.rate_limit.window_s == 1.0
        assert not config.inference.enabled
        assert config.server.port == 8080

    def test_env_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_BOT_TOKEN, "333:ccc")
        config = load_config()
        assert config.bots == (BotConfig(name="bot1", token="333:ccc"),)
        assert config.path is None

    def test_env_token_overrides_first_bot(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv(ENV_BOT_TOKEN, "444:ddd")
        cfg = _write(
            tmp_path / "hookbot.toml",
            '[[bots]]\nname = "a"\ntoken = "111:aaa"\n'
            '[[bots]]\nname = "b"\ntoken = "222:bbb"\n',
        )
        config = load_config(cfg)
        assert [bot.token for bot in config.bots] == ["444:ddd", "222:bbb"]

    def test_env_inference_secrets(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv(ENV_BOT_TOKEN, "333:ccc")
        monkeypatch.setenv(ENV_AI_ACCOUNT_ID, "acct-env")
        monkeypatch.setenv(ENV_AI_API_TOKEN, "tok-env")
        config = load_config()
        assert config.inference.account_id == "acct-env"
        assert config.inference.api_token == "tok-env"
        assert config.inference.enabled

    def test_missing_token_raises(self) -> None:
        with pytest.raises(ConfigError, match="Missing bot token"):
            load_config()

    def test_blank_token_raises(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "hookbot.toml", '[[bots]]\ntoken = "  "\n')
        with pytest.raises(ConfigError, match=r"bots\[0\]\.token"):
            load_config(cfg)

    def test_unknown_kind_raises(self, tmp_path: Path) -> None:
        cfg = _write(
            tmp_path / "hookbot.toml", '[[bots]]\ntoken = "1:a"\nkind = "weather"\n'
        )
        with pytest.raises(ConfigError, match="kind"):
            load_config(cfg)

    def test_bots_must_be_array(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "hookbot.toml", 'bots = "nope"\n')
        with pytest.raises(ConfigError, match="array of tables"):
            load_config(cfg)

    @pytest.mark.parametrize(
        "table",
        [
            "[rate_limit]\nmax_calls = 0\n",
            "[rate_limit]\nmax_calls = true\n",
            "[rate_limit]\nwindow_s = 0\n",
            '[rate_limit]\nwindow_s = "1s"\n',
        ],
    )
    def test_invalid_rate_limit(self, tmp_path: Path, table: str) -> None:
        cfg = _write(tmp_path / "hookbot.toml", '[[bots]]\ntoken = "1:a"\n' + table)
        with pytest.raises(ConfigError, match="rate_limit"):
            load_config(cfg)

    def test_invalid_port(self, tmp_path: Path) -> None:
        cfg = _write(
            tmp_path / "hookbot.toml", '[[bots]]\ntoken = "1:a"\n[server]\nport = "80"\n'
        )
        with pytest.raises(ConfigError, match="server.port"):
            load_config(cfg)

    def test_table_must_be_table(self, tmp_path: Path) -> None:
        cfg = _write(tmp_path / "hookbot.toml", 'rate_limit = 5\n[[bots]]\ntoken = "1:a"\n')
        with pytest.raises(ConfigError, match="expected a table"):
            load_config(cfg)
