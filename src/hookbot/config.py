from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Environment variable names for secrets
ENV_BOT_TOKEN = "HOOKBOT_BOT_TOKEN"
ENV_AI_ACCOUNT_ID = "HOOKBOT_AI_ACCOUNT_ID"
ENV_AI_API_TOKEN = "HOOKBOT_AI_API_TOKEN"

LOCAL_CONFIG_NAME = Path("hookbot.toml")
HOME_CONFIG_PATH = Path.home() / ".hookbot" / "hookbot.toml"

DEFAULT_CHAT_MODEL = "@cf/meta/llama-3-8b-instruct"
DEFAULT_TRANSLATE_MODEL = "@cf/meta/m2m100-1.2b"

BOT_KINDS = frozenset({"assistant", "search", "translator"})


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class BotConfig:
    name: str
    token: str
    kind: str = "assistant"


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    max_calls: int = 30
    window_s: float = 1.0


@dataclass(frozen=True, slots=True)
class InferenceConfig:
    account_id: str | None = None
    api_token: str | None = None
    chat_model: str = DEFAULT_CHAT_MODEL
    translate_model: str = DEFAULT_TRANSLATE_MODEL

    @property
    def enabled(self) -> bool:
        return bool(self.account_id and self.api_token)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True, slots=True)
class HookbotConfig:
    bots: tuple[BotConfig, ...]
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    path: Path | None = None


def _config_candidates() -> list[Path]:
    candidates = [Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]
    if candidates[0] == candidates[1]:
        return [candidates[0]]
    return candidates


def _read_config(cfg_path: Path) -> dict:
    try:
        raw = cfg_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None


def load_raw_config(path: str | Path | None = None) -> tuple[dict, Path | None]:
    if path:
        cfg_path = Path(path).expanduser()
        return _read_config(cfg_path), cfg_path

    for candidate in _config_candidates():
        if candidate.is_file():
            return _read_config(candidate), candidate

    # Environment-only setups are allowed as long as a token is present.
    return {}, None


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    if value and value.strip():
        return value.strip()
    return None


def _table(config: dict, key: str, where: str) -> dict[str, Any]:
    value = config.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid `{key}` in {where}; expected a table.")
    return value


def _non_empty_str(value: Any, *, key: str, where: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"Invalid `{key}` in {where}; expected a non-empty string."
        )
    return value.strip()


def _parse_bots(config: dict, where: str) -> tuple[BotConfig, ...]:
    raw_bots = config.get("bots", [])
    if not isinstance(raw_bots, list):
        raise ConfigError(f"Invalid `bots` in {where}; expected an array of tables.")
    bots: list[BotConfig] = []
    for index, item in enumerate(raw_bots):
        if not isinstance(item, dict):
            raise ConfigError(f"Invalid `bots[{index}]` in {where}; expected a table.")
        name = item.get("name", f"bot{index + 1}")
        token = item.get("token")
        if index == 0 and (env_token := _env(ENV_BOT_TOKEN)):
            token = env_token
        kind = item.get("kind", "assistant")
        if kind not in BOT_KINDS:
            raise ConfigError(
                f"Invalid `bots[{index}].kind` in {where}; "
                f"expected one of {', '.join(sorted(BOT_KINDS))}."
            )
        bots.append(
            BotConfig(
                name=_non_empty_str(name, key=f"bots[{index}].name", where=where),
                token=_non_empty_str(token, key=f"bots[{index}].token", where=where),
                kind=kind,
            )
        )
    if not bots and (env_token := _env(ENV_BOT_TOKEN)):
        bots.append(BotConfig(name="bot1", token=env_token))
    if not bots:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add a `[[bots]]` table to {where}."
        )
    return tuple(bots)


def _parse_rate_limit(config: dict, where: str) -> RateLimitConfig:
    table = _table(config, "rate_limit", where)
    max_calls = table.get("max_calls", 30)
    window_s = table.get("window_s", 1.0)
    if isinstance(max_calls, bool) or not isinstance(max_calls, int) or max_calls < 1:
        raise ConfigError(
            f"Invalid `rate_limit.max_calls` in {where}; expected a positive integer."
        )
    if isinstance(window_s, bool) or not isinstance(window_s, (int, float)) or window_s <= 0:
        raise ConfigError(
            f"Invalid `rate_limit.window_s` in {where}; expected a positive number."
        )
    return RateLimitConfig(max_calls=max_calls, window_s=float(window_s))


def _parse_inference(config: dict, where: str) -> InferenceConfig:
    table = _table(config, "inference", where)
    return InferenceConfig(
        account_id=_env(ENV_AI_ACCOUNT_ID) or table.get("account_id"),
        api_token=_env(ENV_AI_API_TOKEN) or table.get("api_token"),
        chat_model=table.get("chat_model", DEFAULT_CHAT_MODEL),
        translate_model=table.get("translate_model", DEFAULT_TRANSLATE_MODEL),
    )


def _parse_server(config: dict, where: str) -> ServerConfig:
    table = _table(config, "server", where)
    port = table.get("port", 8080)
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigError(f"Invalid `server.port` in {where}; expected an integer.")
    return ServerConfig(host=table.get("host", "0.0.0.0"), port=port)


def load_config(path: str | Path | None = None) -> HookbotConfig:
    """Load the TOML config, letting environment variables override secrets."""
    raw, cfg_path = load_raw_config(path)
    where = str(cfg_path) if cfg_path is not None else "the environment"
    return HookbotConfig(
        bots=_parse_bots(raw, where),
        rate_limit=_parse_rate_limit(raw, where),
        inference=_parse_inference(raw, where),
        server=_parse_server(raw, where),
        path=cfg_path,
    )
