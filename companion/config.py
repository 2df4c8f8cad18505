"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    name: str = "glm"
    model: str = "glm-5"
    api_base: str = "https://open.bigmodel.cn/api/paas/v4"
    api_key_env: str = "ZHIPUAI_API_KEY"
    timeout_seconds: float = 120.0
    max_retries: int = 0

    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "") if self.api_key_env else ""


@dataclass
class AgentConfig:
    max_rounds: int = 5
    tool_timeout: float = 120.0
    stall_timeout: float = 60.0
    system_prompt: str = ""


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class PluginsConfig:
    enabled: bool = False
    allow_distributions: list[str] = field(default_factory=list)
    allow_tools: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class CompanionConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    def set(self, dotpath: str, value: Any) -> None:
        """Set a value using dot notation (e.g. 'llm.model')."""
        _apply_dotpath(self, dotpath, value)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    if not hasattr(obj, parts[-1]):
        raise KeyError(f"Unknown config key: {dotpath}")
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "COMPANION_LLM_NAME":            ("llm.name", str),
    "COMPANION_LLM_MODEL":           ("llm.model", str),
    "COMPANION_LLM_API_BASE":        ("llm.api_base", str),
    "COMPANION_LLM_API_KEY_ENV":     ("llm.api_key_env", str),
    "COMPANION_LLM_TIMEOUT":         ("llm.timeout_seconds", float),
    "COMPANION_LLM_MAX_RETRIES":     ("llm.max_retries", int),
    "COMPANION_AGENT_MAX_ROUNDS":    ("agent.max_rounds", int),
    "COMPANION_AGENT_TOOL_TIMEOUT":  ("agent.tool_timeout", float),
    "COMPANION_AGENT_STALL_TIMEOUT": ("agent.stall_timeout", float),
    "COMPANION_AGENT_SYSTEM_PROMPT": ("agent.system_prompt", str),
    "COMPANION_SERVER_HOST":         ("server.host", str),
    "COMPANION_SERVER_PORT":         ("server.port", int),
    "COMPANION_PLUGINS_ENABLED":     ("plugins.enabled", bool),
    "COMPANION_LOG_LEVEL":           ("logging.level", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def find_config_path() -> Path | None:
    """Find a config file in the standard locations."""
    candidates = [
        Path.cwd() / "companion.yaml",
        Path.cwd() / "companion.yml",
        Path.home() / ".config" / "companion" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> CompanionConfig:
    """
    Build a CompanionConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile and "profiles" in raw:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = CompanionConfig(
        llm=_build_section(LLMConfig, raw.get("llm", {})),
        agent=_build_section(AgentConfig, raw.get("agent", {})),
        server=_build_section(ServerConfig, raw.get("server", {})),
        plugins=_build_section(PluginsConfig, raw.get("plugins", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            if value is not None:
                _apply_dotpath(cfg, dotpath, value)

    return cfg
