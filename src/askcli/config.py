"""Settings for askcli.

Settings come from ~/.askcli/config.yaml so you don't need to edit the
script for every machine. Environment variables override the file:

    ASKCLI_API_KEY / OPENAI_API_KEY   API key
    ASKCLI_MODEL                      model name
    ASKCLI_SESSION_DIR                where session files live
    EDITOR                            transcript viewer
"""

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from askcli.errors import ConfigurationError

DEFAULT_PREAMBLE = (
    "You are ChatConcise, a very advanced LLM designed for experienced users. "
    "As ChatConcise you oblige to adhere to the following directives UNLESS "
    "overriden by the user:\n"
    "Be concise, proactive, helpful and efficient. Do not say anything more than "
    "what needed, but also, DON'T BE LAZY. Provide ONLY code when an "
    "implementation is needed. DO NOT USE MARKDOWN."
)


class Settings(BaseModel):
    """Runtime settings for the `ask` command."""

    api_key: str = ""
    model: str = "gpt-4o"
    host: str = "api.openai.com"
    endpoint: str = "/v1/chat/completions"
    max_tokens: int = 2048
    temperature: float = 0.6
    vision_detail: str = "high"  # high, low
    user: str = "super_user"
    timeout: float = 120.0

    session_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    session_prefix: str = "ask_transcript-"
    preamble: str = DEFAULT_PREAMBLE
    # These models reject max_tokens/temperature and system messages
    reasoning_model_prefixes: list[str] = Field(default_factory=lambda: ["o1-"])

    clipboard: str = "auto"  # auto, xorg, wayland, none
    editor: str = "more"
    preview_width: int = 64

    @property
    def url(self) -> str:
        return f"https://{self.host}{self.endpoint}"

    def is_reasoning_model(self, model: str | None = None) -> bool:
        name = model or self.model
        return any(name.startswith(prefix) for prefix in self.reasoning_model_prefixes)

    @property
    def preamble_role(self) -> str:
        return "user" if self.is_reasoning_model() else "system"


def get_config_dir() -> Path:
    """Get the askcli config directory."""
    return Path.home() / ".askcli"


def get_config_path() -> Path:
    """Get the config file path."""
    return get_config_dir() / "config.yaml"


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load the raw YAML configuration, or an empty dict.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config file {config_path}: expected a mapping, got {type(data).__name__}")
    bad_keys = [k for k in data if not isinstance(k, str)]
    if bad_keys:
        raise ConfigurationError(f"Invalid config file {config_path}: non-string key {bad_keys[0]!r}")
    return data


def save_config(config: dict[str, Any], path: Path | None = None) -> None:
    """Save configuration to file."""
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False)
    # The file may hold an API key
    config_path.chmod(0o600)


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    api_key = environ.get("ASKCLI_API_KEY") or environ.get("OPENAI_API_KEY")
    if api_key:
        overrides["api_key"] = api_key
    if environ.get("ASKCLI_MODEL"):
        overrides["model"] = environ["ASKCLI_MODEL"]
    if environ.get("ASKCLI_SESSION_DIR"):
        overrides["session_dir"] = environ["ASKCLI_SESSION_DIR"]
    if environ.get("EDITOR"):
        overrides["editor"] = environ["EDITOR"]
    return overrides


def get_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build settings from the config file plus environment overrides."""
    data = load_config(path)
    data.update(_env_overrides(dict(os.environ) if environ is None else environ))
    try:
        return Settings(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConfigurationError(f"Invalid setting in {path or get_config_path()}: {problems}") from e
