"""
Configuration management for Swarm Forge.
Supports ~/.swarm-forge config file for gateway credentials, models and dispatch policy.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

EXECUTION_MODES = ("sequential", "staggered", "parallel")

API_KEY_ENV_VARS = {
    "genai": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "azure": ("AZURE_OPENAI_API_KEY", "OPENAI_API_KEY"),
    "deepseek": ("DEEPSEEK_API_KEY",),
}


PLACEHOLDER_API_KEY = "your-api-key"


def api_key_env_vars(provider: str) -> tuple[str, ...]:
    provider = provider.lower()
    if provider in ("gemini", "google"):
        provider = "genai"
    return API_KEY_ENV_VARS.get(provider, ("OPENAI_API_KEY",))


@dataclass
class GatewayConfig:
    provider: str = "genai"
    api_key: Optional[str] = None
    base_url: Optional[str] = None


@dataclass
class ModelConfig:
    planner: str = "gemini-3-flash-preview"
    text: str = "gemini-3-pro-preview"
    fast: str = "gemini-2.5-flash-lite"
    search: str = "gemini-3-flash-preview"
    location: str = "gemini-2.5-flash"
    image: str = "gemini-3-pro-image-preview"
    image_edit: str = "gemini-2.5-flash-image"
    video: str = "veo-3.1-fast-generate-preview"
    speech: str = "gemini-2.5-flash-preview-tts"


@dataclass
class GenerationConfig:
    thinking_budget: int = 0
    max_tokens: Optional[int] = None
    aspect_ratio: str = "16:9"
    image_size: str = "1K"
    voice: str = "Kore"
    video_poll_interval: float = 8.0


@dataclass
class PolicyConfig:
    timeout: float = 120.0
    video_timeout: float = 600.0
    max_retries: int = 1
    backoff_base: float = 2.0


@dataclass
class ExecutionConfig:
    mode: str = "sequential"
    settle_delay: float = 0.5
    stagger_interval: float = 1.5
    max_concurrency: Optional[int] = None


@dataclass
class Config:
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    models: ModelConfig = field(default_factory=ModelConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    verbose: bool = False

    def resolve_api_key(self) -> Optional[str]:
        if self.gateway.api_key and self.gateway.api_key != PLACEHOLDER_API_KEY:
            return self.gateway.api_key
        for name in api_key_env_vars(self.gateway.provider):
            value = os.environ.get(name)
            if value:
                return value
        return None

    def is_configured(self) -> bool:
        return bool(self.resolve_api_key())


CONFIG_FILE_NAME = ".swarm-forge"


def get_config_path() -> Path:
    env_path = os.environ.get("SWARM_FORGE_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.home() / CONFIG_FILE_NAME


def load_config(path: Optional[Path] = None) -> Config:
    config_path = path or get_config_path()
    if not config_path.exists():
        return Config()

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return parse_config(data)


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping")
    return value


def parse_config(data: dict) -> Config:
    gateway_data = _section(data, "gateway")
    models_data = _section(data, "models")
    generation_data = _section(data, "generation")
    policy_data = _section(data, "policy")
    execution_data = _section(data, "execution")

    defaults = ModelConfig()
    models = ModelConfig(**{
        name: models_data.get(name, getattr(defaults, name))
        for name in defaults.__dataclass_fields__
    })

    mode = str(execution_data.get("mode", "sequential")).lower()
    if mode not in EXECUTION_MODES:
        raise ValueError(f"Unknown execution mode: {mode}")

    max_concurrency = execution_data.get("max_concurrency")

    return Config(
        gateway=GatewayConfig(
            provider=gateway_data.get("provider", "genai"),
            api_key=gateway_data.get("api_key"),
            base_url=gateway_data.get("base_url"),
        ),
        models=models,
        generation=GenerationConfig(
            thinking_budget=int(generation_data.get("thinking_budget", 0)),
            max_tokens=generation_data.get("max_tokens"),
            aspect_ratio=generation_data.get("aspect_ratio", "16:9"),
            image_size=generation_data.get("image_size", "1K"),
            voice=generation_data.get("voice", "Kore"),
            video_poll_interval=float(generation_data.get("video_poll_interval", 8.0)),
        ),
        policy=PolicyConfig(
            timeout=float(policy_data.get("timeout", 120.0)),
            video_timeout=float(policy_data.get("video_timeout", 600.0)),
            max_retries=int(policy_data.get("max_retries", 1)),
            backoff_base=float(policy_data.get("backoff_base", 2.0)),
        ),
        execution=ExecutionConfig(
            mode=mode,
            settle_delay=float(execution_data.get("settle_delay", 0.5)),
            stagger_interval=float(execution_data.get("stagger_interval", 1.5)),
            max_concurrency=int(max_concurrency) if max_concurrency else None,
        ),
        verbose=data.get("verbose", False),
    )


def create_sample_config() -> None:
    config_path = get_config_path()
    if config_path.exists():
        return

    sample_config = """# Swarm Forge Configuration
# Copy this file to ~/.swarm-forge and fill in your API key

gateway:
  provider: "genai" # or openai, azure, deepseek (text/image/speech only)
  # api_key: "your-api-key"
  # unset keys fall back to GEMINI_API_KEY / GOOGLE_API_KEY (genai), OPENAI_API_KEY (openai),
  # AZURE_OPENAI_API_KEY (azure) or DEEPSEEK_API_KEY (deepseek)
  # base_url: "https://api.example.com/v1"

models:
  planner: "gemini-3-flash-preview"
  text: "gemini-3-pro-preview"
  fast: "gemini-2.5-flash-lite"
  search: "gemini-3-flash-preview"
  location: "gemini-2.5-flash"
  image: "gemini-3-pro-image-preview"
  image_edit: "gemini-2.5-flash-image"
  video: "veo-3.1-fast-generate-preview"
  speech: "gemini-2.5-flash-preview-tts"

generation:
  thinking_budget: 0
  aspect_ratio: "16:9"
  image_size: "1K"
  voice: "Kore"
  video_poll_interval: 8

# Per-attempt limits; only rate-limit errors are retried
policy:
  timeout: 120
  video_timeout: 600
  max_retries: 1
  backoff_base: 2.0

# mode: sequential | staggered | parallel
execution:
  mode: sequential
  settle_delay: 0.5
  stagger_interval: 1.5
  # max_concurrency: 4

verbose: false
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(sample_config)
