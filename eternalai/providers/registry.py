"""Provider registry: model-prefix routing and a name -> instance map."""

import httpx

from eternalai.config.settings import Settings
from eternalai.providers.base import Provider

DEFAULT_PROVIDER = "eternalai"

# Checked in order; the first matching prefix wins
MODEL_PREFIXES: dict[str, str] = {
    "nano-banana/": "nano-banana",
    "tavily/": "tavily",
    "uncensored-ai/": "uncensored-ai",
    "wan/": "wan",
    "flux/": "flux",
    "glm/": "glm",
    "mistral/": "mistral",
}

_providers: dict[str, Provider] = {}


def parse_model_name(model: str) -> tuple[str, str]:
    """Split a routed model name into ``(provider_name, model_name)``."""
    for prefix, name in MODEL_PREFIXES.items():
        if model.startswith(prefix):
            return name, model[len(prefix):]
    return DEFAULT_PROVIDER, model


def create_provider(
    name: str,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Provider:
    """Build a new provider instance by name."""
    # Imported here so the registry module stays import-light
    from eternalai.providers.flux import FluxProvider
    from eternalai.providers.nano_banana import NanoBananaProvider
    from eternalai.providers.openai_compat import EternalAIChatProvider, GlmProvider, MistralProvider
    from eternalai.providers.tavily import TavilyProvider
    from eternalai.providers.uncensored import UncensoredAIProvider
    from eternalai.providers.wan import WanProvider

    classes: dict[str, type[Provider]] = {
        "eternalai": EternalAIChatProvider,
        "glm": GlmProvider,
        "mistral": MistralProvider,
        "nano-banana": NanoBananaProvider,
        "tavily": TavilyProvider,
        "flux": FluxProvider,
        "wan": WanProvider,
        "uncensored-ai": UncensoredAIProvider,
    }
    if name not in classes:
        raise ValueError(f"Unknown provider: {name}")
    return classes[name](settings, transport=transport)


def get_provider(name: str) -> Provider:
    """Get or create a shared, environment-configured provider instance."""
    if name not in _providers:
        _providers[name] = create_provider(name)
    return _providers[name]


async def close_all_providers() -> None:
    """Close the connections of every shared provider."""
    for provider in _providers.values():
        await provider.close()
    _providers.clear()
