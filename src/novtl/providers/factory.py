"""Pick the adapter implementation for a resolved provider config."""

from typing import Optional

import structlog

from novtl.config import GEMINI, OPENAI_COMPATIBLE, AppConfig, get_config
from novtl.errors import MissingCredential
from novtl.models import ProviderConfig
from novtl.providers.base import ProviderAdapter

logger = structlog.get_logger()


def create_adapter(config: ProviderConfig, app_config: Optional[AppConfig] = None) -> ProviderAdapter:
    """Create the adapter for ``config.provider``.

    Raises:
        MissingCredential: if the API key is missing or implausible
        ValueError: if the provider has no known transport
    """
    if not config.has_plausible_key():
        raise MissingCredential(config.provider)

    app_config = app_config or get_config()
    max_tokens = app_config.translation.max_request_tokens

    if config.provider == GEMINI:
        from novtl.providers.gemini import GeminiAdapter

        adapter: ProviderAdapter = GeminiAdapter(config, max_tokens)
    elif config.provider == OPENAI_COMPATIBLE:
        from novtl.providers.openai_sdk import OpenAISDKAdapter

        adapter = OpenAISDKAdapter(
            config, max_tokens, base_url=config.endpoint or app_config.openai.base_url
        )
    elif config.endpoint:
        from novtl.providers.http_sse import HttpSSEAdapter

        adapter = HttpSSEAdapter(config, max_tokens, timeout=app_config.request_timeout)
    else:
        raise ValueError(f"Provider not supported: {config.provider}")

    logger.debug(
        "adapter_created",
        provider=config.provider,
        model=config.model,
        adapter=type(adapter).__name__,
    )
    return adapter
