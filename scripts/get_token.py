"""Issue a provider token and print the credential, for checking keys against an environment."""
from __future__ import annotations

import argparse
import asyncio
import json

from hotel_gateway.auth.token_cache import ProviderTokenCache
from hotel_gateway.config.settings import Settings
from hotel_gateway.core.logging import configure_logging
from hotel_gateway.services import MetasphereClient


async def fetch(settings: Settings, provider_key: str) -> dict[str, object]:
    cache = ProviderTokenCache(skew_s=settings.token_expiry_skew_s)
    async with MetasphereClient.from_settings(settings, cache, provider_key=provider_key) as client:
        credential = await client.credential()
    return credential.to_dict()


def main() -> None:
    parser = argparse.ArgumentParser(description="Request a Metasphere access token")
    parser.add_argument("--provider", help="Provider key (defaults to GATEWAY_DEFAULT_PROVIDER)")
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    payload = asyncio.run(fetch(settings, args.provider or settings.default_provider))
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
