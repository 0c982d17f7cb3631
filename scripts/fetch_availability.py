"""Fetch a hotel availability calendar and print it as JSON."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from hotel_gateway.auth.token_cache import ProviderTokenCache
from hotel_gateway.availability.dates import parse_date_range
from hotel_gateway.config.settings import Settings
from hotel_gateway.core.logging import configure_logging
from hotel_gateway.services import AvailabilityService, MetasphereClient

logger = logging.getLogger(__name__)


async def run(
    settings: Settings,
    *,
    start: str,
    end: str,
    room_type_id: Optional[str],
    per_room: bool,
    output: Optional[Path],
) -> None:
    cache = ProviderTokenCache(skew_s=settings.token_expiry_skew_s)
    async with MetasphereClient.from_settings(settings, cache) as client:
        service = AvailabilityService(
            client,
            hotel_id=settings.hotel_code,
            currency=settings.default_currency,
            window_days=settings.availability_window_days,
            room_type_lookahead_days=settings.room_type_lookahead_days,
        )
        if per_room:
            results = await service.room_results(start, end)
            payload: object = [calendar.to_dict() for calendar in results]
        else:
            calendar = await service.calendar(start, end, room_type_id=room_type_id)
            payload = calendar.to_dict()

    text = json.dumps(payload, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        logger.info("Wrote availability to %s", output)
    else:
        print(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch hotel availability from the CRM")
    parser.add_argument("start", help="First night (YYYY-MM-DD)")
    parser.add_argument("end", help="Check-out date, exclusive (YYYY-MM-DD)")
    parser.add_argument("--hotel", help="Hotel code (defaults to GATEWAY_HOTEL_CODE)")
    parser.add_argument("--provider", help="Provider key (defaults to GATEWAY_DEFAULT_PROVIDER)")
    parser.add_argument("--room-type", dest="room_type_id", help="Restrict to one room type id")
    parser.add_argument(
        "--per-room",
        action="store_true",
        help="Emit one calendar per room type instead of a single calendar",
    )
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    try:
        parse_date_range(args.start, args.end)
    except ValueError as exc:
        parser.error(str(exc))

    settings = Settings()
    if args.hotel:
        settings.hotel_code = args.hotel
    if args.provider:
        settings.default_provider = args.provider
    configure_logging(settings.log_level, settings.log_dir)

    asyncio.run(
        run(
            settings,
            start=args.start,
            end=args.end,
            room_type_id=args.room_type_id,
            per_room=args.per_room,
            output=args.output,
        )
    )


if __name__ == "__main__":
    main()
