"""
Command line interface.

    pbscan scan TICKET.jpg [--engine alternate] [--json]
    pbscan check --white 12 23 34 45 56 --powerball 7 [--power-play]
    pbscan draw
    pbscan health
"""

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from pbscan.config import load_settings
from pbscan.draw_gateway import create_draw_gateway
from pbscan.exceptions import RecognitionFailure, TicketScanError
from pbscan.models import NumberSet
from pbscan.number_validator import validation_errors
from pbscan.ticket_processor import create_ticket_scanner
from pbscan.ticket_verifier import create_ticket_verifier

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_RECOGNITION_FAILED = 2


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


def _print(payload, as_json: bool, text: str) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
    else:
        print(text)


def cmd_scan(args, settings) -> int:
    try:
        with open(args.image, 'rb') as f:
            image_data = f.read()
    except OSError as e:
        logger.error(f"Cannot read image {args.image}: {e}")
        return EXIT_ERROR

    scanner = create_ticket_scanner(settings)
    if args.engine:
        scanner.recognizer.set_active_engine(args.engine)

    try:
        result = asyncio.run(scanner.scan(image_data))
    except RecognitionFailure as e:
        logger.error(f"Recognition failed: {e}")
        return EXIT_RECOGNITION_FAILED
    finally:
        scanner.close()

    lines = [f"Engine: {result.engine}  confidence: {result.confidence:.2f}  strategy: {result.strategy or '-'}"]
    if result.draw_date:
        lines.append(f"Draw date: {result.draw_date}")
    lines.extend(str(play) for play in result.number_sets)
    lines.extend(f"Warning: {warning}" for warning in result.warnings)
    _print(result.to_dict(), args.json, '\n'.join(lines))
    return EXIT_OK


def cmd_check(args, settings) -> int:
    errors = validation_errors(args.white, args.powerball)
    if errors:
        for error in errors:
            logger.error(error)
        return EXIT_ERROR

    draw = create_draw_gateway(settings.gateway).get_latest_draw()
    play = NumberSet(
        white_balls=tuple(args.white),
        powerball=args.powerball,
        power_play_selected=args.power_play,
        line='A',
    )

    verifier = create_ticket_verifier()
    result = verifier.verify_plays([play], draw)
    if draw.is_mock:
        result['warning'] = 'Official results unavailable; checked against mock draw data'

    text = verifier.format_verification_summary(result)
    if draw.is_mock:
        text = f"Warning: {result['warning']}\n{text}"
    _print(result, args.json, text)
    return EXIT_OK


def cmd_draw(args, settings) -> int:
    draw = create_draw_gateway(settings.gateway).get_latest_draw()
    text = f"{draw.draw_date}: {draw.winning_numbers} (Power Play x{draw.multiplier or '-'}) [{draw.source}]"
    if draw.jackpot_amount:
        text += f"\nJackpot: ${draw.jackpot_amount:,.0f}"
    _print(draw.to_dict(), args.json, text)
    return EXIT_OK


def cmd_health(args, settings) -> int:
    health = create_draw_gateway(settings.gateway).quick_health_check_sources()
    text = '\n'.join(f"{name}: {'healthy' if ok else 'unavailable'}" for name, ok in health.items())
    _print(health, args.json, text)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pbscan', description="Read Powerball tickets and check them against the latest draw")
    parser.add_argument("--config", help="Path to an INI configuration file")
    parser.add_argument("--log-level", help="Log level (defaults to LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest='command', required=True)

    scan = subparsers.add_parser('scan', help="Extract plays from a ticket image")
    scan.add_argument("image", help="Path to the ticket image")
    scan.add_argument("--engine", help="OCR engine: primary, alternate, tesseract or easyocr")
    scan.add_argument("--json", action="store_true", help="Print JSON")
    scan.set_defaults(handler=cmd_scan)

    check = subparsers.add_parser('check', help="Check one play against the latest draw")
    check.add_argument("--white", type=int, nargs=5, required=True, metavar='N', help="Five white balls")
    check.add_argument("--powerball", type=int, required=True, help="Powerball number")
    check.add_argument("--power-play", action="store_true", help="The play includes Power Play")
    check.add_argument("--json", action="store_true", help="Print JSON")
    check.set_defaults(handler=cmd_check)

    draw = subparsers.add_parser('draw', help="Show the latest official draw")
    draw.add_argument("--json", action="store_true", help="Print JSON")
    draw.set_defaults(handler=cmd_draw)

    health = subparsers.add_parser('health', help="Check the remote draw sources")
    health.add_argument("--json", action="store_true", help="Print JSON")
    health.set_defaults(handler=cmd_health)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # Load environment variables from .env if available
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        settings = load_settings(args.config)
        return args.handler(args, settings)
    except TicketScanError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        return EXIT_ERROR
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
