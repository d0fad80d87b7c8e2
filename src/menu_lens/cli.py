#!/usr/bin/env python3
"""
Command line entry point.

Usage:
    menu-lens analyze photo.jpg                 # dishes with definitions and images
    menu-lens analyze photo.jpg --positions     # marker variant (x/y per dish)
    menu-lens analyze photo.jpg --json          # raw JSON, as the API returns it
    menu-lens match "Arancini e cannoli"        # dictionary lookup, no model call
    menu-lens serve --port 3000                 # run the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from menu_lens.conf.config import settings
from menu_lens.core.logging import setup_logging
from menu_lens.core.models import AnalysisResult, MenuItem
from menu_lens.services.dictionary import load_dictionary
from menu_lens.services.enrichment import ImageResolver
from menu_lens.services.exceptions import AnalysisError, ImagePreprocessError
from menu_lens.services.pipeline import MenuAnalysisPipeline
from menu_lens.services.vision_gateway import AnalysisGateway


def _print_items(items: list[MenuItem]) -> None:
    if not items:
        print("No dishes found.")
        return
    for index, item in enumerate(items, 1):
        print(f"{index}. {item.name}")
        print(f"   {item.definition}")
        if item.position is not None:
            print(f"   at x={item.position.x:g}% y={item.position.y:g}%")
        if item.image_url:
            print(f"   {item.image_url}")


def _cmd_analyze(args: argparse.Namespace) -> int:
    positions = args.positions or settings.REQUIRE_POSITIONS
    enrich = settings.ENRICH_IMAGES and not args.no_images
    pipeline = MenuAnalysisPipeline(
        AnalysisGateway(),
        ImageResolver() if enrich else None,
        require_positions=positions,
        enrich_images=enrich,
    )

    try:
        result: AnalysisResult = asyncio.run(pipeline.analyze_file(args.path))
    except ImagePreprocessError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except AnalysisError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_public_dict(), ensure_ascii=False, indent=2))
    else:
        if result.failure:
            print(f"⚠️  Model answer unusable ({result.failure.kind})", file=sys.stderr)
        _print_items(result.items)
    return 0


def _cmd_match(args: argparse.Namespace) -> int:
    items = load_dictionary().match(args.text)
    if args.json:
        print(json.dumps([i.to_public_dict() for i in items], ensure_ascii=False, indent=2))
    else:
        _print_items(items)
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "menu_lens.server.main:app",
        host=args.host,
        port=args.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="menu-lens", description="Explain the dishes on a menu photo.")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="analyze a menu photo")
    analyze.add_argument("path", help="image file (JPEG, PNG, GIF, WebP, ...)")
    analyze.add_argument("--positions", action="store_true", help="ask for on-image positions")
    analyze.add_argument("--no-images", action="store_true", help="skip the image lookup")
    analyze.add_argument("--json", action="store_true", help="print JSON")
    analyze.set_defaults(func=_cmd_analyze)

    match = sub.add_parser("match", help="match OCR text against the dish dictionary")
    match.add_argument("text")
    match.add_argument("--json", action="store_true", help="print JSON")
    match.set_defaults(func=_cmd_match)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=settings.PORT)
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level="DEBUG" if args.verbose else ("WARNING" if args.command != "serve" else settings.LOG_LEVEL),
        json_format=settings.LOG_JSON,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
