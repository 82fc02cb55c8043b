from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from cef_codec.core.codec import CefCodec
from cef_codec.core.config import CefCodecConfig
from cef_codec.core.log_service import iter_events
from cef_codec.tools.codec import build_config, event_to_dict


def _parse_fields(s: str) -> list[str]:
    out = [part.strip() for part in s.split(",") if part.strip()]
    if not out:
        raise argparse.ArgumentTypeError("At least one field must be provided")
    return out


def _configure_logging() -> None:
    level_name = os.getenv("CEF_CODEC_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config_from_args(args: argparse.Namespace) -> CefCodecConfig:
    values: dict[str, object] = {"delimiter": args.delimiter}
    if args.command == "decode":
        if args.raw_data_field:
            values["raw_data_field"] = args.raw_data_field
    else:
        values["fields"] = tuple(args.fields)
        values["reverse_mapping"] = args.reverse_mapping
        for name in ("vendor", "product", "version", "signature", "name", "severity"):
            value = getattr(args, name)
            if value is not None:
                values[name] = value

    return build_config(
        ecs_compatibility=args.ecs_compatibility,
        device=args.device,
        **values,
    )


async def _decode(path: Path, cfg: CefCodecConfig, args: argparse.Namespace) -> int:
    count = 0
    async for event in iter_events(
        path,
        config=cfg,
        contains=args.contains,
        include_failures=not args.skip_failures,
        limit=args.max_results,
    ):
        print(json.dumps(event_to_dict(event), ensure_ascii=False))
        count += 1
    return count


def _encode(path: Path, cfg: CefCodecConfig) -> int:
    codec = CefCodec(cfg)
    count = 0
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"line {line_no}: not valid JSON ({e.msg})") from e
            if not isinstance(obj, dict):
                raise ValueError(f"line {line_no}: expected a JSON object")
            text = codec.encode(obj)
            sys.stdout.write(text if cfg.delimiter else text + "\n")
            count += 1
    return count


def main(argv: Sequence[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="ArcSight CEF encoder/decoder.")
    p.add_argument("--ecs", dest="ecs_compatibility", choices=["disabled", "v1"], default=None)
    p.add_argument("--device", choices=["observer", "host"], default=None)
    p.add_argument(
        "--delimiter",
        default=None,
        help="Message delimiter (\\r and \\n are expanded). Default: newline",
    )
    sub = p.add_subparsers(dest="command", required=True)

    dec = sub.add_parser("decode", help="Decode a CEF file (plain or .gz) to JSON lines")
    dec.add_argument("path")
    dec.add_argument("--raw-field", dest="raw_data_field", default=None)
    dec.add_argument("--contains", default=None, help="Only decode messages containing this text")
    dec.add_argument("--max", dest="max_results", type=int, default=None)
    dec.add_argument("--skip-failures", action="store_true", help="Drop undecodable messages")

    enc = sub.add_parser("encode", help="Encode JSON lines to CEF")
    enc.add_argument("path")
    enc.add_argument("--fields", type=_parse_fields, default=[], help="Comma-separated fields")
    enc.add_argument("--reverse-mapping", action="store_true", help="Emit abbreviated CEF keys")
    for name in ("vendor", "product", "version", "signature", "name", "severity"):
        enc.add_argument(f"--{name}", default=None)

    args = p.parse_args(argv)
    _configure_logging()
    path = Path(args.path)

    try:
        cfg = _config_from_args(args)
        if args.command == "decode":
            count = asyncio.run(_decode(path, cfg, args))
        else:
            count = _encode(path, cfg)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except (ValueError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    print(f"\n{count} messages processed.", file=sys.stderr)


if __name__ == "__main__":
    main()
