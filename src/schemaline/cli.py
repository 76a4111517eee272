"""Command-line interface for schemaline.

Usage:
    python -m schemaline parse --schema residencia.json lines.txt
    python -m schemaline parse --schema residencia.json - --jsonl < lines.txt
    python -m schemaline pattern --schema residencia.json
    python -m schemaline render --schema residencia.json record.json

Structured JSON output goes to stdout; human messages go to stderr.
Exit codes: 0 all lines accepted, 1 some line rejected, 2 unusable schema
or input.
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import orjson

from schemaline.blueprint import Blueprint, build_blueprint
from schemaline.errors import FormatError, RecordValidationError, SchemaShapeError
from schemaline.parser import ParseDiagnostic, parse_record
from schemaline.render import record_to_json, render_record
from schemaline.schema_io import load_schema
from schemaline.validation import validate_record

log = logging.getLogger("schemaline.cli")

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_UNUSABLE = 2


def _write(payload: bytes) -> None:
    sys.stdout.write(payload.decode("utf-8"))
    sys.stdout.write("\n")


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _numbered_lines(text: str) -> Iterator[tuple[int, str]]:
    for line_no, line in enumerate(text.splitlines(), start=1):
        if line.strip():
            yield line_no, line


def _blueprint_from_args(args: argparse.Namespace) -> Blueprint:
    schema = load_schema(Path(args.schema))
    return build_blueprint(
        schema,
        max_repeated=args.max_repeated,
        require_structured=args.require_structured,
    )


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def _parse_lines(
    blueprint: Blueprint,
    lines: Iterable[tuple[int, str]],
    *,
    validate: bool,
) -> tuple[list[dict[str, Any]], int]:
    accepted: list[dict[str, Any]] = []
    rejected = 0
    for line_no, line in lines:
        def on_diagnostic(diagnostic: ParseDiagnostic, line_no: int = line_no) -> None:
            log.warning("line %d: %s", line_no, diagnostic.message)

        try:
            record = parse_record(blueprint, line, on_diagnostic=on_diagnostic)
            if validate:
                record = validate_record(blueprint.schema, record)
        except FormatError as exc:
            rejected += 1
            print(f"line {line_no}: format error: {exc}", file=sys.stderr)
            continue
        except RecordValidationError as exc:
            rejected += 1
            for issue in exc.issues:
                print(f"line {line_no}: {issue.path}: {issue.reason}", file=sys.stderr)
            continue
        accepted.append(record)
    return accepted, rejected


def cmd_parse(args: argparse.Namespace) -> int:
    blueprint = _blueprint_from_args(args)
    text = _read_text(args.input)
    accepted, rejected = _parse_lines(blueprint, _numbered_lines(text), validate=not args.no_validate)

    if args.jsonl:
        for record in accepted:
            _write(record_to_json(record, pretty=False))
    else:
        _write(orjson.dumps(accepted, option=orjson.OPT_INDENT_2))

    print(f"Accepted {len(accepted)} line(s), rejected {rejected}", file=sys.stderr)
    return EXIT_REJECTED if rejected else EXIT_OK


def cmd_pattern(args: argparse.Namespace) -> int:
    blueprint = _blueprint_from_args(args)
    print(blueprint.pattern.pattern)
    return EXIT_OK


def cmd_render(args: argparse.Namespace) -> int:
    blueprint = _blueprint_from_args(args)
    payload = orjson.loads(_read_text(args.input))
    records = payload if isinstance(payload, list) else [payload]
    failed = 0
    for index, record in enumerate(records):
        try:
            print(render_record(blueprint.schema, record))
        except (KeyError, ValueError) as exc:
            failed += 1
            print(f"record {index}: cannot render: {exc}", file=sys.stderr)
    return EXIT_REJECTED if failed else EXIT_OK


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemaline",
        description="Parse schema-driven delimited lines into structured records.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    def _schema_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("--schema", required=True, help="Path to the schema JSON file")
        p.add_argument(
            "--max-repeated", type=int, default=None,
            help="Reject schemas with more repeated fields than this",
        )
        p.add_argument(
            "--require-structured", action="store_true",
            help="Reject repeated fields without an element shape",
        )

    p_parse = sub.add_parser("parse", help="Parse input lines into JSON records")
    _schema_options(p_parse)
    p_parse.add_argument("input", nargs="?", default="-", help="Input file path or '-' for stdin")
    p_parse.add_argument("--no-validate", action="store_true", help="Skip schema constraint validation")
    p_parse.add_argument("--jsonl", action="store_true", help="Emit one JSON object per line")
    p_parse.set_defaults(func=cmd_parse)

    p_pattern = sub.add_parser("pattern", help="Print the generated line pattern")
    _schema_options(p_pattern)
    p_pattern.set_defaults(func=cmd_pattern)

    p_render = sub.add_parser("render", help="Render JSON records as input lines")
    _schema_options(p_render)
    p_render.add_argument("input", nargs="?", default="-", help="JSON file path or '-' for stdin")
    p_render.set_defaults(func=cmd_render)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return args.func(args)
    except SchemaShapeError as exc:
        print(f"error: unusable schema: {exc}", file=sys.stderr)
        return EXIT_UNUSABLE
    except (OSError, UnicodeDecodeError, orjson.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_UNUSABLE


if __name__ == "__main__":
    raise SystemExit(main())
