from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from menu_studio import __version__ as TOOL_VERSION
from menu_studio.contracts import build_transform_summary
from menu_studio.export import write_output
from menu_studio.images import DirectoryImageStore, image_key
from menu_studio.loader import UnreadableInputError, load_rows
from menu_studio.oracle import GeminiClient
from menu_studio.pipeline import MODE_MODIFIERS, TransformResult, transform_menu, transform_modifiers
from menu_studio.schema import TransformOptions

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_ZERO_ITEMS = 3
EXIT_PARTIAL = 6

TRANSLATE_CHOICES = ["none", "ar", "en", "both", "auto"]


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class MenuStudioArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("MENU_STUDIO_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "menu-studio-output" / f"{input_path.stem}-{timestamp_token()}"


def determine_output_dir(args: argparse.Namespace, input_path: Path) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return default_output_dir(input_path)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (UnreadableInputError, ImportError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "quiet", False):
        level = logging.ERROR
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


# ── Options ───────────────────────────────────────────────────────────────────

def load_options_file(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise CliError(f"Config not found: {config_path}", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise CliError(f"Could not read config: {exc}", EXIT_COMMAND_ERROR) from exc
    if not isinstance(payload, dict):
        raise CliError("Config root must be a JSON object.", EXIT_COMMAND_ERROR)
    return payload


def build_options(args: argparse.Namespace) -> TransformOptions:
    """Options from ``--config`` first, then any flag given on the command line."""
    values: dict[str, Any] = load_options_file(Path(args.config)) if args.config else {}

    if args.title_case:
        values["apply_title_case"] = True
    if args.no_split_price:
        values["split_price"] = False
    if args.currency:
        values["default_currency"] = args.currency.upper()
    if args.translate is not None:
        values["translate_to_arabic"] = args.translate in ("ar", "both")
        values["translate_to_english"] = args.translate in ("en", "both")
        values["auto_translate"] = args.translate == "auto"
    if getattr(args, "estimate_calories", False):
        values["estimate_calories"] = True
    if getattr(args, "images", None):
        values["sync_images"] = True
    if getattr(args, "no_fuzzy", False):
        values["fuzzy_image_match"] = False
    if getattr(args, "fuzzy_threshold", None) is not None:
        values["fuzzy_threshold"] = args.fuzzy_threshold
    if args.batch_size is not None:
        values["batch_size"] = args.batch_size
    if args.concurrency is not None:
        values["concurrency"] = args.concurrency

    try:
        return TransformOptions.from_dict(values)
    except (TypeError, ValueError) as exc:
        raise CliError(f"Invalid options: {exc}", EXIT_COMMAND_ERROR) from exc


def build_client(options: TransformOptions) -> GeminiClient | None:
    if not (options.needs_oracle or options.estimate_calories):
        return None
    try:
        return GeminiClient.from_env()
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def progress_printer(quiet: bool):
    def report(stage: str, current: int, total: int) -> None:
        emit_human(f"{stage}: {current}/{total}", quiet=quiet)

    return report


# ── Rendering ─────────────────────────────────────────────────────────────────

def render_transform_summary(result: TransformResult, summary: dict[str, Any]) -> str:
    stats = result.stats
    run = summary["run_summary"]
    lines = [
        f"menu-studio {'modifiers' if result.mode == MODE_MODIFIERS else 'transform'}",
        f"Input: {run.get('input_file') or '[unknown]'}",
        f"Status: {run['status']}",
        f"Raw rows: {stats.total_raw_rows}",
        f"Items: {stats.total_items_processed}",
        f"Arabic translation rows merged: {stats.arabic_translations_found}",
        f"Columns: {len(result.columns)}",
    ]
    if stats.currencies_detected:
        lines.append(f"Currencies: {', '.join(stats.currencies_detected)}")
    if stats.translation_direction != "none":
        lines.append(f"Translation: {stats.translation_direction}")
        lines.append(f"Already Arabic: {stats.already_arabic_count}")
        lines.append(f"Translated to Arabic: {stats.auto_translated_count}")
        lines.append(f"Translated to English: {stats.auto_translated_en_count}")
    if stats.calories_estimated_count:
        lines.append(f"Calories estimated: {stats.calories_estimated_count}")
    if stats.images_from_excel or stats.images_from_db or stats.images_pending_generation:
        lines.append(
            f"Images: {stats.images_from_excel} from spreadsheet, {stats.images_from_db} from store, "
            f"{stats.images_pending_generation} pending generation"
        )
    if run["warnings"]:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in run["warnings"])
    return "\n".join(lines) + "\n"


# ── Commands ──────────────────────────────────────────────────────────────────

def run_transform(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    modifiers = args.command == "modifiers"
    try:
        options = build_options(args)
        client = build_client(options)
        image_store = DirectoryImageStore(args.images) if getattr(args, "images", None) else None

        out_dir = determine_output_dir(args, input_path)
        suffix = "modifiers" if modifiers else "transformed"
        output_path = Path(args.output) if args.output else out_dir / f"{input_path.stem}-{suffix}.{args.format}"
        summary_path = out_dir / "summary.json"
        if not args.dry_run:
            safe_output_path(output_path)
            safe_output_path(summary_path)

        loaded = load_rows(input_path, sheet_name=args.sheet_name)
        progress = progress_printer(args.quiet or args.json) if args.verbose else None
        if modifiers:
            result = transform_modifiers(loaded["rows"], options, oracle=client, progress=progress)
        else:
            result = transform_menu(
                loaded["rows"],
                options,
                oracle=client,
                estimator=client,
                image_store=image_store,
                progress=progress,
            )

        written = None
        if not args.dry_run and not result.stats.zero_items:
            written = write_output(result, output_path, args.format)
        summary = build_transform_summary(
            result,
            input_path=input_path,
            output_path=written,
            warnings=loaded["warnings"],
            dropped_rows=len(loaded["skipped_lines"]),
        )
        if not args.dry_run:
            write_json(summary_path, summary)

        if args.json:
            print(json_dumps(summary))
        else:
            emit_human(render_transform_summary(result, summary).rstrip(), quiet=args.quiet)
            if written:
                emit_human(f"Output: {written}", quiet=args.quiet)
            if not args.dry_run:
                emit_human(f"Summary: {summary_path}", quiet=args.quiet)

        if result.stats.zero_items:
            return EXIT_ZERO_ITEMS
        if result.partial or loaded["skipped_lines"]:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, asdict(TransformOptions()))
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_image_key(args: argparse.Namespace) -> int:
    print(image_key(args.text))
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def _add_common_transform_args(command: argparse.ArgumentParser) -> None:
    command.add_argument("input", help="Input file path")
    command.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    command.add_argument("--output", help="Explicit output path")
    command.add_argument("--format", choices=["xlsx", "csv"], default="xlsx", help="Output format")
    command.add_argument("--sheet", dest="sheet_name", help="Workbook sheet to read (default: first sheet)")
    command.add_argument("--config", help="JSON options file; flags override its values")
    command.add_argument("--title-case", action="store_true", help="Title-case names, descriptions and labels")
    command.add_argument("--no-split-price", action="store_true", help="Keep the raw Price column")
    command.add_argument("--currency", help="Currency for prices without a code (default AED)")
    command.add_argument("--translate", choices=TRANSLATE_CHOICES, default=None, help="AI translation direction")
    command.add_argument("--batch-size", type=int, default=None, help="Records per AI request")
    command.add_argument("--concurrency", type=int, default=None, help="AI requests in flight")
    command.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    command.add_argument("--dry-run", action="store_true", help="Run the transform without writing outputs")
    command.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    command.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = MenuStudioArgumentParser(prog="menu-studio", description="Normalize and translate restaurant menu spreadsheets.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    transform = subparsers.add_parser("transform", help="Normalize a menu export.")
    _add_common_transform_args(transform)
    transform.add_argument("--estimate-calories", action="store_true", help="Estimate missing calories with AI")
    transform.add_argument("--images", help="Directory of item images to match against")
    transform.add_argument("--no-fuzzy", action="store_true", help="Disable fuzzy image name matching")
    transform.add_argument("--fuzzy-threshold", type=float, default=None, help="Fuzzy image match threshold, 0-1")

    modifiers = subparsers.add_parser("modifiers", help="Flatten a modifier group export.")
    _add_common_transform_args(modifiers)

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter options file.")
    config_init.add_argument("--path", default="menu-studio.json", help="Config output path")

    key = subparsers.add_parser("image-key", help="Print the image store key for a name or id.")
    key.add_argument("text", help="Item name or id")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command in ("transform", "modifiers"):
            return run_transform(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "image-key":
            return run_image_key(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
