"""Command line interface for the Pagewise translator."""

from __future__ import annotations

import argparse
import asyncio
import logging
import pathlib
import sys
from typing import Iterable, Optional

from .configuration import load_settings
from .controller import PageTranslator
from .document import HtmlDocument
from .errors import BackendConfigurationError, PagewiseError
from .providers import BackendRegistry, register_default_backends
from .readaloud import TranscriptReadAloud
from .structures import SessionStatus, SessionSummary


def describe_backends(registry: BackendRegistry) -> str:
    """One clause per backend: id, name, models and default endpoint."""

    entries = []
    for metadata in registry.all_metadata().values():
        details = []
        if metadata.models:
            details.append("models: " + ", ".join(metadata.models))
        if metadata.default_endpoint:
            details.append(f"endpoint: {metadata.default_endpoint}")
        if not metadata.requires_key:
            details.append("no API key needed")
        entry = f"{metadata.id} = {metadata.name}"
        if details:
            entry += f" ({'; '.join(details)})"
        entries.append(entry)
    return "; ".join(entries)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagewise",
        description=(
            "Translate the article content of a saved HTML page into easier "
            "language, keeping the original next to the translation."
        ),
    )
    parser.add_argument(
        "input_file",
        help="Path to the .html file to translate.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending '_translated' to the input name.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help=(
            "Translation backend identifier. Available: "
            + describe_backends(register_default_backends())
            + "."
        ),
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Backend-specific model identifier.",
    )
    parser.add_argument(
        "-l",
        "--level",
        choices=["plain", "simple", "easy"],
        help="Translation level (default: easy).",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        help="Language to write the result in (default: German).",
    )
    parser.add_argument(
        "-c",
        "--max-chunk-chars",
        type=int,
        help="Maximum characters per translation request (default: 1000).",
    )
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Keep the original sections visible next to the translation.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete backend requests and responses for troubleshooting.",
    )
    return parser


def derive_output_path(input_path: pathlib.Path) -> pathlib.Path:
    return input_path.with_name(f"{input_path.stem}_translated{input_path.suffix or '.html'}")


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError("Input file not found. Please provide a readable .html file.")
    if not input_path.is_file():
        raise PagewiseError("Input path must be a file.")
    if input_path.resolve() == output_path.resolve():
        raise PagewiseError(
            "The output path matches the input page. Refusing to overwrite the source file."
        )
    if output_path.exists() and not force_overwrite:
        raise PagewiseError(
            "The output file already exists. Rename it or pass --force."
        )


def print_progress(processed: int, total: int) -> None:
    print(f"  Progress: {processed}/{total} sections")


def print_summary(summary: SessionSummary, output_path: pathlib.Path) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(f"  Output file:     {output_path}")
    print(
        "  Sections:        "
        f"{summary.translated_regions} translated / {summary.total_regions} total "
        f"({summary.failed_regions} failed, {summary.skipped_regions} skipped)"
    )
    print(f"  Requests:        {summary.total_chunks} chunks")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.error_messages:
        print("  Notes:")
        for message in summary.error_messages:
            print(f"    - {message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.debug_provider else logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = pathlib.Path(args.input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(args.output).expanduser().resolve()
        if args.output
        else derive_output_path(input_path)
    )
    try:
        validate_paths(input_path, output_path, force_overwrite=args.force)
    except (FileNotFoundError, PagewiseError) as exc:
        print(exc)
        return 1

    overrides = {
        "PAGEWISE_PROVIDER": args.provider,
        "PAGEWISE_MODEL": args.model,
        "PAGEWISE_TRANSLATION_LEVEL": args.level,
        "PAGEWISE_TARGET_LANGUAGE": args.target_language,
        "PAGEWISE_MAX_CHUNK_CHARS": args.max_chunk_chars,
        "PAGEWISE_COMPARE_VIEW": True if args.compare else None,
        "PAGEWISE_PROVIDER_DEBUG": True if args.debug_provider else None,
    }
    try:
        settings = load_settings(overrides=overrides)
    except BackendConfigurationError as exc:
        print(exc)
        return 1

    messages = []
    translator = PageTranslator(
        settings,
        read_aloud=TranscriptReadAloud(),
        on_progress=print_progress if args.verbose else None,
        on_error=messages.append,
    )
    document = HtmlDocument(input_path.read_text(encoding="utf-8"))

    try:
        summary = asyncio.run(translator.start(document))
    except KeyboardInterrupt:
        print("Translation interrupted by user.")
        return 2

    if summary.status is SessionStatus.ERRORED:
        for message in messages:
            print(message)
        return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(document.render(), encoding="utf-8")
    print_summary(summary, output_path)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
