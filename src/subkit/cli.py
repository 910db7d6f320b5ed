"""
CLI entry point for subkit

  subkit serve --port 8000
  subkit convert movie.srt --to vtt
  subkit optimize movie.srt --to srt --output movie.fixed.srt
  subkit formats
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from subkit.config.settings import ServiceConfig, get_gemini_key, load_env_file
from subkit.errors import SubkitError, ValidationError
from subkit.formats import CONTENT_TYPES, SUPPORTED_FORMATS
from subkit.models.gemini import create_gemini_optimizer
from subkit.pipeline.processors.optimize import OptimizationOrchestrator
from subkit.pipeline.processors.parse import normalize_extension, parse
from subkit.pipeline.processors.serialize import serialize_download
from subkit.schema import CaptionDocument
from subkit.utils.logger import error, info, success


def _read_document(input_path: Path, config: ServiceConfig) -> CaptionDocument:
    if not input_path.is_file():
        raise ValidationError(f"Input file not found: {input_path}")
    raw = input_path.read_bytes()
    document = parse(raw, input_path.name, max_file_size=config.max_file_size, fps=config.sub_fps)
    info(f"[{input_path.name}] {len(document)} captions ({document.source_format})")
    return document


def _write_document(
    document: CaptionDocument,
    input_path: Path,
    target_format: str,
    output: Optional[str],
    config: ServiceConfig,
) -> Path:
    result = serialize_download(
        document,
        target_format,
        input_path.name,
        brand_suffix=config.brand_suffix,
        fps=config.sub_fps,
    )
    output_path = Path(output) if output else input_path.parent / result.filename
    output_path.write_bytes(result.data)
    return output_path


# ── 子命令 ──────────────────────────────────────────────────

def convert_one(args, config: ServiceConfig) -> None:
    input_path = Path(args.input)
    document = _read_document(input_path, config)
    output_path = _write_document(document, input_path, args.to, args.output, config)
    success(f"[{input_path.name}] -> {output_path}")


def optimize_one(args, config: ServiceConfig) -> None:
    api_key = args.api_key or get_gemini_key()
    if not api_key:
        raise ValidationError("API key is required (use --api-key or set GEMINI_API_KEY)")

    input_path = Path(args.input)
    document = _read_document(input_path, config)
    target_format = args.to or normalize_extension(input_path.name)

    model = args.model or config.gemini_model
    orchestrator = OptimizationOrchestrator(
        lambda key: create_gemini_optimizer(key, model=model),
        max_tokens_per_batch=config.max_tokens_per_batch,
        chars_per_token=config.chars_per_token,
        max_items_per_call=config.max_items_per_call,
    )
    run = asyncio.run(orchestrator.optimize_document(api_key, document))
    info(f"[{input_path.name}] optimized {run.item_count} captions in {run.total_batches} batch(es)")

    output_path = _write_document(document, input_path, target_format, args.output, config)
    success(f"[{input_path.name}] -> {output_path}")


def serve(args, config: ServiceConfig) -> None:
    import uvicorn

    from subkit.web.server import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port)


def list_formats() -> None:
    info("Supported formats:")
    for fmt in SUPPORTED_FORMATS:
        info(f"  - {fmt:<5} {CONTENT_TYPES[fmt]}")


# ── 主入口 ──────────────────────────────────────────────────

def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Subtitle format conversion and AI text optimization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Formats: {', '.join(SUPPORTED_FORMATS)}

Examples:
  subkit convert movie.srt --to vtt                   # movie-<suffix>.vtt next to input
  subkit convert movie.ass --to srt -o movie.srt      # explicit output path
  subkit optimize movie.srt --api-key KEY             # Gemini optimize, same format
  subkit serve --port 8000                            # HTTP API
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API server")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    convert_parser = subparsers.add_parser("convert", help="Convert a subtitle file to another format")
    convert_parser.add_argument("input", type=str, help="Input subtitle file")
    convert_parser.add_argument("--to", type=str, required=True, choices=SUPPORTED_FORMATS, help="Target format")
    convert_parser.add_argument("--output", "-o", type=str, help="Output path (default: next to input)")

    optimize_parser = subparsers.add_parser("optimize", help="Optimize subtitle text with Gemini")
    optimize_parser.add_argument("input", type=str, help="Input subtitle file")
    optimize_parser.add_argument("--to", type=str, choices=SUPPORTED_FORMATS, help="Target format (default: input format)")
    optimize_parser.add_argument("--output", "-o", type=str, help="Output path (default: next to input)")
    optimize_parser.add_argument("--api-key", type=str, help="Gemini API key (default: GEMINI_API_KEY)")
    optimize_parser.add_argument("--model", type=str, help="Gemini model name")

    subparsers.add_parser("formats", help="List supported formats")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    load_env_file()
    config = ServiceConfig()

    if args.command == "formats":
        list_formats()
        return

    try:
        if args.command == "serve":
            serve(args, config)
        elif args.command == "convert":
            convert_one(args, config)
        elif args.command == "optimize":
            optimize_one(args, config)
    except SubkitError as e:
        error(f"{e.kind}: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
