import argparse
import logging
import os

import uvicorn

from vardec.config import DEFAULT_TAB_SIZE, SHOW_USE_COUNTS
from vardec.services.hints import render_annotated_text, run_pass
from vardec.services.languages.registry import language_id_for_path, supported_language_ids


def _serve(args: argparse.Namespace) -> int:
    url = f"http://{args.host}:{args.port}"
    print(f"🚀 Starting hint server at {url}")
    print("   Press Ctrl+C to stop.")

    uvicorn.run(
        "vardec.main:app",
        host=args.host,
        port=args.port,
        reload=False,
    )
    return 0


def _annotate(args: argparse.Namespace) -> int:
    target_path = os.path.abspath(args.file)
    if not os.path.isfile(target_path):
        raise SystemExit(f"File does not exist: {target_path}")

    language_id = args.language or language_id_for_path(target_path)
    if language_id is None:
        raise SystemExit(
            f"Cannot tell the language of {target_path}; pass --language "
            f"(one of: {', '.join(supported_language_ids())})"
        )

    with open(target_path, "r", encoding="utf-8") as f:
        text = f.read()

    response = run_pass(
        text,
        language_id,
        tab_size=args.tab_size,
        path=target_path,
        document_id=target_path,
        show_use_counts=args.counts,
    )

    if response.status == "unsupported":
        raise SystemExit(f"Unsupported language: {language_id}")
    if response.notice:
        print(f"⚠️ {response.notice}")
    elif response.status == "unparsable":
        print(f"⚠️ Could not parse {target_path}; no hints to show")

    print(render_annotated_text(text, response.decorations))
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the CLI.

    - `serve` starts the FastAPI server that editor plugins talk to.
    - `annotate FILE` prints the file with hints written into its blank lines.
    """
    parser = argparse.ArgumentParser(
        prog="vardec",
        description="Show which variables stay live across blank lines.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the hint server.")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface to bind the server to (default: 127.0.0.1).",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000).",
    )
    serve.set_defaults(handler=_serve)

    annotate = subparsers.add_parser("annotate", help="Print a file with blank-line hints.")
    annotate.add_argument("file", help="Source file to analyse.")
    annotate.add_argument(
        "--language",
        default=None,
        help="Language identifier (default: detected from the file extension).",
    )
    annotate.add_argument(
        "--tab-size",
        type=int,
        default=DEFAULT_TAB_SIZE,
        help=f"Columns per tab when aligning hints (default: {DEFAULT_TAB_SIZE}).",
    )
    annotate.add_argument(
        "--counts",
        action="store_true",
        default=SHOW_USE_COUNTS,
        help="Show how many uses remain for each variable.",
    )
    annotate.set_defaults(handler=_annotate)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
