"""Command line entry point.

    page-bridge classify 13812345678
    page-bridge fill form.html 13812345678 --output filled.html
    page-bridge highlight https://example.com 重要
    page-bridge replace page.html 'colou?r' hue --regex
    page-bridge resume cv.pdf
    page-bridge serve --uds /tmp/page-bridge.sock

Pages are read from a file or fetched over HTTP. One-shot commands run
against an in-memory copy of the stored settings and never write them.
"""

from __future__ import annotations

__all__ = ['main']

import argparse
import asyncio
import json
import logging
import pathlib
import sys
import typing
from collections.abc import Sequence

import httpx
import pydantic

from page_bridge.autofill import classify
from page_bridge.boundary import ErrorBoundary
from page_bridge.config import RuntimeConfig, load_config
from page_bridge.contexts.base import COORDINATOR_ADDRESS
from page_bridge.errors import BridgeError
from page_bridge.paths import CONFIG_PATH
from page_bridge.pdf_text import extract_pdf_text
from page_bridge.resume import extract_resume_info
from page_bridge.runtime import Extension
from page_bridge.settings import JsonFileSettingsStore, MemorySettingsStore

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 30.0

boundary = ErrorBoundary(exit_code=1)


@boundary
def main(argv: Sequence[str] | None = None) -> None:
    """Parse args, configure logging, run the command."""
    args = parse_args(argv)
    config = load_config(args.config)
    configure_logging(config, verbose=args.verbose)

    match args.command:
        case 'classify':
            print(classify(args.text))
        case 'resume':
            text = extract_pdf_text(args.pdf.read_bytes()).text
            _print_json(extract_resume_info(text).to_wire())
        case 'serve':
            asyncio.run(_serve(config, args))
        case _:
            asyncio.run(_run_on_page(config, args))


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(prog='page-bridge', description='Inspect and fill web pages.')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log at DEBUG level')
    parser.add_argument(
        '--config',
        type=pathlib.Path,
        default=CONFIG_PATH,
        help=f'Runtime config file (default: {CONFIG_PATH})',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    classify_parser = subparsers.add_parser('classify', help='Classify a value')
    classify_parser.add_argument('text')

    fill_parser = subparsers.add_parser('fill', help='Auto-fill a value into a page form')
    _add_page_args(fill_parser)
    fill_parser.add_argument('value')

    highlight_parser = subparsers.add_parser('highlight', help='Highlight a term in a page')
    _add_page_args(highlight_parser)
    highlight_parser.add_argument('term')
    highlight_parser.add_argument('--case-sensitive', action='store_true')

    replace_parser = subparsers.add_parser('replace', help='Find and replace text in a page')
    _add_page_args(replace_parser)
    replace_parser.add_argument('find')
    replace_parser.add_argument('replacement')
    replace_parser.add_argument('--case-sensitive', action='store_true')
    replace_parser.add_argument('--whole-word', action='store_true')
    replace_parser.add_argument('--regex', action='store_true')

    resume_parser = subparsers.add_parser('resume', help='Extract resume fields from a PDF')
    resume_parser.add_argument('pdf', type=pathlib.Path)

    serve_parser = subparsers.add_parser('serve', help='Serve the HTTP bridge')
    serve_parser.add_argument('--host', default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=8765)
    serve_parser.add_argument('--uds', help='Unix socket path (overrides --host/--port)')

    return parser.parse_args(argv)


def _add_page_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('source', help='HTML file path or http(s) URL')
    parser.add_argument('--output', '-o', type=pathlib.Path, help='Write the resulting HTML here')


def configure_logging(config: RuntimeConfig, *, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format='%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        stream=sys.stderr,
    )
    # Silence noisy third-party loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def load_page(source: str) -> tuple[str, str]:
    """Return ``(html, url)`` for a file path or an http(s) URL."""
    if source.startswith(('http://', 'https://')):
        response = httpx.get(source, follow_redirects=True, timeout=FETCH_TIMEOUT)
        response.raise_for_status()
        return response.text, str(response.url)
    path = pathlib.Path(source)
    return path.read_text(encoding='utf-8'), path.resolve().as_uri()


async def _run_on_page(config: RuntimeConfig, args: argparse.Namespace) -> None:
    html, url = load_page(args.source)
    stored = await JsonFileSettingsStore(pathlib.Path(config.settings_path)).get_settings()

    async with Extension(config, settings_store=MemorySettingsStore(stored)) as extension:
        tab = await extension.open_tab(html, url)
        popup = await extension.open_popup()
        action, payload = _page_command(args)
        result = await popup.router.call(
            COORDINATOR_ADDRESS,
            'sendToTab',
            {'tabId': tab.id, 'action': action, 'payload': payload},
        )
        _print_json(result)
        if args.output is not None:
            args.output.write_text(tab.document.serialize(), encoding='utf-8')
            logger.info(f'Wrote {args.output}')


def _page_command(args: argparse.Namespace) -> tuple[str, typing.Any]:
    match args.command:
        case 'fill':
            return 'fillForm', {'text': args.value}
        case 'highlight':
            return 'capability:highlightText', [args.term, {'caseSensitive': args.case_sensitive}]
        case 'replace':
            options = {'caseSensitive': args.case_sensitive, 'wholeWord': args.whole_word, 'useRegex': args.regex}
            return 'capability:findAndReplace', [args.find, args.replacement, options]
        case _:
            raise ValueError(f'Unknown page command {args.command!r}')


async def _serve(config: RuntimeConfig, args: argparse.Namespace) -> None:
    from page_bridge.http_bridge import serve

    extension = Extension(config)
    await serve(extension, host=args.host, port=args.port, uds=args.uds)


def _print_json(data: typing.Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# Boundary handlers - registered after main, dispatched when main raises


@boundary.handler(BridgeError)
def _handle_bridge_error(exc: BridgeError) -> None:
    print(f'error: {exc}', file=sys.stderr)


@boundary.handler(httpx.HTTPError)
def _handle_http_error(exc: httpx.HTTPError) -> None:
    print(f'fetch failed: {exc}', file=sys.stderr)


@boundary.handler(pydantic.ValidationError)
def _handle_validation_error(exc: pydantic.ValidationError) -> None:
    print(f'validation error: {exc.error_count()} error(s) in {exc.title}', file=sys.stderr)


@boundary.handler(FileNotFoundError)
def _handle_file_error(exc: FileNotFoundError) -> None:
    print(f'file not found: {exc.filename}', file=sys.stderr)


@boundary.handler(Exception)
def _handle_error(exc: Exception) -> None:
    print(f'error: {exc!r}', file=sys.stderr)


if __name__ == '__main__':
    main()
