"""CLI entry point — ``repo-flattener serve`` and ``repo-flattener flatten``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import httpx
import uvicorn

from repo_flattener.domain.exceptions import RepoFlattenerError
from repo_flattener.infrastructure.config import Settings, get_settings
from repo_flattener.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_flattener.interface.error_handlers import status_for
from repo_flattener.interface.schemas import FlattenResponse
from repo_flattener.services.file_tree import build_file_tree
from repo_flattener.services.flatten_repo import FlattenRepoUseCase
from repo_flattener.services.markdown_document import render_markdown_document

logger = logging.getLogger(__name__)

FORMATS = ("container", "document", "json")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point; ``serve`` is the default command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    if args.command == "flatten":
        return _run_flatten(args, settings)
    _serve(args, settings)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-flattener",
        description="Flatten a public GitHub repository into one document.",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API (default)")
    serve.add_argument("--host", default=None, help="Bind address (default: settings.host)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: settings.port)")

    flatten = sub.add_parser("flatten", help="Flatten one repository to stdout or a file")
    flatten.add_argument("github_url", help="https://github.com/<owner>/<repo>")
    flatten.add_argument("--revision", "-r", default=None, help="Branch, tag or sha (default: HEAD)")
    flatten.add_argument(
        "--format",
        "-f",
        choices=FORMATS,
        default="container",
        help="Output format (default: container)",
    )
    flatten.add_argument("--output", "-o", default=None, help="Write to this file instead of stdout")
    return parser


def _serve(args: argparse.Namespace, settings: Settings) -> None:
    """Start the uvicorn ASGI server."""
    uvicorn.run(
        "repo_flattener.interface.app:create_app",
        factory=True,
        host=args.host or os.environ.get("HOST", settings.host),
        port=args.port or int(os.environ.get("PORT", settings.port)),
        log_level=settings.log_level.lower(),
    )


def _run_flatten(args: argparse.Namespace, settings: Settings) -> int:
    try:
        text = asyncio.run(_flatten(args.github_url, args.revision, args.format, settings))
    except RepoFlattenerError as exc:
        print(f"error ({status_for(exc)}): {exc}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        logger.info("Wrote %s output to %s", args.format, args.output)
    else:
        sys.stdout.write(text)
    return 0


async def _flatten(url: str, revision: str | None, fmt: str, settings: Settings) -> str:
    token = settings.github_token.get_secret_value() if settings.github_token else None
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout_s),
        follow_redirects=True,
    ) as client:
        use_case = FlattenRepoUseCase(
            repo_source=GitHubRestAdapter(
                client, token, rate_limit_retries=settings.rate_limit_retries
            ),
            fetch_concurrency=settings.fetch_concurrency,
            max_file_bytes=settings.max_file_bytes,
        )
        result = await use_case.execute(url, revision)

    if fmt == "document":
        return render_markdown_document(result)
    if fmt == "json":
        response = FlattenResponse.from_result(result, build_file_tree(result.rendered))
        return json.dumps(response.model_dump(), indent=2) + "\n"
    return result.container_text + "\n"


if __name__ == "__main__":
    sys.exit(main())
