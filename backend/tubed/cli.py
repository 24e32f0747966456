"""
Tubed CLI.

Commands:
- tubed serve    - Run the API server with uvicorn
- tubed cleanup  - Delete metadata rows whose file is missing from disk
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

from tubed.config import settings
from tubed.database import build_engine
from tubed.main import configure_logging
from tubed.services.file_service import FileService
from tubed.services.file_storage import FileStorageService
from tubed.services.metadata_store import MetadataStore

logger = logging.getLogger("tubed.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="tubed", description="Personal image and file hosting")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.API_HOST, help=f"Bind host (default: {settings.API_HOST})")
    serve_parser.add_argument("--port", type=int, default=settings.API_PORT, help=f"Bind port (default: {settings.API_PORT})")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    subparsers.add_parser("cleanup", help="Remove records whose file no longer exists")

    args = parser.parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "cleanup":
        return asyncio.run(cmd_cleanup())

    parser.print_help()
    return 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "tubed.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


async def cmd_cleanup() -> int:
    store = MetadataStore(build_engine(settings.DATABASE_URL))
    storage = FileStorageService(settings.STORAGE_ROOT, settings.PUBLIC_URL_PREFIX)
    try:
        await store.create_schema()
        result = await FileService(store, storage).cleanup_orphans()
    finally:
        await store.dispose()

    for record in result.deleted_files:
        print(f"Removed record: {record.name} ({record.url})")
    print(f"Removed {len(result.deleted_files)} orphaned record(s), {result.remaining_count} remaining")
    return 0


if __name__ == "__main__":
    sys.exit(main())
