import asyncio
import logging
import sys
from pathlib import Path

import click

from .address import GistEntry, GitFile, ReleaseAsset, parse_address
from .config import StoreConfig, config_from_env
from .error_handling import (
    ConfigError,
    GitSyncError,
    InvalidAddress,
    NotFound,
    StoreError,
    TransportError,
)
from .logging_config import configure_logging
from .store import ObjectStore
from .streams import ByteStream

__all__ = [
    "ByteStream",
    "ConfigError",
    "GistEntry",
    "GitFile",
    "GitSyncError",
    "InvalidAddress",
    "NotFound",
    "ObjectStore",
    "ReleaseAsset",
    "StoreConfig",
    "StoreError",
    "TransportError",
    "config_from_env",
    "main",
    "parse_address",
]

USAGE = """Put a file in, or get a file from, a git branch, a release asset or a gist.

\b
  # Put file in git repository
  GH_TOKEN=token ghstore git://owner/repository/branch/name[/name]... localfile
\b
  # Put file in git repository release assets
  GH_TOKEN=token ghstore asset://owner/repository/release/name localfile
\b
  # Put file in gist (gist_id may be * to match any gist holding name)
  GH_TOKEN=token ghstore gist://owner/gist_id/name localfile
\b
  # Get file: same addresses without localfile, content goes to stdout
  GH_TOKEN=token ghstore git://owner/repository/branch/name
"""


async def _copy_to(stream: ByteStream, out) -> None:
    async with stream:
        async for chunk in stream:
            out.write(chunk)
    out.flush()


async def _run(config: StoreConfig, uri: str, localfile: Path | None) -> None:
    async with ObjectStore(config) as store:
        if localfile is not None:
            url = await store.put_file(uri, localfile)
            click.echo(url)
        else:
            stream = await store.get(uri)
            await _copy_to(stream, click.get_binary_stream("stdout"))


@click.command(help=USAGE)
@click.argument("uri")
@click.argument(
    "localfile",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("-v", "--verbose", count=True)
def main(uri: str, localfile: Path | None, verbose: int) -> None:
    logging_level = "WARNING"
    if verbose == 1:
        logging_level = "INFO"
    elif verbose >= 2:
        logging_level = "DEBUG"
    configure_logging(logging_level)

    action = "put" if localfile is not None else "get"
    try:
        config = config_from_env()
        asyncio.run(_run(config, uri, localfile))
    except (StoreError, OSError) as e:
        # OSError covers TimeoutError and local spool/mirror directory failures
        click.echo(f"{action} error: {str(e) or 'timeout'}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
