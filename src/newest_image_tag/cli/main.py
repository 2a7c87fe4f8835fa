"""Entry point for the newest-image-tag command.

Example:
    $ newest-image-tag nginx
    registry.hub.docker.com/library/nginx:1.25.3
    $ newest-image-tag quay.io/org/app -u ci --password-file ~/.quay -j
    {"tag":"1.1","image":"quay.io/org/app","imageWithTag":"quay.io/org/app:1.1"}
    $ newest-image-tag org/app --cache -r redis.internal --redis-key-ttl 3600
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from pydantic import ValidationError

from newest_image_tag.cli.utils import ExitCode, error_exit, info, success
from newest_image_tag.config import NewestTagConfig, load_config
from newest_image_tag.errors import NewestTagError
from newest_image_tag.observability import configure_logging
from newest_image_tag.service import get_newest_tag


def _get_version() -> str:
    """Return the installed package version, or 'unknown'."""
    try:
        return get_version("newest-image-tag")
    except PackageNotFoundError:
        return "unknown"


def read_password_file(path: Path) -> str:
    """Read a password from *path*, dropping the trailing line break."""
    return path.read_text(encoding="utf-8").rstrip("\r\n")


def _build_config(
    config_path: Path | None,
    overrides: dict[str, Any],
) -> NewestTagConfig:
    try:
        return load_config(config_path).with_overrides(overrides)
    except ValidationError as e:
        error_exit(f"Invalid configuration: {e}", exit_code=ExitCode.USAGE_ERROR)
    except (ValueError, yaml.YAMLError) as e:
        error_exit(f"Cannot load configuration: {e}", exit_code=ExitCode.USAGE_ERROR)


@click.command(
    name="newest-image-tag",
    help="""\b
Print the most recently created tag of IMAGE.

Works with registries serving Image Manifest Version 2, Schema 1.
Images without a registry domain are looked up on Docker Hub.

Examples:
    $ newest-image-tag nginx
    $ newest-image-tag quay.io/org/app -u ci -p secret --json-output
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.argument("image")
@click.option("--username", "-u", type=str, default=None, help="Registry username.")
@click.option("--password", "-p", type=str, default=None, help="Registry password.")
@click.option(
    "--password-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the registry password from a file (overrides --password).",
)
@click.option(
    "--cache/--no-cache",
    default=False,
    help="Cache tag creation times in Redis.",
)
@click.option("--redis-host", "-r", type=str, default=None, help="Redis host.")
@click.option("--redis-port", type=click.IntRange(1, 65535), default=None, help="Redis port.")
@click.option("--redis-db", "-d", type=click.IntRange(min=0), default=None, help="Redis database.")
@click.option("--redis-password", type=str, default=None, help="Redis password.")
@click.option(
    "--redis-key-ttl",
    type=click.IntRange(min=1),
    default=None,
    help="Lifetime of cached entries in seconds. [default: 604800]",
)
@click.option(
    "--threads",
    type=click.IntRange(min=1),
    default=None,
    help="Number of tags resolved in parallel. [default: 30]",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="Retries per registry request. [default: 10]",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Timeout of a single request attempt in seconds. [default: 10]",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option("--json-output", "-j", is_flag=True, help="Print the result as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.version_option(
    version=_get_version(),
    prog_name="newest-image-tag",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    image: str,
    username: str | None,
    password: str | None,
    password_file: Path | None,
    cache: bool,
    redis_host: str | None,
    redis_port: int | None,
    redis_db: int | None,
    redis_password: str | None,
    redis_key_ttl: int | None,
    threads: int | None,
    retries: int | None,
    timeout: float | None,
    config_path: Path | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """Print the newest tag of IMAGE."""
    configure_logging(verbose=verbose)

    if password_file is not None:
        password = read_password_file(password_file)

    # An untouched --cache/--no-cache keeps whatever the config file or env says.
    cache_enabled = cache if ctx.get_parameter_source("cache") is not ParameterSource.DEFAULT else None

    config = _build_config(
        config_path,
        {
            "credentials": {"username": username, "password": password},
            "worker_count": threads,
            "retry": {"retry_count": retries, "timeout_seconds": timeout},
            "cache": {
                "enabled": cache_enabled,
                "host": redis_host,
                "port": redis_port,
                "db": redis_db,
                "password": redis_password,
                "ttl_seconds": redis_key_ttl,
            },
        },
    )

    if verbose:
        info(f"Looking up newest tag of {image}")

    try:
        output = get_newest_tag(image, config)
    except NewestTagError as e:
        error_exit(str(e), exit_code=ExitCode.from_code(e.exit_code))

    if json_output:
        success(output.model_dump_json(by_alias=True))
    else:
        success(output.image_with_tag)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the newest-image-tag command.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
