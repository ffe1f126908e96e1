from __future__ import annotations

import json
import shlex
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer

from .configmanager import ConfigManager
from .errors import SlbAuthError, SlbError
from .listener_syncer import ListenerSyncer
from .slb_api import SlbApi
from .yaml_loader import ListenerFile, load_listener_file

logger = ConfigManager.get_logger(__name__)


def load_config_callback(value: str | None) -> str | None:
    """Eager callback to load env file before other options are processed."""
    ConfigManager.load_dotenv(value)
    return value


_SECRET_MARKERS = ("secret", "password", "token")


def _redact_args(args: list[str]) -> list[str]:
    out: list[str] = []
    hide_next = False
    for a in args:
        if hide_next:
            out.append("<redacted>")
            hide_next = False
            continue
        key, sep, _ = a.partition("=")
        if key.startswith("-") and any(m in key.lower() for m in _SECRET_MARKERS):
            # --secret=value keeps the key; --secret value hides the next argument
            out.append(f"{key}=<redacted>" if sep else a)
            hide_next = not sep
            continue
        out.append(a)
    return out


def format_cli_invocation_for_log(ctx: typer.Context) -> str:
    """Shell-quoted command line for the debug log, with credential-like options masked."""
    name = (ctx.info_name or ctx.command_path or "slbctl").strip()
    return shlex.join([name, *_redact_args([a for a in (ctx.args or []) if a])])


def print_json(value: Any) -> None:
    print(json.dumps(value, ensure_ascii=False, sort_keys=True, indent=2))


def require_force_if_interactive(*, force: bool, prompt: str) -> None:
    if force:
        return
    if not typer.confirm(prompt, default=False):
        raise typer.Exit(code=1)


@contextmanager
def client_context(*, readonly: bool = False) -> Generator[SlbApi, None, None]:
    """Create SlbApi from configuration with consistent behavior across commands."""
    region_id = ConfigManager.region_id()
    if not region_id:
        raise typer.BadParameter("SLBCTL_REGION_ID is required (set in environment or .env)")
    access_key_id = ConfigManager.access_key_id()
    access_key_secret = ConfigManager.access_key_secret()
    if not access_key_id or not access_key_secret:
        raise typer.BadParameter("Provide SLBCTL_ACCESS_KEY_ID and SLBCTL_ACCESS_KEY_SECRET in environment")
    try:
        retry_count = ConfigManager.http_retry_count()
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None

    with SlbApi(
        access_key_id=access_key_id,
        access_key_secret=access_key_secret,
        region_id=region_id,
        endpoint=ConfigManager.endpoint(),
        verify_tls=ConfigManager.verify_tls(),
        retry_count=retry_count,
        readonly=readonly,
    ) as api:
        yield api


def make_syncer(api: SlbApi, load_balancer_id: str) -> ListenerSyncer:
    try:
        poll_interval_s = ConfigManager.poll_interval_s()
        poll_timeout_s = ConfigManager.poll_timeout_s()
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None
    return ListenerSyncer(
        api=api,
        load_balancer_id=load_balancer_id,
        poll_interval_s=poll_interval_s,
        poll_timeout_s=poll_timeout_s,
    )


def load_declaration(path: Path, load_balancer_id: str | None) -> tuple[str, ListenerFile]:
    try:
        declared = load_listener_file(path)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(str(e)) from None
    effective_id = (load_balancer_id or declared.load_balancer_id or "").strip()
    if not effective_id:
        raise typer.BadParameter(f"No load_balancer_id in {path}; pass --load-balancer-id")
    if load_balancer_id and declared.load_balancer_id and load_balancer_id != declared.load_balancer_id:
        logger.warning(
            "--load-balancer-id %s overrides load_balancer_id %s from %s",
            load_balancer_id,
            declared.load_balancer_id,
            path,
        )
    return effective_id, declared


@contextmanager
def remote_errors() -> Generator[None, None, None]:
    """Report SLB errors as a message and a non-zero exit code."""
    try:
        yield
    except SlbAuthError as e:
        logger.error("%s", e)
        raise typer.Exit(code=2) from e
    except SlbError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1) from e
