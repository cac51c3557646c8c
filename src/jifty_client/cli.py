"""CLI entry point for jifty_client package."""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import click
import requests
import yaml
from dotenv import load_dotenv

from .client import JiftyClient
from .errors import JiftyError

load_dotenv()


def _parse_fields(pairs: Tuple[str, ...]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected FIELD=VALUE, got {pair!r}")
        fields[key] = value
    return fields


def _echo(data: Any) -> None:
    click.echo(yaml.safe_dump(data, default_flow_style=False, allow_unicode=True).rstrip())


def _get_client(ctx: click.Context) -> JiftyClient:
    """Build (and log in) the client on first use, from the group's options."""
    state = ctx.ensure_object(dict)
    if "client" not in state:
        options = state["options"]
        if not options["use_config"] and not (options["site"] and options["cookie_name"]):
            raise click.UsageError("--site and --cookie-name are required unless --use-config is given.")
        state["client"] = JiftyClient(
            options["site"] or "",
            options["cookie_name"] or "",
            email=options["email"],
            password=options["password"],
            sid=options["sid"],
            use_config=options["use_config"],
            strict_arguments=options["strict"],
        )
    return state["client"]


def pass_client(f: Callable[..., Any]) -> Callable[..., Any]:
    """Pass the lazily built client to a command; report client failures as CLI errors."""

    @click.pass_context
    @functools.wraps(f)
    def wrapper(ctx: click.Context, *args: Any, **kwargs: Any) -> Any:
        try:
            return f(_get_client(ctx), *args, **kwargs)
        except (JiftyError, requests.RequestException) as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


@click.group()
@click.option("--site", envvar="JIFTY_SITE", help="URL of the Jifty application.")
@click.option("--cookie-name", envvar="JIFTY_COOKIE_NAME", help="Session cookie name.")
@click.option("--email", envvar="JIFTY_EMAIL", help="Login email address.")
@click.option("--password", envvar="JIFTY_PASSWORD", help="Login password.")
@click.option("--sid", envvar="JIFTY_SID", help="Existing session ID; skips login.")
@click.option("--use-config", is_flag=True, help="Read (and update) ~/.jifty; supplies --site and --cookie-name.")
@click.option("--strict", is_flag=True, help="Validate arguments against the server's action specs.")
@click.option("--verbose", "-v", is_flag=True, help="Log HTTP traffic.")
@click.pass_context
def main(
    ctx: click.Context,
    site: Optional[str],
    cookie_name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    sid: Optional[str],
    use_config: bool,
    strict: bool,
    verbose: bool,
) -> None:
    """Talk to a Jifty application's REST interface."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    ctx.ensure_object(dict)["options"] = {
        "site": site,
        "cookie_name": cookie_name,
        "email": email,
        "password": password,
        "sid": sid,
        "use_config": use_config,
        "strict": strict,
    }


@main.command("read")
@click.argument("model")
@click.argument("key")
@click.argument("value")
@pass_client
def read_cmd(client: JiftyClient, model: str, key: str, value: str) -> None:
    """Show the MODEL record whose KEY is VALUE."""
    _echo(client.read(model, key, value))


@main.command("search")
@click.argument("model")
@click.argument("criteria", nargs=-1)
@click.option("--column", "out_column", help="Only output this column.")
@pass_client
def search_cmd(client: JiftyClient, model: str, criteria: Tuple[str, ...], out_column: str) -> None:
    """Find MODEL records matching KEY VALUE [KEY VALUE]..."""
    if len(criteria) % 2:
        raise click.BadParameter("criteria must be KEY VALUE pairs", param_hint="CRITERIA")
    pairs: List[Tuple[str, str]] = list(zip(criteria[::2], criteria[1::2]))
    _echo(client.search(model, pairs, out_column=out_column))


@main.command("create")
@click.argument("model")
@click.argument("fields", nargs=-1)
@pass_client
def create_cmd(client: JiftyClient, model: str, fields: Tuple[str, ...]) -> None:
    """Create a MODEL record from FIELD=VALUE arguments."""
    _echo(client.create(model, **_parse_fields(fields)))


@main.command("update")
@click.argument("model")
@click.argument("key")
@click.argument("value")
@click.argument("fields", nargs=-1)
@pass_client
def update_cmd(client: JiftyClient, model: str, key: str, value: str, fields: Tuple[str, ...]) -> None:
    """Set FIELD=VALUE on the MODEL record whose KEY is VALUE."""
    _echo(client.update(model, key, value, **_parse_fields(fields)))


@main.command("delete")
@click.argument("model")
@click.argument("key")
@click.argument("value")
@pass_client
def delete_cmd(client: JiftyClient, model: str, key: str, value: str) -> None:
    """Delete the MODEL record whose KEY is VALUE."""
    _echo(client.delete(model, key, value))


@main.command("act")
@click.argument("action")
@click.argument("fields", nargs=-1)
@pass_client
def act_cmd(client: JiftyClient, action: str, fields: Tuple[str, ...]) -> None:
    """Run ACTION with FIELD=VALUE arguments."""
    _echo(client.act(action, **_parse_fields(fields)))


@main.command("spec")
@click.argument("kind", type=click.Choice(["model", "action"]))
@click.argument("name")
@pass_client
def spec_cmd(client: JiftyClient, kind: str, name: str) -> None:
    """Show the server's spec for a model or action."""
    if kind == "model":
        _echo(client.get_model_spec(name))
    else:
        _echo(client.get_action_spec(name))


if __name__ == "__main__":
    main()
