"""jifty_client.client

`JiftyClient` talks to the REST interface of a Jifty application: it logs in,
performs CRUD requests against ``model/`` and ``action/`` endpoints, and
builds record classes from the server's model specs.

Example::

    from jifty_client import JiftyClient

    client = JiftyClient(
        "http://mushroom.mu/",
        "MUSHROOM_KINGDOM_SID",
        email="god@mushroom.mu",
        password="melange",
    )

    client.create("Hero", name="Mario", job="Plumber")

    # find the hero whose job is Plumber and rename him
    client.update("Hero", "job", "Plumber", name="Luigi", color="Green")

    client.delete("Enemy", "name", "Bowser")

    Hero = client.create_model_class("Hero")
    luigi = Hero.load(client, "name", "Luigi")
    luigi.color = "Red"  # PUT model/Hero/id/<id>
"""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Type, Union
from urllib.parse import urlsplit

import click
import requests

from . import __version__
from . import config as config_io
from .config import CONFIG_KEYS, DEFAULT_CONFIG_FILE, ClientConfig
from .errors import (
    AuthenticationError,
    InvalidInputError,
    JiftyError,
    MandatoryArgumentError,
    UnknownArgumentError,
)
from .models import build_model_class
from .record import Record
from .utils import (
    Pairs,
    canonical_model_name,
    email_eq,
    escape,
    form_url_encoded_args,
    iter_pairs,
    join_url,
    load_date,
    load_yaml,
)

logger = logging.getLogger(__name__)

__all__ = ["JiftyClient"]

Url = Union[str, Sequence[Any]]
Action = Union[str, Tuple[str, str]]

HEADERS = {
    "Accept": "text/x-yaml, text/yaml, */*",
    "User-Agent": f"jifty-client/{__version__}",
}

MONIKER = "fnord"
WEBSERVICES_PATH = "/__jifty/webservices/yaml"

_crud_re = re.compile(r"^(?:create|update|delete)$", re.IGNORECASE)
_localhost_re = re.compile(r"\blocalhost\b")


class JiftyClient:
    """Client for one Jifty application.

    Parameters
    ----------
    site:
        Base URL of the application.
    cookie_name:
        Name of the session cookie (``Framework/Web/SessionCookieName`` in the
        application's config).
    email, password:
        Credentials used by `login`.
    sid:
        A known session ID; skips logging in.
    session:
        The `requests.Session` to use. One is created when omitted.
    use_config:
        Read ``config_file`` on construction, prompting for credentials when
        it has none.
    strict_arguments:
        Validate action/CRUD arguments against the server's action specs
        before sending them.
    """

    def __init__(
        self,
        site: str,
        cookie_name: str,
        *,
        appname: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        sid: Optional[str] = None,
        session: Optional[requests.Session] = None,
        config_file: Optional[str] = DEFAULT_CONFIG_FILE,
        use_config: bool = False,
        use_filters: bool = True,
        filter_file: str = ".jifty",
        strict_arguments: bool = False,
    ) -> None:
        self.session = session if session is not None else self._make_session()
        self.cookie_name = cookie_name
        self.site = site
        self.appname = appname
        self.email = email
        self.password = password
        self.config_file = config_file
        self.use_config = use_config
        self.use_filters = use_filters
        self.filter_file = filter_file
        self.strict_arguments = strict_arguments

        self.config: Dict[str, Any] = {}
        self.action_specs: Dict[str, Any] = {}
        self.model_specs: Dict[str, Any] = {}
        self.model_classes: Dict[str, Type[Record]] = {}

        self._sid: Optional[str] = None
        if sid:
            self.sid = sid

        if self.use_config and self.config_file:
            self.load_config()

        if not self.sid:
            self.login()

    @staticmethod
    def _make_session() -> requests.Session:
        session = requests.Session()
        session.headers.update(HEADERS)
        return session

    # ------------------------------------------------------------------
    # Settings with side effects
    # ------------------------------------------------------------------
    @property
    def site(self) -> str:
        return self._site

    @site.setter
    def site(self, site: str) -> None:
        # cookie jars refuse to send cookies to "localhost"
        self._site = _localhost_re.sub("127.0.0.1", site, count=1).rstrip("/")

    @property
    def sid(self) -> Optional[str]:
        return self._sid

    @sid.setter
    def sid(self, sid: Optional[str]) -> None:
        self._sid = sid
        if sid:
            host = urlsplit(self.site).hostname or ""
            self.session.cookies.set(self.cookie_name, sid, domain=host, path="/")

    def get_sid(self) -> Optional[str]:
        """Read the session ID back out of the session's cookie jar."""
        sid = None
        for cookie in self.session.cookies:
            if cookie.name == self.cookie_name:
                sid = cookie.value
        self.sid = sid
        return sid

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self) -> bool:
        """Log in with ``email``/``password`` through the Login action.

        Assumes the application uses Jifty's password authentication plugin;
        override in a subclass otherwise. Does nothing when a sid is known.
        """
        if self.sid:
            return True

        if not (self.email and self.password):
            raise AuthenticationError("Unable to log in without an email and password.")
        if "@" not in self.email:
            raise AuthenticationError('Your email did not contain an "@" sign.')

        result = self.call("Login", address=self.email, password=self.password)
        if (result or {}).get("failure"):
            raise AuthenticationError("Unable to log in.")

        self.get_sid()
        logger.info("Logged in to %s as %s", self.site, self.email)
        return True

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(self, verb: str, uri: str, body: Optional[Any] = None) -> requests.Response:
        headers = {}
        if body is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        logger.debug("%s %s", verb.upper(), uri)
        return self.session.request(verb.upper(), uri, data=body, headers=headers)

    @staticmethod
    def _decode(response: requests.Response, plain_scalars: bool = False) -> Any:
        response.raise_for_status()
        return load_yaml(response.content.decode("utf-8"), plain_scalars)

    def call(self, action: str, /, **args: Any) -> Any:
        """Run *action* through the web services endpoint (not the REST interface).

        Only used for logging in.
        """
        data = [(f"J:A-{MONIKER}", action)]
        data.extend((f"J:A:F-{key}-{MONIKER}", value) for key, value in args.items())

        response = self._request("post", self.site + WEBSERVICES_PATH, form_url_encoded_args(data))
        result = self._decode(response) or {}
        return result.get(MONIKER)

    def method(
        self, verb: str, url: Url, args: Optional[Pairs] = None, plain_scalars: bool = False
    ) -> Any:
        """Perform *verb* against ``<site>/=/<url>.yml`` and return the decoded YAML.

        *url* is either a path like ``model/MyApp.Model.Foo/name`` or a sequence
        of fragments, which are escaped and joined with ``/``. GET and HEAD send
        *args* as a query string; other verbs send them form-encoded.
        *plain_scalars* keeps unquoted YAML values as strings.
        """
        verb = verb.lower()
        if not isinstance(url, str):
            url = join_url(*url)
        uri = f"{self.site}/=/{url.rstrip('/')}.yml"

        if verb in ("get", "head"):
            if args:
                uri += "?" + form_url_encoded_args(args)
            response = self._request(verb, uri)
        else:
            body = form_url_encoded_args(args) if args else None
            response = self._request(verb, uri, body)

            # Jifty::Plugin::REST drops the .yml when redirecting after an
            # update, so ask again for the YAML rendition.
            if response.ok and response.headers.get("Content-Type", "").startswith("text/html"):
                followup = response.request
                response = self._request(followup.method, f"{response.url}.yml", followup.body)

        return self._decode(response, plain_scalars)

    def get(self, url: Url, args: Optional[Pairs] = None, plain_scalars: bool = False) -> Any:
        return self.method("get", url, args, plain_scalars)

    def post(self, url: Url, args: Optional[Pairs] = None) -> Any:
        return self.method("post", url, args)

    # ------------------------------------------------------------------
    # REST operations
    # ------------------------------------------------------------------
    def act(self, action: str, /, **args: Any) -> Any:
        """Perform *action* through the REST interface."""
        if self.strict_arguments:
            self.validate_action_args(action, args)
        return self.post(["action", action], args)

    def create(self, model: str, /, **fields: Any) -> Any:
        """Create a *model* record with *fields*."""
        if self.strict_arguments:
            self.validate_action_args(("create", model), fields)
        return self.post(["model", model], fields)

    def delete(self, model: str, key: str, value: Any, /) -> Any:
        """Delete the *model* record whose *key* is *value*."""
        if self.strict_arguments:
            self.validate_action_args(("delete", model), {key: value})
        return self.method("delete", ["model", model, key, value])

    def update(self, model: str, key: str, value: Any, /, **fields: Any) -> Any:
        """Set *fields* on the *model* record whose *key* is *value*."""
        if self.strict_arguments:
            self.validate_action_args(("update", model), {key: value, **fields})
        return self.method("put", ["model", model, key, value], fields)

    def read(self, model: str, key: str, value: Any, /, *, plain_scalars: bool = False) -> Any:
        """Return the *model* record whose *key* is *value*."""
        return self.get(["model", model, key, value], plain_scalars=plain_scalars)

    def search(
        self,
        model: str,
        criteria: Optional[Pairs] = None,
        out_column: Optional[str] = None,
    ) -> Any:
        """Find every *model* record matching *criteria*.

        A list value matches any of its items: ``{"id": [1, 2]}`` searches
        ``id/1/id/2``. *out_column* restricts the output to one column.
        """
        fragments = ["search", model]
        for key, value in iter_pairs(criteria):
            if isinstance(value, (list, tuple)):
                for item in value:
                    fragments.extend((key, item))
            else:
                fragments.extend((key, value))
        if out_column is not None:
            fragments.append(out_column)
        return self.get(fragments)

    # ------------------------------------------------------------------
    # Specs and validation
    # ------------------------------------------------------------------
    def get_action_spec(self, name: str) -> Any:
        """Return the argument spec of action *name*, asking the server only once."""
        if name not in self.action_specs:
            self.action_specs[name] = self.get(f"action/{name}")
        else:
            logger.debug("Action spec cache hit for %s", name)
        return self.action_specs[name]

    def get_model_spec(self, name: str) -> Any:
        """Return the column spec of model *name*, asking the server only once."""
        if name not in self.model_specs:
            self.model_specs[name] = self.get(f"model/{name}")
        else:
            logger.debug("Model spec cache hit for %s", name)
        return self.model_specs[name]

    def validate_action_args(self, action: Action, args: Mapping[str, Any]) -> bool:
        """Check *args* against the server's spec for *action*.

        *action* is an action name, or an ``(operation, model)`` pair for CRUD
        where operation is create, update or delete. Raises
        `MandatoryArgumentError` or `UnknownArgumentError`; returns True
        otherwise.
        """
        if isinstance(action, str):
            name = action
        else:
            operation, model = action
            if not _crud_re.match(operation):
                raise InvalidInputError(
                    f"Invalid model operation: {operation}. Expected 'create', 'update', or 'delete'."
                )
            name = operation.lower().capitalize() + canonical_model_name(model)

        action_spec = self.get_action_spec(name) or {}
        remaining = dict(args)
        missing = []
        for arg, arg_spec in action_spec.items():
            if (arg_spec or {}).get("mandatory") and remaining.get(arg) is None:
                missing.append(arg)
            remaining.pop(arg, None)

        if missing:
            raise MandatoryArgumentError(
                f"Mandatory argument{'s' if len(missing) > 1 else ''} "
                f"{', '.join(repr(m) for m in missing)} not given for action {name}.",
                name,
                missing,
            )
        if remaining:
            raise UnknownArgumentError(
                f"Unknown arguments given for action {name}: {', '.join(remaining)}",
                name,
                remaining,
            )
        return True

    # ------------------------------------------------------------------
    # Record classes
    # ------------------------------------------------------------------
    def name_model_class(self, model: str) -> str:
        """Qualified name of the class `create_model_class` builds for *model*."""
        return f"{type(self).__module__}.{canonical_model_name(model)}"

    def create_model_class(self, model: str) -> Type[Record]:
        """Return the `Record` subclass for *model*, building it on first use.

        Classes are cached per full model name for the client's lifetime; a
        later schema change on the server is not picked up.
        """
        cls = self.model_classes.get(model)
        if cls is not None and cls.jifty_synthesized:
            return cls

        cls = build_model_class(self, model, self.get_model_spec(model))
        self.model_classes[model] = cls
        return cls

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    escape = staticmethod(escape)
    join_url = staticmethod(join_url)
    form_url_encoded_args = staticmethod(form_url_encoded_args)
    load_date = staticmethod(load_date)
    email_eq = staticmethod(email_eq)

    def email_of(self, user_id: Any) -> Optional[str]:
        """Email address of user *user_id*."""
        user = self.read("User", "id", user_id)
        return (user or {}).get("email")

    def is_me(self, email: Optional[str]) -> bool:
        """True if *email* looks like the logged-in user's address."""
        if email is None:
            return False
        return email_eq(self.email, email)

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def load_config(self) -> Dict[str, Any]:
        """Apply the user's config file, logging in and saving the sid if needed.

        Meant for small standalone scripts: fixes loose file permissions,
        prompts for credentials when the file has neither email nor sid, and
        rewrites the file with the new sid after a successful login.
        """
        self.config_permissions()
        self.read_config_file()
        self.apply_config(self.config)

        if not (self.config.get("email") or self.config.get("sid")):
            self.prompt_login_info()

        if not self.config.get("sid"):
            if not self.sid:
                self.login()
            self.config["sid"] = self.sid
            self.write_config_file()

        return self.config

    def apply_config(self, config: Mapping[str, Any]) -> None:
        """Copy the allow-listed settings of *config* onto this client."""
        settings = ClientConfig.model_validate(dict(config))
        for key, attribute in CONFIG_KEYS.items():
            value = getattr(settings, key)
            if value is not None:
                setattr(self, attribute, value)

    def config_permissions(self) -> bool:
        return config_io.fix_permissions(self.config_file)

    def read_config_file(self) -> Dict[str, Any]:
        if os.path.exists(self.config_file):
            self.config = config_io.read_config_file(self.config_file)
        return self.config

    def write_config_file(self) -> None:
        config_io.write_config_file(self.config_file, self.config)

    def prompt_login_info(self) -> None:
        """Ask for email and password until logging in with them succeeds."""
        click.echo(
            f"Before we get started, please enter your {self.site}\n"
            "username and password.\n\n"
            f"This information will be stored in {self.config_file},\n"
            "should you ever need to change it.\n"
        )

        while True:
            self.config["email"] = click.prompt("First, what's your email address?")
            self.config["password"] = click.prompt("And your password?", hide_input=True)

            self.email = self.config["email"]
            self.password = self.config["password"]

            try:
                self.login()
                return
            except (JiftyError, requests.RequestException) as exc:
                logger.debug("Login attempt failed: %s", exc)

            self.email = ""
            self.password = ""
            click.echo("That combination doesn't seem to be correct. Try again?")

    def filter_config(self, directory: Optional[str] = None) -> Dict[str, Any]:
        """Merged contents of every ``filter_file`` from *directory* (default: cwd) up.

        Settings in deeper directories win. Returns ``{}`` when ``use_filters``
        is off.
        """
        if not self.use_filters:
            return {}
        return config_io.filter_config(directory or os.getcwd(), self.filter_file)
