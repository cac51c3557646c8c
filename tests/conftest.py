from types import SimpleNamespace

import pytest
import requests
import yaml

from jifty_client.client import JiftyClient

SITE = "http://jifty.test"
COOKIE = "JIFTY_SID"


def url(path):
    return f"{SITE}/=/{path}.yml"


class FakeResponse:
    def __init__(self, body="", status_code=200, content_type="text/x-yaml", url="", cookies=None):
        self.content = body.encode("utf-8")
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self.url = url
        self.cookies = cookies or {}
        self.request = None

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)


class FakeSession(requests.Session):
    """Session that replays queued responses and records every request."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.routes = {}

    def queue(self, method, target, data=None, raw=None, **kwargs):
        body = raw if raw is not None else yaml.safe_dump(data, sort_keys=False)
        kwargs.setdefault("url", target)
        self.routes.setdefault((method, target), []).append(FakeResponse(body, **kwargs))

    def request(self, method, url, data=None, headers=None, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, data=data, headers=headers or {}))
        queued = self.routes.get((method, url))
        if not queued:
            return FakeResponse("", status_code=404, url=url)

        response = queued.pop(0) if len(queued) > 1 else queued[0]
        response.request = SimpleNamespace(method=method, body=data)
        for name, value in response.cookies.items():
            self.cookies.set(name, value, domain="jifty.test", path="/")
        return response

    def calls_to(self, method, target):
        return [c for c in self.calls if c.method == method and c.url == target]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return JiftyClient(SITE, COOKIE, sid="s3cret", session=session, use_config=False)
