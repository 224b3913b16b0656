import sys

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from ytdlp_relay.app import app as flask_app

# Stand-ins for the extraction tool. Each runs as a real child process and
# receives "-f mp4 -o - <url>" in sys.argv.
WRITE_100 = "import sys; sys.stdout.buffer.write(bytes(range(100)))"
WRITE_NOTHING = "pass"
ECHO_ARGS = "import sys, json; sys.stdout.buffer.write(json.dumps(sys.argv[1:]).encode())"
WARN_THEN_WRITE = (
    "import sys; sys.stderr.write('WARNING: slow site\\n'); sys.stderr.flush(); "
    "sys.stdout.buffer.write(b'data')"
)
WRITE_THEN_FAIL = "import sys; sys.stdout.buffer.write(b'abc'); sys.stdout.flush(); sys.exit(3)"
WRITE_THEN_HANG = (
    "import sys, time; sys.stdout.buffer.write(b'x'); sys.stdout.buffer.flush(); time.sleep(60)"
)
MISSING_TOOL = ['/nonexistent/extractor-tool']


def tool(code):
    return [sys.executable, '-c', code]


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setitem(flask_app.config, 'TESTING', True)
    monkeypatch.setitem(flask_app.config, 'EXTRACTOR_COMMAND', tool(WRITE_100))
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def make_response(status=200, content=b'', headers=None, reason='OK'):
    response = requests.Response()
    response.status_code = status
    response._content = content
    response.headers = CaseInsensitiveDict(headers or {})
    response.reason = reason
    response.encoding = 'utf-8'
    response.url = 'http://localhost:3000/download'
    return response


class FakeSession:
    def __init__(self, response=None, error=None, on_post=None):
        self.response = response
        self.error = error
        self.on_post = on_post
        self.calls = []

    def post(self, url, json=None):
        self.calls.append((url, json))
        if self.on_post is not None:
            self.on_post()
        if self.error is not None:
            raise self.error
        return self.response


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self):
        for handle in self.pending:
            handle.callback()


class FakeInput:
    def __init__(self, value=''):
        self.value = value
        self.focused = 0

    def focus(self):
        self.focused += 1


class FakeButton:
    def __init__(self, text='Download'):
        self.text = text
        self.disabled = False


class RecordingSink:
    def __init__(self):
        self.shown = []
        self.hidden = 0

    def show(self, kind, text):
        self.shown.append((kind, text))

    def hide(self):
        self.hidden += 1


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def sink():
    return RecordingSink()
