import pytest

from chat_diagnostics.firebase_diagnostics import (
    CHAT_STATE_JS,
    FINAL_CHAT_JS,
    FIREBASE_STATE_JS,
    IDLE_POLL_INTERVAL,
    SIGN_IN_JS,
)


class FakeConsoleMessage:
    def __init__(self, text):
        self.text = text


class FakeRequest:
    def __init__(self, url, failure="net::ERR_FAILED"):
        self.url = url
        self.failure = failure


class FakeResponse:
    def __init__(self, url, status):
        self.url = url
        self.status = status


class FakePage:
    """Records every call the runner makes and answers evaluations from a table."""

    def __init__(self, evaluations=None, fail_on=None, input_disabled=False):
        self.handlers = {}
        self.calls = []
        self.evaluations = evaluations or {}
        self.fail_on = fail_on or {}
        self.input_disabled = input_disabled
        self.screenshots = []

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.fail_on:
            raise self.fail_on[name]

    def goto(self, url, **kwargs):
        self._record("goto", url, **kwargs)

    def reload(self, **kwargs):
        self._record("reload", **kwargs)

    def wait_for_timeout(self, timeout):
        self._record("wait_for_timeout", timeout)

    def evaluate(self, expression, arg=None):
        self._record("evaluate", expression, arg)
        return self.evaluations.get(expression)

    def wait_for_selector(self, selector, **kwargs):
        self._record("wait_for_selector", selector, **kwargs)

    def eval_on_selector(self, selector, expression):
        self._record("eval_on_selector", selector, expression)
        return self.input_disabled

    def fill(self, selector, text):
        self._record("fill", selector, text)

    def click(self, selector):
        self._record("click", selector)

    def screenshot(self, **kwargs):
        self.screenshots.append(kwargs)

    def call_names(self):
        return [name for name, _, _ in self.calls]

    def steps(self):
        """Calls made by the runner, without the network-idle polling."""
        return [
            call for call in self.calls
            if call[:2] != ("wait_for_timeout", (IDLE_POLL_INTERVAL,))
        ]


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_page(self):
        return self.page

    def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser):
        self.browser = browser
        self.launch_kwargs = None

    def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    def __init__(self, page):
        self.browser = FakeBrowser(page)
        self.chromium = FakeChromium(self.browser)


HEALTHY_EVALUATIONS = {
    FIREBASE_STATE_JS: {
        "windowFirebase": True,
        "hasAuth": True,
        "hasDb": True,
        "authInitialized": True,
        "dbInitialized": True,
        "useFirebaseAuth": True,
        "chatMessagesCount": 2,
    },
    CHAT_STATE_JS: {
        "count": 2,
        "messages": [{"text": "hello"}, {"text": "hi"}],
        "chatWindowHTML": "<div class=\"msg\">hello</div>",
    },
    SIGN_IN_JS: None,
    FINAL_CHAT_JS: {
        "messages": 3,
        "html": "<div class=\"msg\">hello</div><div class=\"msg\">Firebase diagnostic test message</div>",
    },
}


@pytest.fixture
def healthy_page():
    return FakePage(evaluations=dict(HEALTHY_EVALUATIONS))


@pytest.fixture
def report_path(tmp_path):
    return tmp_path / "out" / "firebase_diagnostics.json"
