"""Firebase chat diagnostics.

Loads the local chat app in headless Chromium, records console output, page
errors and Firebase network failures, samples the app's debug surface before
and after sending a message as a mock signed-in user, and writes everything to
a JSON report.

The page is expected to expose:
  window._firebase           object with `auth` and `db` once Firebase is up
  window._useFirebaseAuth    auth-mode flag
  window.chatMessages        array of loaded chat messages
  window.updateAuthGates()   optional, re-evaluates auth-gated UI
  #chatWindow, #messageInput, #sendBtn
and to read the signed-in identity from sessionStorage["mh_current"].
"""

import json
import time
from pathlib import Path

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

# Local chat app served by `npm start`
TARGET_URL = "http://localhost:3000"

REPORT_PATH = "diagnostics/firebase_diagnostics.json"
ERROR_SCREENSHOT_PATH = "diagnostics/firebase_diagnostics_error.png"

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

# All durations in milliseconds
NAVIGATION_TIMEOUT = 60000
LISTENER_SETTLE_DELAY = 10000
CHAT_LISTENER_DELAY = 3000
SELECTOR_TIMEOUT = 10000
SEND_PROPAGATION_DELAY = 3000
SCREENSHOT_TIMEOUT = 5000

# Network counts as idle once at most this many requests stay in flight for
# IDLE_TIME. Firestore keeps its Listen channel open for the page's lifetime.
MAX_INFLIGHT = 2
IDLE_TIME = 500
IDLE_POLL_INTERVAL = 100

# Console lines containing any of these are echoed to the terminal
ECHO_MARKERS = ("[DEBUG]", "Firestore", "chat")

FAILED_REQUEST_FILTERS = ("firebase", "firestore")
RESPONSE_FILTERS = ("firebase", "/api/firebase-config")

SESSION_KEY = "mh_current"
MOCK_USER = {
    "email": "test@bl.students.amrita.edu",
    "name": "Test User",
    "uid": "test_uid_123",
}

MESSAGE_INPUT = "#messageInput"
SEND_BUTTON = "#sendBtn"
TEST_MESSAGE = "Firebase diagnostic test message"

FIREBASE_STATE_JS = """() => {
    try {
        return {
            windowFirebase: !!window._firebase,
            hasAuth: !!(window._firebase && window._firebase.auth),
            hasDb: !!(window._firebase && window._firebase.db),
            authInitialized: window._firebase && window._firebase.auth ? true : false,
            dbInitialized: window._firebase && window._firebase.db ? true : false,
            useFirebaseAuth: window._useFirebaseAuth,
            chatMessagesCount: window.chatMessages ? window.chatMessages.length : 0
        };
    } catch (e) {
        return { error: String(e) };
    }
}"""

CHAT_STATE_JS = """() => {
    const chatWindow = document.getElementById('chatWindow');
    return {
        count: window.chatMessages ? window.chatMessages.length : 0,
        messages: window.chatMessages ? window.chatMessages.slice(0, 3) : [],
        chatWindowHTML: chatWindow ? chatWindow.innerHTML.substring(0, 200) : ''
    };
}"""

# updateAuthGates is optional; its failures are swallowed and not recorded
SIGN_IN_JS = """([key, user]) => {
    sessionStorage.setItem(key, JSON.stringify(user));
    if (typeof window.updateAuthGates === 'function') {
        try { window.updateAuthGates(); } catch (e) { }
    }
}"""

FINAL_CHAT_JS = """() => {
    const chatWindow = document.getElementById('chatWindow');
    return {
        messages: window.chatMessages ? window.chatMessages.length : 0,
        html: chatWindow ? chatWindow.innerHTML.substring(0, 300) : ''
    };
}"""


def new_diagnostics():
    return {
        "logs": [],
        "errors": [],
        "network": [],
        "firebaseInit": None,
        "chatMessages": None,
    }


def write_report(diagnostics, path):
    """Write the diagnostics record as 2-space indented JSON, creating parent dirs."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(diagnostics, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def url_matches(url, filters):
    return any(f in url for f in filters)


def attach_observers(page, diagnostics):
    def on_console(msg):
        text = msg.text
        diagnostics["logs"].append(text)
        if any(marker in text for marker in ECHO_MARKERS):
            print("📋", text)

    def on_pageerror(err):
        diagnostics["errors"].append(str(err))
        print("❌ Page error:", str(err))

    def on_requestfailed(req):
        if not url_matches(req.url, FAILED_REQUEST_FILTERS):
            return
        # `failure` is None only for requests that did not fail
        error_text = req.failure or ""
        diagnostics["network"].append({"type": "failed", "url": req.url, "error": error_text})
        print("❌ Network failed:", req.url, error_text)

    def on_response(res):
        if not url_matches(res.url, RESPONSE_FILTERS):
            return
        status = res.status
        if status != 200:
            diagnostics["network"].append({"type": "response", "url": res.url, "status": status})
            print("⚠️ Firebase API response:", res.url, status)

    page.on("console", on_console)
    page.on("pageerror", on_pageerror)
    page.on("requestfailed", on_requestfailed)
    page.on("response", on_response)


def track_inflight(page):
    """Return a set that holds the page's requests until they finish or fail."""
    inflight = set()
    page.on("request", inflight.add)
    page.on("requestfinished", inflight.discard)
    page.on("requestfailed", inflight.discard)
    return inflight


def wait_for_network_idle(page, inflight, timeout):
    waited = 0
    quiet = 0
    while quiet < IDLE_TIME:
        if waited >= timeout:
            raise PlaywrightTimeoutError(
                f"Timeout {NAVIGATION_TIMEOUT}ms exceeded waiting for network idle "
                f"({len(inflight)} requests in flight)"
            )
        page.wait_for_timeout(IDLE_POLL_INTERVAL)
        waited += IDLE_POLL_INTERVAL
        quiet = quiet + IDLE_POLL_INTERVAL if len(inflight) <= MAX_INFLIGHT else 0


def load_until_idle(page, inflight, navigate):
    started = time.monotonic()
    navigate(wait_until="load", timeout=NAVIGATION_TIMEOUT)
    elapsed = int((time.monotonic() - started) * 1000)
    wait_for_network_idle(page, inflight, max(NAVIGATION_TIMEOUT - elapsed, 0))


def save_error_screenshot(page, path=ERROR_SCREENSHOT_PATH):
    try:
        page.screenshot(path=path, full_page=True, timeout=SCREENSHOT_TIMEOUT)
        print(f"📸 Error screenshot saved to {path}")
    except Exception as e:
        print(f"Could not capture error screenshot: {e}")


def run(playwright, url=TARGET_URL, report_path=REPORT_PATH):
    browser = playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
    page = browser.new_page()
    diagnostics = new_diagnostics()

    attach_observers(page, diagnostics)
    inflight = track_inflight(page)

    try:
        print("🔍 Loading page...")
        load_until_idle(page, inflight, lambda **kw: page.goto(url, **kw))
        print("✅ Page loaded")

        # Hard refresh to drop any Firestore rules cached by a previous session
        load_until_idle(page, inflight, page.reload)
        print("✅ Page reloaded")

        # Give Firestore listeners time to attach and fire
        page.wait_for_timeout(LISTENER_SETTLE_DELAY)

        diagnostics["firebaseInit"] = page.evaluate(FIREBASE_STATE_JS)
        print("🔥 Firebase state:", diagnostics["firebaseInit"])

        page.wait_for_timeout(CHAT_LISTENER_DELAY)

        diagnostics["chatMessages"] = page.evaluate(CHAT_STATE_JS)
        print("💬 Chat state:", diagnostics["chatMessages"])

        print("🧪 Testing signed-in message send...")
        page.evaluate(SIGN_IN_JS, [SESSION_KEY, MOCK_USER])

        page.wait_for_selector(MESSAGE_INPUT, timeout=SELECTOR_TIMEOUT)
        is_disabled = page.eval_on_selector(MESSAGE_INPUT, "el => el.disabled")
        print("📝 Message input disabled?", is_disabled)

        page.fill(MESSAGE_INPUT, TEST_MESSAGE)
        page.click(SEND_BUTTON)

        page.wait_for_timeout(SEND_PROPAGATION_DELAY)

        final_chat = page.evaluate(FINAL_CHAT_JS)
        diagnostics["chatMessages"] = {**diagnostics["chatMessages"], "afterSend": final_chat}
        print("✅ Final chat state:", final_chat)

    except Exception as e:
        diagnostics["errors"].append(str(e))
        print("❌ Test error:", str(e))
        save_error_screenshot(page)

    finally:
        try:
            write_report(diagnostics, report_path)
            print(f"\n📊 Diagnostics written to {report_path}")
        finally:
            browser.close()

    return diagnostics


def main():
    with sync_playwright() as playwright:
        run(playwright)


if __name__ == "__main__":
    main()
