import threading
from unittest.mock import MagicMock, PropertyMock, patch

import requests

from bfscrawl.fetcher import Fetcher


def _session_returning(response=None, side_effect=None):
    session = MagicMock()
    session.headers = {}
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    return session


def _response(content=b"<html></html>", status_error=None):
    resp = MagicMock()
    resp.content = content
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    return resp


def test_fetch_returns_body_bytes():
    session = _session_returning(_response(b"<title>Home</title>"))
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        body = Fetcher(timeout=3, user_agent="test-agent").fetch("http://x.test/")

    assert body == b"<title>Home</title>"
    session.get.assert_called_once_with("http://x.test/", timeout=3, allow_redirects=True)
    assert session.headers["User-Agent"] == "test-agent"


def test_connection_error_returns_empty():
    session = _session_returning(side_effect=requests.ConnectionError("refused"))
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        assert Fetcher().fetch("http://x.test/") == b""


def test_timeout_returns_empty():
    session = _session_returning(side_effect=requests.Timeout("slow"))
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        assert Fetcher().fetch("http://x.test/") == b""


def test_error_status_returns_empty():
    resp = _response(b"not found page", status_error=requests.HTTPError("404 Client Error"))
    session = _session_returning(resp)
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        assert Fetcher().fetch("http://x.test/missing") == b""


def test_body_read_error_returns_empty():
    resp = MagicMock()
    type(resp).content = PropertyMock(side_effect=requests.exceptions.ChunkedEncodingError("cut"))
    session = _session_returning(resp)
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        assert Fetcher().fetch("http://x.test/") == b""


def test_unfetchable_url_returns_empty_without_network():
    assert Fetcher().fetch("/relative/only") == b""
    assert Fetcher().fetch("not a url") == b""


def test_session_reused_within_thread():
    session = _session_returning(_response())
    with patch("bfscrawl.fetcher.requests.Session", return_value=session) as factory:
        fetcher = Fetcher()
        fetcher("http://x.test/a")
        fetcher("http://x.test/b")

    assert factory.call_count == 1
    assert session.get.call_count == 2


def test_malformed_redirect_target_returns_empty():
    session = _session_returning(side_effect=ValueError("Invalid IPv6 URL"))
    with patch("bfscrawl.fetcher.requests.Session", return_value=session):
        assert Fetcher().fetch("http://x.test/bad") == b""


def test_close_closes_sessions_from_every_thread():
    sessions = [_session_returning(_response()), _session_returning(_response())]
    with patch("bfscrawl.fetcher.requests.Session", side_effect=sessions):
        fetcher = Fetcher()
        fetcher("http://x.test/a")
        worker = threading.Thread(target=fetcher, args=("http://x.test/b",))
        worker.start()
        worker.join()
        fetcher.close()

    for session in sessions:
        session.close.assert_called_once_with()
