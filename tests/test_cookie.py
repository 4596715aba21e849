import time
from email.utils import parsedate_to_datetime

import pytest

from sessionkit.modules.cookie import CookieNegotiator, ResponseCookie
from sessionkit.modules.config import SessionConfig

from conftest import RecordingHandler


def test_external_mode_emits_nothing(session):
    """Test no cookie is produced unless request cookies were handed in."""
    session.set_save_handler(RecordingHandler()).set_cookie_name("phpSid")
    assert session.get_response_cookie() is None
    session.start()
    assert session.get_response_cookie() is None


def test_new_id_must_be_sent(session):
    """Test a cookie is produced when the request carried no identifier."""
    session.set_save_handler(RecordingHandler()).set_cookie_name("phpSid")
    session.set_request_cookies({"phpVid": "foo"})
    assert session.get_response_cookie() is None
    session.start()

    cookie = session.get_response_cookie()
    line = session.get_response_cookie(as_line=True)
    assert cookie.name == "phpSid"
    assert cookie.value != "foo"
    assert cookie.value == session.get_id()
    assert f"{cookie.name}={cookie.value}" in line
    assert session.get_cookie_lifetime() == 0
    assert cookie.expires == 0
    assert "Expires=" not in line
    assert cookie.priority == "High"


def test_request_identifier_is_adopted(session):
    """Test the identifier from request cookies is used and nothing is sent."""
    session.set_save_handler(RecordingHandler()).set_cookie_name("sid")
    session.set_request_cookies({"sid": "abc"})
    assert session.get_response_cookie() is None
    session.start()
    assert session.get_id() == "abc"
    assert session.get_response_cookie() is None


def test_explicit_id_wins_over_request_cookie(session):
    """Test an id set before start is kept and announced."""
    session.set_save_handler(RecordingHandler()).set_cookie_name("sid")
    session.set_id("explicit")
    session.set_request_cookies({"sid": "abc"})
    session.start()
    assert session.get_id() == "explicit"
    assert session.get_response_cookie().value == "explicit"


def test_self_managed_mode_disables_use_cookies(session):
    """Test self-managed mode switches use_cookies off and back."""
    assert session.is_ini("use_cookies")
    session.set_request_cookies({})
    assert not session.is_ini("use_cookies")
    session.set_request_cookies(False)
    assert session.is_ini("use_cookies")


def test_revert_to_external_mode(session):
    """Test False drops pending request cookies."""
    session.set_save_handler(RecordingHandler())
    session.set_request_cookies({"other": "1"})
    session.set_request_cookies(False)
    session.start()
    assert session.get_response_cookie() is None


def test_release_resets_negotiation(session):
    """Test release returns to external mode."""
    session.set_save_handler(RecordingHandler())
    session.set_request_cookies({})
    session.start()
    assert session.get_response_cookie() is not None
    session.release()
    assert session.get_response_cookie() is None


def test_regenerate_reissues_cookie(session):
    """Test a regenerated id is announced in self-managed mode."""
    session.set_save_handler(RecordingHandler()).set_cookie_name("sid")
    session.set_request_cookies({"sid": "abc"})
    session.start()
    assert session.get_response_cookie() is None
    session.regenerate()
    assert session.get_response_cookie().value == session.get_id() != "abc"


def test_cookie_attributes(session):
    """Test the cookie carries the configured attributes."""
    session.set_save_handler(RecordingHandler())
    session.set_cookie_name("sid").set_cookie_lifetime(88).set_cookie_domain("bar.com")
    session.set_cookie_path("/bar").set_cookie_httponly(True).set_cookie_secure(True)
    session.set_cookie_samesite("Lax")
    session.set_request_cookies({})
    before = int(time.time())
    session.start()

    cookie = session.get_response_cookie()
    assert before + 88 <= cookie.expires <= int(time.time()) + 88
    assert cookie.domain == "bar.com"
    assert cookie.path == "/bar"
    assert cookie.samesite == "Lax"
    assert cookie.secure is True
    assert cookie.httponly is True


def test_cookie_line_format():
    """Test Set-Cookie line rendering."""
    cookie = ResponseCookie(
        name="sid",
        value="abc",
        expires=1700000000,
        path="/",
        domain="example.com",
        samesite="Strict",
        secure=True,
        httponly=False,
    )
    line = cookie.to_line()
    parts = line.split("; ")
    assert parts[0] == "sid=abc"
    assert parts[1].startswith("Expires=")
    assert parsedate_to_datetime(parts[1][len("Expires="):]).timestamp() == 1700000000
    assert parts[1].endswith("GMT")
    assert parts[2:] == ["Path=/", "Domain=example.com", "SameSite=Strict", "Priority=High", "Secure"]


def test_cookie_line_omits_empty_attributes():
    """Test falsy attributes are left out."""
    cookie = ResponseCookie(name="sid", value="abc")
    assert cookie.to_line() == "sid=abc; Priority=High"


def test_negotiator_without_cookie_name():
    """Test no cookie can be built without a cookie name."""
    config = SessionConfig({"name": ""})
    negotiator = CookieNegotiator()
    negotiator.set_request_cookies(config, {})
    assert negotiator.resolve("", "") is None
    assert negotiator.must_emit
    assert negotiator.build(config, "id") is None


@pytest.mark.parametrize("cookies", [{"sid": ""}, {}])
def test_negotiator_empty_identifier(cookies):
    """Test an empty request identifier counts as missing."""
    config = SessionConfig({"name": "sid", "use_cookies": "1"})
    negotiator = CookieNegotiator()
    negotiator.set_request_cookies(config, cookies)
    assert negotiator.resolve("", "sid") is None
    assert negotiator.build(config, "new").value == "new"
