"""
Cookie Module - Black Box Interface

Purpose: Negotiate how the session identifier travels between client and server
Interface: CookieNegotiator.set_request_cookies(), resolve(), build(); ResponseCookie
Hidden: Mode tracking, expiry computation, Set-Cookie line formatting

Writing the cookie to an HTTP response is left to the caller.
"""

from .cookie import CookieNegotiator, ResponseCookie

__all__ = ["CookieNegotiator", "ResponseCookie"]
