# middleware/security.py
"""
Response headers and request timing for every endpoint
"""

import logging
import time

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'camera=(), microphone=(), geolocation=()'
}


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


def init_request_middleware(app: Flask) -> None:
    """Time every request and attach the security headers"""
    @app.before_request
    def before_request():
        g.start_time = time.perf_counter()

    @app.after_request
    def after_request(response):
        response = security_headers(response)

        if hasattr(g, 'start_time'):
            duration = (time.perf_counter() - g.start_time) * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 5000):
                logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")
            else:
                logger.debug(f"{request.method} {request.path} {response.status_code} ({duration:.0f}ms)")

        return response
