"""Exceptions raised by the upstream and backend clients."""


class UpstreamAuthError(Exception):
    """VA API rejected the browser session (401/403)."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"VA API returned {status_code} for {url}")


class BackendUnauthorizedError(Exception):
    """Backend rejected the bearer token (401)."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Backend returned 401 for {path}")


class AuthenticationError(Exception):
    """No usable backend session could be obtained."""
