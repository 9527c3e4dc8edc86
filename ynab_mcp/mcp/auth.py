"""
Bearer token authentication for the MCP HTTP transport.
"""
import hmac
import logging

from fastmcp.server.auth import AccessToken, AuthProvider

logger = logging.getLogger(__name__)


def verify_static_token(token: str, expected: str) -> bool:
    """Constant-time comparison of a presented token against the configured one."""
    if not token or not expected:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


class StaticTokenAuthProvider(AuthProvider):
    """
    FastMCP auth provider that accepts a single shared bearer token
    (MCP_AUTH_TOKEN) on the HTTP transport.
    """

    def __init__(self, expected_token: str):
        super().__init__()
        self._expected_token = expected_token

    async def verify_token(self, token: str) -> AccessToken | None:
        if not verify_static_token(token, self._expected_token):
            logger.warning("Unauthorized MCP request: invalid bearer token")
            return None
        return AccessToken(
            token=token,
            client_id="ynab-mcp-client",
            scopes=["mcp"],
            expires_at=None,
        )
