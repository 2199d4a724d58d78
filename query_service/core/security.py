import hmac
from typing import Annotated, Optional

from fastapi import Header, Request

from query_service.core.errors import Unauthorized


def authorize(presented_header: Optional[str], configured_secret: str, dev_mode: bool) -> bool:
    """
    Shared-secret bearer check.

    Dev mode or an empty secret turns the check off. Otherwise the header must be
    exactly "Bearer <secret>", compared in constant time.
    """
    if dev_mode or not configured_secret:
        return True

    if presented_header is None:
        return False

    expected = f"Bearer {configured_secret}"
    return hmac.compare_digest(presented_header.encode(), expected.encode())


class BearerGate:
    """Authorization settings bound to one application."""

    def __init__(self, secret: str, dev_mode: bool):
        self.secret = secret
        self.dev_mode = dev_mode

    def allows(self, presented_header: Optional[str]) -> bool:
        return authorize(presented_header, self.secret, self.dev_mode)


# Runs before the route reads the request body
async def require_authorization(
    request: Request,
    authorization: Annotated[Optional[str], Header()] = None,
):
    gate: BearerGate = request.app.state.gate
    if not gate.allows(authorization):
        raise Unauthorized()
