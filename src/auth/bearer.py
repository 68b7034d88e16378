"""
Bearer token authentication mapping API tokens to companies.

This is the upstream layer that supplies the authenticated company_id to the
series core: every query is scoped to the company behind the presented token.
Tokens come from the COMPANY_TOKENS setting and are compared in constant time
via secrets.compare_digest.

CHANGELOG:
- 2026-10-18: Map tokens to company ids instead of device ids (STORY-030)
- 2026-02-14: Initial creation (STORY-009)

TODO:
- None
"""

import logging
import secrets

from fastapi import HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)


def parse_company_tokens(raw: str) -> dict[str, str]:
    """Parse COMPANY_TOKENS into a token -> company_id mapping.

    Format: "token1:company-a,token2:company-b". Several tokens may map to
    the same company. Entries without a colon, or with an empty side, are
    skipped with a warning. The first colon separates token from company id.

    Args:
        raw: The raw comma-separated token:company_id string.

    Returns:
        dict[str, str]: Mapping of token -> company_id.
    """
    token_map: dict[str, str] = {}
    if not raw or not raw.strip():
        return token_map

    for position, entry in enumerate(raw.split(",")):
        token, sep, company_id = entry.partition(":")
        token, company_id = token.strip(), company_id.strip()
        if not sep or not token or not company_id:
            logger.warning(
                "Skipping malformed COMPANY_TOKENS entry at position %d", position
            )
            continue
        token_map[token] = company_id
    return token_map


def verify_bearer_token(token: str, token_map: dict[str, str]) -> str | None:
    """Return the company_id for ``token``, or None when it is not registered.

    Every registered token is compared, so timing does not depend on where
    a match occurs.
    """
    if not token:
        return None

    presented = token.encode("utf-8")
    matched: str | None = None
    for registered_token, company_id in token_map.items():
        if secrets.compare_digest(presented, registered_token.encode("utf-8")):
            matched = company_id
    return matched


class CompanyBearerAuth:
    """FastAPI-compatible dependency resolving the caller's company.

    Attributes:
        token_map: Mapping of valid token -> company_id.
        scheme: FastAPI HTTPBearer security scheme, for OpenAPI docs.
    """

    def __init__(self, token_map: dict[str, str]) -> None:
        self.token_map = token_map
        self.scheme = HTTPBearer(auto_error=False)

    async def verify(self, request: Request) -> str:
        """Validate the Authorization header and return the company_id.

        Args:
            request: The incoming FastAPI request.

        Returns:
            str: The authenticated company_id.

        Raises:
            HTTPException: 401 Unauthorized if the token is missing or invalid.
        """
        credentials: HTTPAuthorizationCredentials | None = await self.scheme(request)
        if credentials is None:
            raise HTTPException(
                status_code=401,
                detail="Missing authorization credentials.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        company_id = verify_bearer_token(credentials.credentials, self.token_map)
        if company_id is None:
            logger.info("Rejected bearer token for %s", request.url.path)
            raise HTTPException(
                status_code=401,
                detail="Invalid or expired token.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return company_id
