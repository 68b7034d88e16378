"""
Tests for company Bearer token authentication.

Validates that the auth module parses COMPANY_TOKENS, validates Bearer tokens
using constant-time comparison, and returns appropriate HTTP responses for
valid, invalid, and missing tokens.

CHANGELOG:
- 2026-10-18: Tokens resolve to company ids (STORY-030)
- 2026-02-14: Initial creation with TDD tests (STORY-009)

TODO:
- None
"""

from unittest.mock import patch

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from src.auth.bearer import (
    CompanyBearerAuth,
    parse_company_tokens,
    verify_bearer_token,
)


def _make_test_app(token_map: dict[str, str]) -> FastAPI:
    """Create a minimal FastAPI app with a protected test endpoint.

    Args:
        token_map: Mapping of token -> company_id.

    Returns:
        FastAPI: Application with a single protected GET /protected endpoint.
    """
    test_app = FastAPI()
    auth = CompanyBearerAuth(token_map)

    @test_app.get("/protected")
    async def protected(company_id: str = Depends(auth.verify)) -> dict:
        return {"company_id": company_id}

    return test_app


# ---------------------------------------------------------------------------
# Tests for parse_company_tokens()
# ---------------------------------------------------------------------------


class TestParseCompanyTokens:
    """Tests for the token string parser."""

    def test_multiple_tokens(self) -> None:
        result = parse_company_tokens("tokenA:company-1,tokenB:company-2")
        assert result == {"tokenA": "company-1", "tokenB": "company-2"}

    def test_several_tokens_for_one_company(self) -> None:
        result = parse_company_tokens("tokenA:company-1,tokenB:company-1")
        assert result == {"tokenA": "company-1", "tokenB": "company-1"}

    def test_empty_string_returns_empty_dict(self) -> None:
        assert parse_company_tokens("") == {}
        assert parse_company_tokens("   ") == {}

    def test_whitespace_is_stripped(self) -> None:
        result = parse_company_tokens(" tokenA : company-1 , tokenB : company-2 ")
        assert result == {"tokenA": "company-1", "tokenB": "company-2"}

    def test_malformed_entries_are_skipped(self) -> None:
        """Entries without a colon or with an empty side are skipped."""
        result = parse_company_tokens("tokenA:company-1,badentry,:company-3,tokenB:")
        assert result == {"tokenA": "company-1"}

    def test_colon_in_company_id_preserved(self) -> None:
        """Only the first colon splits token from company_id."""
        result = parse_company_tokens("tokenA:org:eu:1")
        assert result == {"tokenA": "org:eu:1"}


# ---------------------------------------------------------------------------
# Tests for verify_bearer_token()
# ---------------------------------------------------------------------------


class TestVerifyBearerToken:
    def test_valid_token_returns_company_id(self) -> None:
        token_map = {"tokenA": "company-1", "tokenB": "company-2"}
        assert verify_bearer_token("tokenB", token_map) == "company-2"

    def test_invalid_token_returns_none(self) -> None:
        assert verify_bearer_token("wrong-token", {"tokenA": "company-1"}) is None

    def test_empty_token_returns_none(self) -> None:
        assert verify_bearer_token("", {"tokenA": "company-1"}) is None

    def test_empty_token_map_returns_none(self) -> None:
        assert verify_bearer_token("tokenA", {}) is None

    def test_every_registered_token_is_compared(self) -> None:
        """Comparison does not stop at the first match."""
        token_map = {"tokenA": "company-1", "tokenB": "company-2", "tokenC": "company-3"}

        with patch(
            "src.auth.bearer.secrets.compare_digest", return_value=False
        ) as mock_cmp:
            verify_bearer_token("tokenA", token_map)

        assert mock_cmp.call_count == 3


# ---------------------------------------------------------------------------
# Tests for CompanyBearerAuth.verify (the FastAPI dependency)
# ---------------------------------------------------------------------------


class TestCompanyBearerAuthVerify:
    def test_valid_token_returns_company_id(self) -> None:
        client = TestClient(_make_test_app({"tokenA": "company-1"}))

        response = client.get("/protected", headers={"Authorization": "Bearer tokenA"})

        assert response.status_code == 200
        assert response.json() == {"company_id": "company-1"}

    def test_invalid_token_returns_401(self) -> None:
        client = TestClient(_make_test_app({"tokenA": "company-1"}))

        response = client.get(
            "/protected", headers={"Authorization": "Bearer wrong-token"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token."
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_missing_authorization_header_returns_401(self) -> None:
        client = TestClient(_make_test_app({"tokenA": "company-1"}))

        response = client.get("/protected")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization credentials."

    def test_non_bearer_scheme_returns_401(self) -> None:
        client = TestClient(_make_test_app({"tokenA": "company-1"}))

        response = client.get("/protected", headers={"Authorization": "Basic tokenA"})

        assert response.status_code == 401

    def test_empty_token_string_returns_401(self) -> None:
        client = TestClient(_make_test_app({"tokenA": "company-1"}))

        response = client.get("/protected", headers={"Authorization": "Bearer "})

        assert response.status_code == 401
