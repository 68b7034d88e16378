"""
Authentication package.

Exports the company bearer auth dependency and token parsing utilities.

CHANGELOG:
- 2026-10-18: Export company token auth (STORY-030)
- 2026-02-14: Initial creation (STORY-007)

TODO:
- None
"""

from src.auth.bearer import CompanyBearerAuth, parse_company_tokens, verify_bearer_token

__all__ = ["CompanyBearerAuth", "parse_company_tokens", "verify_bearer_token"]
