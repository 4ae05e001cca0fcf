"""FastAPI dependency injection functions."""

from fastapi import Request

from schemefeed.services.scheme_cache import SchemeCache


def get_scheme_cache(request: Request) -> SchemeCache:
    """Return the scheme cache owned by the running application."""
    return request.app.state.scheme_cache
