"""
HTTP client factories shared by the catalog and artwork clients
"""
import httpx
import aiohttp

DEFAULT_TIMEOUT_SECONDS = 30


def create_aiohttp_session(**kwargs) -> aiohttp.ClientSession:
    """
    Create an aiohttp ClientSession.

    Args:
        **kwargs: Additional arguments for ClientSession

    Returns:
        Configured aiohttp.ClientSession
    """
    kwargs.setdefault("timeout", aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT_SECONDS))
    return aiohttp.ClientSession(**kwargs)


def create_httpx_client(**kwargs) -> httpx.AsyncClient:
    """
    Create an httpx AsyncClient.

    Args:
        **kwargs: Additional arguments for AsyncClient (base_url, transport, ...)

    Returns:
        Configured httpx.AsyncClient
    """
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT_SECONDS)
    return httpx.AsyncClient(**kwargs)
