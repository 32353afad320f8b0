"""Shared translation of httpx failures into the tracker's exception taxonomy."""

from typing import Any

import httpx

from solana_portfolio_tracker.core.exceptions import (
    ParseError,
    ProviderError,
    RateLimitedError,
    TransientNetworkError,
)


def raise_for_http_error(response: httpx.Response, provider: str) -> None:
    """
    Translate an HTTP error status into the tracker's exception taxonomy.

    Parameters
    ----------
    response : httpx.Response
        Response to check
    provider : str
        Provider name used in messages

    Raises
    ------
    RateLimitedError
        On HTTP 429
    TransientNetworkError
        On 5xx responses
    ProviderError
        On any other non-success status

    """
    status = response.status_code
    if status < 400:
        return
    msg = f"{provider} returned HTTP {status}"
    if status == 429:
        raise RateLimitedError(msg)
    if status >= 500:
        raise TransientNetworkError(msg)
    raise ProviderError(msg)


def send_request(client: httpx.Client, provider: str, method: str, url: str, **kwargs: Any) -> Any:
    """
    Send an HTTP request and decode the JSON body.

    Parameters
    ----------
    client : httpx.Client
        HTTP client
    provider : str
        Provider name used in messages
    method : str
        HTTP method
    url : str
        Request URL
    **kwargs : Any
        Passed through to ``httpx.Client.request``

    Returns
    -------
    Any
        Decoded JSON body

    Raises
    ------
    TransientNetworkError
        On timeouts and transport failures
    ParseError
        If the body is not JSON

    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        msg = f"{provider} request timeout: {e}"
        raise TransientNetworkError(msg) from e
    except httpx.TransportError as e:
        msg = f"{provider} request failed: {e}"
        raise TransientNetworkError(msg) from e

    raise_for_http_error(response, provider)

    try:
        return response.json()
    except ValueError as e:
        msg = f"{provider} returned a non-JSON body"
        raise ParseError(msg) from e
