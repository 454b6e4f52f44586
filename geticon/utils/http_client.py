"""A helper to create asynchronous HTTP client (via `httpx.AsyncClient`)
with common configurations.
"""

from httpx import AsyncClient, Limits, Timeout


def create_http_client(
    max_connections: int = 512,
    connect_timeout: float = 5.0,
    request_timeout: float = 10.0,
    pool_timeout: float = 5.0,
    max_redirects: int = 10,
    verify: bool = True,
) -> AsyncClient:
    """Create a new `httpx.AsyncClient` with common configurations.

    Args:
      - `max_connections` {int}: Max connections of the connection pool.
      - `connect_timeout` {float}: The timeout for establishing a connection to the host.
      - `request_timeout` {float}: The timeout for handling a request to the host.
      - `pool_timeout` {float}: The timeout for acquiring a connection from the pool.
      - `max_redirects` {int}: How many redirect hops are followed before giving up.
      - `verify` {bool}: Whether TLS certificates are verified. Turning this off lets
        the client talk to hosts with self-signed or broken certificate chains at the
        cost of transport authenticity.
    Returns:
      - {AsyncClient}: An async HTTP client.
    """
    return AsyncClient(
        limits=Limits(max_connections=max_connections),
        timeout=Timeout(request_timeout, connect=connect_timeout, pool=pool_timeout),
        follow_redirects=True,
        max_redirects=max_redirects,
        verify=verify,
    )
