"""Ordered provider fallback.

A chain is a list of candidates tried one after another. Each candidate gets a
single attempt bounded by its own timeout. The first candidate whose payload
passes its acceptance check and yields a result wins; otherwise the chain
falls through to the next one, and once every candidate has been rejected the
chain resolves to the default. Provider failures never escape a chain.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar

import httpx

logger = logging.getLogger("weather_gateway.chain")

T = TypeVar("T")

LOCATION_TIMEOUT = 3.0


def _always(payload: Any) -> bool:
    return True


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """One provider attempt: fetch, check the provider's success signal, extract"""

    name: str
    fetch: Callable[[], Awaitable[Any]]
    extract: Callable[[Any], Optional[T]]
    accepts: Callable[[Any], bool] = _always
    timeout: float = LOCATION_TIMEOUT


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> Any:
    """GET ``url`` and decode the JSON body, raising on non-2xx responses"""
    response = await client.get(url, params=params, headers=headers)
    response.raise_for_status()
    return response.json()


async def resolve_chain(candidates: Iterable[Candidate[T]], default: T) -> T:
    """Return the first accepted candidate's result, or ``default`` once all are rejected"""
    for candidate in candidates:
        logger.info(f"Trying provider {candidate.name}")
        try:
            payload = await asyncio.wait_for(candidate.fetch(), timeout=candidate.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Provider {candidate.name} timed out after {candidate.timeout}s")
            continue
        except httpx.HTTPStatusError as e:
            # str(e) would include the URL, and with it the credential
            logger.warning(f"Provider {candidate.name} returned HTTP {e.response.status_code}")
            continue
        except httpx.HTTPError as e:
            logger.warning(f"Provider {candidate.name} request failed: {type(e).__name__}")
            continue
        except ValueError as e:
            logger.warning(f"Provider {candidate.name} returned an unreadable body: {str(e)}")
            continue

        if not candidate.accepts(payload):
            logger.warning(f"Provider {candidate.name} did not report success")
            continue

        result = candidate.extract(payload)
        if result is None:
            logger.warning(f"Provider {candidate.name} response is missing required fields")
            continue

        logger.info(f"Provider {candidate.name} accepted")
        return result

    logger.warning("All providers rejected, using default")
    return default
