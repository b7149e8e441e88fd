"""
RPC Wrapper with Timeout and Error Classification.

Runs blocking web3 calls in a thread pool, bounds them with a timeout and
maps provider failures onto the deposit monitor's error taxonomy.
Retries are not done here; the ingestion loop owns them.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import Executor
from typing import Any, TypeVar

import requests
from loguru import logger
from web3.exceptions import Web3Exception

from app.config.constants import RPC_TIMEOUT
from app.utils.exceptions import (
    ChainError,
    ConnectivityError,
    RateLimitedError,
    RpcError,
)

T = TypeVar("T")

# JSON-RPC error code used by most providers for request limits
RATE_LIMIT_RPC_CODE = -32005

RATE_LIMIT_MARKERS = (
    "rate limit",
    "too many requests",
    "limit exceeded",
    "request limit",
)


def is_rate_limit_error(exc: BaseException) -> bool:
    """
    Check if a provider error signals rate limiting.

    Args:
        exc: Exception raised by the provider

    Returns:
        True if the provider asked us to slow down
    """
    if isinstance(exc, RateLimitedError):
        return True

    if isinstance(exc, requests.HTTPError):
        response = exc.response
        if response is not None and response.status_code == 429:
            return True

    # web3 raises ValueError(dict) for JSON-RPC error responses
    if exc.args and isinstance(exc.args[0], dict):
        if exc.args[0].get("code") == RATE_LIMIT_RPC_CODE:
            return True

    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def classify_rpc_error(
    exc: BaseException, operation_name: str = "RPC call"
) -> ChainError:
    """
    Map a raw provider exception onto the chain error taxonomy.

    Args:
        exc: Exception raised by web3 / requests
        operation_name: Operation name for the error message

    Returns:
        ConnectivityError, RateLimitedError or RpcError
    """
    if isinstance(exc, ChainError):
        return exc

    if isinstance(exc, (TimeoutError, requests.Timeout, requests.ConnectionError)):
        return ConnectivityError(f"{operation_name} failed: node unreachable ({exc})")

    if is_rate_limit_error(exc):
        return RateLimitedError(f"{operation_name} rate limited: {exc}")

    return RpcError(f"{operation_name} failed: {exc}")


# Exceptions that come from the provider rather than from our own code
PROVIDER_ERRORS = (
    requests.RequestException,
    Web3Exception,
    ValueError,
    OSError,
)


async def with_timeout(
    coro: Any,
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
) -> Any:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: RPC_TIMEOUT)
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        ConnectivityError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.warning(f"[Chain Reader] {error_msg}")
        raise ConnectivityError(error_msg) from e


async def run_rpc(
    executor: Executor,
    func: Callable[[], T],
    timeout: float = RPC_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Run a blocking web3 call in the executor.

    Args:
        executor: Thread pool for blocking calls
        func: Zero-argument callable doing the RPC
        timeout: Timeout in seconds
        operation_name: Operation name for logging

    Returns:
        Result of the call

    Raises:
        ConnectivityError: On timeout or unreachable node
        RateLimitedError: When the provider rate-limits us
        RpcError: On any other provider error
    """
    loop = asyncio.get_running_loop()
    try:
        return await with_timeout(
            loop.run_in_executor(executor, func),
            timeout=timeout,
            operation_name=operation_name,
        )
    except ChainError:
        raise
    except PROVIDER_ERRORS as e:
        raise classify_rpc_error(e, operation_name) from e
