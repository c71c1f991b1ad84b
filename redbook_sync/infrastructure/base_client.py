"""Base class for async HTTP clients."""

import logging
import httpx

from ..application.exceptions import ConfigurationError


class BaseClient:
    """A base client that holds an async client and request settings."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float,
        retry_attempts: int = 1,
    ):
        """
        Initializes the base client.

        Args:
            client: An instance of httpx.AsyncClient.
            timeout: Per-request timeout in seconds.
            retry_attempts: Total attempts per request; 1 disables retries.

        Raises:
            ConfigurationError: If the timeout or attempt count is not
                                positive.
        """

        if not timeout or timeout <= 0:
            raise ConfigurationError(
                f"Timeout for {self.__class__.__name__} must be positive, "
                f"got {timeout!r}. Please check your config files."
            )
        if retry_attempts < 1:
            raise ConfigurationError(
                f"retry_attempts for {self.__class__.__name__} must be at "
                f"least 1, got {retry_attempts!r}."
            )

        self.client = client
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.logger = logging.getLogger(self.__class__.__name__)
