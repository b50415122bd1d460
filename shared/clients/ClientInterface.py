from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData

from shared.errors import ServiceError, TransientServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base for every backend client: env-driven config, lifecycle and one request path.

    Config keys are namespaced as <TYPE>_<ENGINE>_<KEY>, e.g. RAG_QDRANT_URL.
    Transport failures and 5xx statuses surface as TransientServiceError so the
    callers can decide whether to retry, degrade or fail over.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self._config_readers: dict[str, Callable[..., Any]] = {
            "string": helper_config.get_string_val,
            "number": helper_config.get_number_val,
            "bool": helper_config.get_bool_val,
            "list": helper_config.get_list_val,
        }
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required key once so a misconfigured client fails at construction.

        Raises:
            ValueError: If a required value is missing or has the wrong type.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Client family as used in env keys, e.g. "rag" or "embed"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Display name of the backend, e.g. "Qdrant"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read a client-scoped config value.

        Args:
            raw_key (str): Key without the type and engine prefix, e.g. "URL".
            default (Any): Value used when the key is unset. None makes the key required.
            val_type (str): One of "string", "number", "bool", "list".
        """
        reader = self._config_readers.get(val_type)
        if reader is None:
            raise ValueError(
                f"Unsupported config value type '{val_type}' for '{raw_key}' "
                f"in {self.get_client_type()} client '{self.get_engine_name()}'."
            )
        return reader(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers that authenticate against the backend; empty when it needs none."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{endpoint}" if endpoint else base

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> httpx.Response:
        """GET the backend's health endpoint, raising if it does not answer 2xx."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend.

        At most one of content, data or json is sent, checked in that order.

        Raises:
            ServiceError: If the client is not booted, or on a 4xx status when raise_on_error is set.
            TransientServiceError: On transport failures, and on a 5xx status when raise_on_error is set.
        """
        if self._client is None:
            raise ServiceError(f"{self.get_engine_name()} client is not booted.")

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict[str, Any] = {}
        if content is not None:
            body["content"] = content
        elif data is not None:
            body["data"] = data
        elif json is not None:
            body["json"] = json

        try:
            response = await self._client.request(
                method, url, headers=headers, params=params, timeout=self.timeout, **body
            )
        except httpx.TransportError as exc:
            self.logging.error("%s %s failed: %s", method, url, exc)
            raise TransientServiceError(f"{method} {url} failed: {exc}") from exc

        if raise_on_error:
            self._raise_for_status(method, url, response)
        return response

    def _raise_for_status(self, method: str, url: str, response: httpx.Response) -> None:
        if response.status_code < 300:
            return
        self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:200])
        error_class = TransientServiceError if response.status_code >= 500 else ServiceError
        raise error_class(f"{method} {url} answered {response.status_code}", status_code=response.status_code)
