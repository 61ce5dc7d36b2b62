from __future__ import annotations

from typing import Any, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from retdec_client.errors import BindingError, TransportError

ModelT = TypeVar("ModelT", bound=BaseModel)


class RetdecHttpClient:
    """Authenticated access to the service rooted at ``api_url``.

    Every link handed out by the service is resolved against ``api_url``;
    links pointing anywhere else are refused so that the API key is never
    sent to a foreign host.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        timeout_s: int,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.session = session if session is not None else requests.Session()
        if api_key:
            self.session.auth = (api_key, "")

    def resolve(self, url: str) -> str:
        if "://" not in url:
            return f"{self.api_url}/{url.lstrip('/')}"
        if url != self.api_url and not url.startswith(self.api_url + "/"):
            raise BindingError(f"Link outside of {self.api_url}: {url}")
        return url

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        target = self.resolve(url)
        try:
            return self.session.request(method, target, timeout=self.timeout_s, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {target} failed: {exc}") from exc

    @staticmethod
    def bind(resp: requests.Response, model: type[ModelT]) -> ModelT:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise BindingError("Response body is not JSON", status=resp.status_code, body=resp.text) from exc
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise BindingError(
                f"Response does not match {model.__name__}: {exc}",
                status=resp.status_code,
                body=resp.text,
            ) from exc

    def get_json(self, url: str, model: type[ModelT], params: dict[str, str] | None = None) -> ModelT:
        resp = self.request("GET", url, params=params, headers={"Accept": "application/json"})
        if resp.status_code != 200:
            raise BindingError(f"Unhandled HTTP status for {url}", status=resp.status_code, body=resp.text)
        return self.bind(resp, model)

    def post_multipart(self, url: str, data: dict[str, str], files: dict[str, Any]) -> requests.Response:
        return self.request("POST", url, data=data, files=files, headers={"Accept": "application/json"})

    def open_stream(self, url: str) -> requests.Response:
        """GET a binary resource without reading its body. The caller closes the response."""
        resp = self.request("GET", url, stream=True)
        if not 200 <= resp.status_code < 300:
            body = resp.text
            resp.close()
            raise BindingError(f"Unhandled HTTP status for {url}", status=resp.status_code, body=body)
        return resp
