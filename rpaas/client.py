"""RpaasClient - HTTP client for the rpaas API."""

import base64
from typing import Any, Dict, List, Optional

import requests

from .errors import RpaasError

DEFAULT_TIMEOUT = 30


class RpaasClientError(RpaasError):
    """The API answered with an error, or could not be reached."""

    def __init__(self, msg: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(msg)


class RpaasClient:
    """Talks to the rpaas API on behalf of the rpaasv2 command."""

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make HTTP request to the API.

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            RpaasClientError: If the request fails
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method, url, json=data, params=params, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RpaasClientError(f"Failed to connect to rpaas API: {e}")

        if resp.status_code >= 400:
            message = resp.text.strip() or resp.reason
            raise RpaasClientError(f"rpaas API error ({resp.status_code}): {message}", resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def _instance_path(self, instance: str, suffix: str = "") -> str:
        return f"/resources/{instance}{suffix}"

    # --- instances ---

    def get_instance_info(self, instance: str) -> List[Dict[str, str]]:
        return self._request("GET", self._instance_path(instance))

    def get_instance_status(self, instance: str) -> Dict[str, Dict[str, Any]]:
        return self._request("GET", self._instance_path(instance, "/status"))["pods"]

    # --- blocks ---

    def list_blocks(self, instance: str) -> List[Dict[str, str]]:
        return self._request("GET", self._instance_path(instance, "/block"))["blocks"]

    def update_block(self, instance: str, name: str, content: str) -> None:
        self._request(
            "POST", self._instance_path(instance, "/block"),
            data={"block_name": name, "content": content},
        )

    def delete_block(self, instance: str, name: str) -> None:
        self._request("DELETE", self._instance_path(instance, f"/block/{name}"))

    # --- routes ---

    def list_routes(self, instance: str) -> List[Dict[str, Any]]:
        return self._request("GET", self._instance_path(instance, "/route"))["paths"]

    def update_route(
        self,
        instance: str,
        path: str,
        destination: str = "",
        content: str = "",
        https_only: bool = False,
    ) -> None:
        self._request(
            "POST", self._instance_path(instance, "/route"),
            data={
                "path": path,
                "destination": destination,
                "content": content,
                "https_only": https_only,
            },
        )

    def delete_route(self, instance: str, path: str) -> None:
        self._request("DELETE", self._instance_path(instance, "/route"), params={"path": path})

    # --- certificates ---

    def update_certificate(self, instance: str, certificate: str, key: str, name: str = "") -> None:
        self._request(
            "POST", self._instance_path(instance, "/certificate"),
            data={"name": name, "certificate": certificate, "key": key},
        )

    # --- extra files ---

    def list_extra_files(self, instance: str) -> Dict[str, bytes]:
        """Return file path -> content."""
        files = self._request("GET", self._instance_path(instance, "/files"))
        return {f["name"]: base64.b64decode(f["content"]) for f in files}

    def _files_body(self, files: Dict[str, bytes]) -> Dict[str, Any]:
        return {"files": [
            {"name": name, "content": base64.b64encode(content).decode("ascii")}
            for name, content in files.items()
        ]}

    def add_extra_files(self, instance: str, files: Dict[str, bytes]) -> None:
        self._request("POST", self._instance_path(instance, "/files"), data=self._files_body(files))

    def update_extra_files(self, instance: str, files: Dict[str, bytes]) -> None:
        self._request("PUT", self._instance_path(instance, "/files"), data=self._files_body(files))

    def delete_extra_files(self, instance: str, names: List[str]) -> None:
        self._request("DELETE", self._instance_path(instance, "/files"), params={"name": names})

    # --- cache ---

    def purge(self, instance: str, path: str, preserve_path: bool = False) -> int:
        """Purge a path and return the number of replicas that accepted it."""
        result = self._request(
            "POST", self._instance_path(instance, "/purge"),
            data={"path": path, "preserve_path": preserve_path},
        )
        return result["instances_purged"]
