"""
Domoticz hub client -- fetches device lists via the JSON API.

Sends ``GET {scheme}://{host}:{port}/json.htm?type=devices&filter={class}``
for each device class and returns the ``result`` array of the payload.
All network, HTTP and decoding errors are caught and logged at ERROR
level; the failing class returns ``None`` so one bad fetch never aborts
the poll cycle.

The four device-class fetches of one cycle run concurrently on a small
thread pool sharing a single ``httpx.Client``.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import httpx

from exporter.src.config import HTTPS_PORT
from exporter.src.mapper import DeviceClass

logger = logging.getLogger(__name__)

# Default request timeout in seconds.
_DEFAULT_TIMEOUT: float = 10.0

_HINT = "Unable to connect to Domoticz, check host and port"


def build_url(
    *,
    scheme: str,
    host: str,
    port: int,
    device_class: DeviceClass | str,
) -> str:
    """Build the device list URL for one device class.

    Args:
        scheme: ``"http"`` or ``"https"``. HTTPS always uses port 443.
        host: Hub IP address or hostname.
        port: Hub port for plain HTTP.
        device_class: Value of the ``filter`` query parameter.

    Returns:
        Fully qualified request URL.
    """
    if scheme == "https":
        port = HTTPS_PORT
    return (
        f"{scheme}://{host}:{port}/json.htm"
        f"?type=devices&filter={device_class}&used=true&order=Name"
    )


def extract_result(payload: object) -> list:
    """Return the ``result`` array of *payload*, or ``[]`` if it has none."""
    if not isinstance(payload, dict):
        return []
    result = payload.get("result")
    if not isinstance(result, list):
        return []
    return result


class HubClient:
    """HTTP client for the Domoticz JSON API.

    Args:
        host: Hub IP address or hostname.
        port: Hub port (ignored when *ssl* is set).
        ssl: Use HTTPS on port 443.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        host: str,
        port: int,
        ssl: bool = False,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._host = host
        self._scheme = "https" if ssl else "http"
        self._port = HTTPS_PORT if ssl else port
        self._client = httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=len(DeviceClass),
            thread_name_prefix="hub-fetch",
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def url_for(self, device_class: DeviceClass) -> str:
        return build_url(
            scheme=self._scheme,
            host=self._host,
            port=self._port,
            device_class=device_class,
        )

    def fetch_device_class(self, device_class: DeviceClass) -> list | None:
        """Fetch all used devices of one class.

        Args:
            device_class: Class to request.

        Returns:
            The ``result`` array (empty when the payload lacks one), or
            ``None`` on any transport, HTTP or decoding failure.
        """
        url = self.url_for(device_class)
        logger.debug("Devices of type %s requested", device_class)

        try:
            response = self._client.get(url)
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as exc:
            logger.error(
                "%s: HTTP %s for %s: %s",
                _HINT,
                exc.response.status_code,
                url,
                exc,
            )
            return None

        except httpx.TimeoutException as exc:
            logger.error("%s: timeout for %s: %s", _HINT, url, exc)
            return None

        except httpx.TransportError as exc:
            logger.error("%s: transport error for %s: %s", _HINT, url, exc)
            return None

        except ValueError as exc:
            logger.error("%s: invalid JSON from %s: %s", _HINT, url, exc)
            return None

        logger.debug("Devices of type %s received", device_class)
        return extract_result(payload)

    def fetch_all(self) -> dict[DeviceClass, list | None]:
        """Fetch every device class concurrently.

        Blocks until all fetches have settled. A failing class maps to
        ``None`` and does not affect the others.
        """
        futures = {
            device_class: self._executor.submit(
                self.fetch_device_class, device_class
            )
            for device_class in DeviceClass
        }
        results: dict[DeviceClass, list | None] = {}
        for device_class, future in futures.items():
            try:
                results[device_class] = future.result()
            except Exception:
                logger.exception(
                    "Unexpected error fetching devices of type %s",
                    device_class,
                )
                results[device_class] = None
        return results

    def close(self) -> None:
        """Shut down the fetch pool and the underlying HTTP client."""
        self._executor.shutdown(wait=True)
        self._client.close()
