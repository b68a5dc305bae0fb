"""Send the current color to the remote lighting endpoint."""

import asyncio
import logging
from typing import Optional

import requests

from .config import Config
from .tasks import PeriodicTask

log = logging.getLogger(__name__)

MSG_NOT_CONFIGURED = "Bulb IP not configured. Set shelly.ip or SHELLY_IP."
MSG_INVALID_PAYLOAD = "Invalid color payload"


def _response_message(res) -> Optional[str]:
    """Return the body's `message` field, or None for empty/non-JSON bodies."""
    try:
        body = res.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    return str(message) if message else None


class Dispatcher:
    """POSTs `state.color` as JSON, once or every `interval` seconds in auto mode.

    Every call to `send_color()` ends in exactly one notification and never
    raises. Auto mode sends whatever color is current at tick time.
    """

    def __init__(
        self,
        state,
        notifier,
        endpoint: str = Config.COLOR_ENDPOINT,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = Config.HTTP_TIMEOUT_SEC or None,
        interval: float = Config.AUTO_INTERVAL_SEC,
    ) -> None:
        self.state = state
        self.notifier = notifier
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout
        self._auto = PeriodicTask("auto-send", interval, self.send_color)

    @property
    def auto_running(self) -> bool:
        return self._auto.running

    def start_auto(self) -> None:
        """(Re)start repeating sends; a previous repetition is cancelled first."""
        self._auto.start()

    def stop_auto(self) -> None:
        self._auto.stop()

    def _post(self, payload):
        return self.session.post(
            self.endpoint,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

    async def send_color(self) -> None:
        color = self.state.color
        try:
            res = await asyncio.to_thread(self._post, color.to_payload())
        except requests.RequestException as e:
            self.notifier.notify(f"Fetch failed: {e}", "error")
            return

        status = res.status_code
        if 200 <= status < 300:
            self.notifier.notify(f"Sent color rgbw({color.r},{color.g},{color.b},{color.w})", "ok")
            return
        message = _response_message(res)
        log.debug("Color endpoint answered %s", status)
        if status == 503:
            self.notifier.notify(message or MSG_NOT_CONFIGURED, "error")
        elif status == 400:
            self.notifier.notify(message or MSG_INVALID_PAYLOAD, "error")
        else:
            self.notifier.notify(message or f"Network error ({status})", "error")
