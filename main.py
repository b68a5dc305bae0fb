"""Application entrypoint: starts the relay service and Flask dashboard."""

import logging

from color_relay.config import Config  # App configuration
from color_relay.service import ColorRelayService  # Background sampling/dispatch loop
from color_relay.web import create_app  # Flask app factory


def main() -> None:
    """Create the service and run the Flask development server."""
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
        format="[relay] %(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service = ColorRelayService()  # Instantiate service
    service.start()  # Start background event loop thread
    app = create_app(service)  # Build Flask app bound to the service
    try:
        # Flask's built-in server is enough for local/LAN use
        app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG, threaded=True, use_reloader=False)
    finally:
        service.stop()


if __name__ == "__main__":
    main()
