"""Flask dashboard and control API for the color relay."""

import cv2  # For JPEG encoding
import flask  # Web server and templating

from .service import ColorRelayService  # Service providing frames and state


def create_app(service: ColorRelayService) -> flask.Flask:
    """Create and configure the Flask application.

    Args:
      service: Running `ColorRelayService` to control and read state from.

    Returns:
      A Flask app instance with the dashboard and JSON API routes.
    """
    app = flask.Flask(__name__)

    def _json_body() -> dict:
        body = flask.request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    @app.route("/")
    def index():
        """Render the dashboard page."""
        return flask.render_template_string(_INDEX_TEMPLATE, **service.snapshot())

    @app.route("/latest.jpg")
    def latest_jpg():
        """Serve the most recent live frame as a JPEG image."""
        frame = service.get_latest_frame()
        if frame is None:
            return ("No frame yet", 503)
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), 80])
        if not ok:
            return ("Encode error", 500)
        return flask.Response(buf.tobytes(), mimetype="image/jpeg")

    @app.route("/api/state")
    def api_state():
        """Return color, stream, cameras and live messages as JSON."""
        return service.snapshot()

    @app.route("/api/camera", methods=["POST"])
    def api_camera():
        """Persist a camera choice and restart the stream on it."""
        device_id = _json_body().get("deviceId")
        if not isinstance(device_id, str) or not device_id:
            return {"message": "deviceId is required"}, 400
        started = service.select_camera(device_id)
        return {"started": started}

    @app.route("/api/send", methods=["POST"])
    def api_send():
        """Send the current color once."""
        service.send_now()
        return {"queued": True}, 202

    @app.route("/api/auto", methods=["POST"])
    def api_auto():
        """Toggle and persist auto mode."""
        enabled = _json_body().get("enabled")
        if not isinstance(enabled, bool):
            return {"message": "enabled must be a boolean"}, 400
        service.set_auto(enabled)
        return {"auto": enabled}

    @app.route("/api/visibility", methods=["POST"])
    def api_visibility():
        """Report the dashboard page becoming hidden or visible."""
        visible = _json_body().get("visible")
        if not isinstance(visible, bool):
            return {"message": "visible must be a boolean"}, 400
        service.set_visibility(visible)
        return {"visible": visible}

    return app


_INDEX_TEMPLATE = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Color Relay</title>
  <style>
    body { font-family: system-ui, Arial, sans-serif; margin: 0; background: #111; color: #eee; }
    header { padding: 12px 16px; background: #222; display: flex; align-items: center; gap: 12px; }
    main { padding: 16px; display: grid; gap: 12px; max-width: 680px; }
    img { width: 100%; height: auto; border-radius: 6px; display: block; background: #000; }
    .swatch { width: 96px; height: 96px; border-radius: 8px; border: 1px solid #444; }
    .msg { padding: 6px 10px; border-radius: 6px; font-size: 13px; }
    .msg.info { background: #2a2a2a; }
    .msg.ok { background: #144d14; color: #bff5bf; }
    .msg.error { background: #b00020; color: #fff; }
  </style>
</head>
<body>
  <header>
    <select id="cameraSelect">
      {% for c in cameras %}
        <option value="{{ c.id }}" {% if c.selected %}selected{% endif %}>{{ c.label }}</option>
      {% endfor %}
    </select>
    <button id="sendBtn">Send</button>
    <label><input type="checkbox" id="autoToggle" {% if auto %}checked{% endif %} /> Auto</label>
  </header>
  <main>
    <img id="live" src="/latest.jpg" alt="Live frame" />
    <div id="colorSwatch" class="swatch" style="background-color: {{ swatch }}"></div>
    <div id="messages">
      {% for m in messages %}<div class="msg {{ m.kind }}">{{ m.text }}</div>{% endfor %}
    </div>
  </main>
  <script>
    const post = (url, body) => fetch(url, {
      method: 'POST', headers: {'Content-Type': 'application/json'}, body: JSON.stringify(body || {}),
    });
    const $ = (id) => document.getElementById(id);
    $('cameraSelect').addEventListener('change', (e) => post('/api/camera', {deviceId: e.target.value}));
    $('sendBtn').addEventListener('click', () => post('/api/send'));
    $('autoToggle').addEventListener('change', (e) => post('/api/auto', {enabled: e.target.checked}));
    document.addEventListener('visibilitychange', () =>
      post('/api/visibility', {visible: document.visibilityState === 'visible'}));

    async function refresh() {
      const st = await (await fetch('/api/state')).json();
      $('colorSwatch').style.backgroundColor = st.swatch;
      $('messages').replaceChildren(...st.messages.map((m) => {
        const div = document.createElement('div');
        div.className = `msg ${m.kind}`;
        div.textContent = m.text;
        return div;
      }));
      const sel = $('cameraSelect');
      if (document.activeElement !== sel) {
        sel.replaceChildren(...st.cameras.map((c) => new Option(c.label, c.id, c.selected, c.selected)));
      }
      $('live').src = `/latest.jpg?ts=${Date.now()}`;
    }
    setInterval(() => refresh().catch(() => {}), 500);
  </script>
</body>
</html>
"""
