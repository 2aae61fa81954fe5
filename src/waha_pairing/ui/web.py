"""
Web pairing UI.

Small aiohttp.web page for pairing from a browser (useful when the terminal
cannot render a QR code). The page polls /status and posts user actions back
to the controller.

Routes:
    GET  /          page
    GET  /status    PairingSession as JSON
    GET  /qr.png    current QR image
    POST /name      {"name": "..."} -> submit inbox name
    POST /continue  skip the connected delay
    POST /retry     restart from error
    POST /close     cancel pairing
"""

import logging
from typing import Optional

from aiohttp import web

from ..pairing.session import PairingSession

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class WebPairingUI:
    """
    Serves the pairing flow over HTTP.

    Usage:
        ui = WebPairingUI(port=8200)
        controller = PairingController(gateway, config, ui_callback=ui.update)
        ui.bind(controller)
        await ui.start()
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8200):
        self.host = host
        self.port = port
        self.controller = None
        self._session: Optional[PairingSession] = None
        self._runner: Optional[web.AppRunner] = None
        self.app = self._create_app()

    def _create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_index)
        app.router.add_get("/status", self._handle_status)
        app.router.add_get("/qr.png", self._handle_qr_image)
        app.router.add_post("/name", self._handle_name)
        app.router.add_post("/continue", self._handle_continue)
        app.router.add_post("/retry", self._handle_retry)
        app.router.add_post("/close", self._handle_close)
        return app

    def bind(self, controller):
        self.controller = controller
        self._session = controller.session

    async def start(self):
        """Start web server."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(f"Web pairing UI listening on {self.host}:{self.port}")
        print(f"Web pairing UI started at http://localhost:{self.port}")

    async def stop(self):
        """Stop web server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def update(self, session: PairingSession):
        self._session = session

    # =========================================================================
    # HANDLERS
    # =========================================================================

    async def _handle_index(self, request):
        return web.Response(text=PAGE_HTML, content_type="text/html")

    async def _handle_status(self, request):
        if not self._session:
            return web.json_response({"state": None})
        return web.json_response(self._session.to_dict())

    async def _handle_qr_image(self, request):
        if not self._session or not self._session.qr_image:
            return web.Response(status=404, text="No QR code available")

        image = self._session.qr_image
        try:
            body = image.image_bytes()
        except ValueError as e:
            logger.error(f"Error decoding QR image: {e}")
            return web.Response(status=500, text=f"Error: {e}")

        return web.Response(body=body, content_type=image.mimetype, headers=NO_CACHE_HEADERS)

    async def _handle_name(self, request):
        if not self.controller:
            return web.json_response({"error": "No active pairing"}, status=409)

        try:
            payload = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid JSON body"}, status=400)

        name = payload.get("name", "") if isinstance(payload, dict) else ""
        if not isinstance(name, str):
            name = ""
        record = await self.controller.submit_name(name)
        if record is None:
            message = self.controller.session.validation_message or "Pairing is not waiting for a name"
            return web.json_response({"error": message}, status=422)

        return web.json_response(record.to_dict())

    async def _handle_continue(self, request):
        return await self._run_action("continue_to_naming")

    async def _handle_retry(self, request):
        return await self._run_action("retry")

    async def _handle_close(self, request):
        return await self._run_action("close")

    async def _run_action(self, action: str):
        if not self.controller:
            return web.json_response({"error": "No active pairing"}, status=409)
        await getattr(self.controller, action)()
        return web.json_response(self.controller.session.to_dict())


PAGE_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>WhatsApp Pairing</title>
    <style>
        body { font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px; text-align: center; }
        .status { padding: 10px; margin: 20px 0; color: white; border-radius: 5px; font-weight: bold; background: orange; }
        .status.completed, .status.connected, .status.naming { background: green; }
        .status.error { background: red; }
        progress { width: 100%; }
        #qr-image { width: 300px; height: 300px; background: white; padding: 20px; border-radius: 5px; display: none; margin: 0 auto; }
        .panel { display: none; margin: 20px 0; }
        .instructions { text-align: left; background: #e3f2fd; padding: 15px; border-radius: 5px; }
        #message { color: red; }
    </style>
</head>
<body>
    <h1>📱 Link WhatsApp</h1>
    <div id="status" class="status">Starting...</div>
    <progress id="progress" max="100" value="0"></progress>

    <div id="scan" class="panel">
        <img id="qr-image" alt="QR code" />
        <p id="countdown"></p>
        <div class="instructions">
            <ol>
                <li>Open WhatsApp on your phone</li>
                <li>Go to <strong>Settings → Linked Devices</strong></li>
                <li>Tap <strong>Link a Device</strong> and scan the code</li>
            </ol>
        </div>
    </div>

    <div id="connected" class="panel">
        <button onclick="post('/continue')">Continue</button>
    </div>

    <div id="naming" class="panel">
        <input id="inbox-name" placeholder="Inbox name" />
        <button onclick="submitName()">Save</button>
    </div>

    <div id="error" class="panel">
        <button onclick="post('/retry')">Try again</button>
    </div>

    <p id="message"></p>
    <button onclick="post('/close')">Cancel</button>

    <script>
        let lastQr = '';

        async function post(path, body) {
            const response = await fetch(path, {
                method: 'POST',
                headers: {'Content-Type': 'application/json'},
                body: JSON.stringify(body || {})
            });
            const data = await response.json();
            document.getElementById('message').textContent = data.error || '';
            refresh();
            return data;
        }

        function submitName() {
            post('/name', {name: document.getElementById('inbox-name').value});
        }

        async function refresh() {
            try {
                const data = await (await fetch('/status')).json();
                const state = data.state || 'initializing';
                const status = document.getElementById('status');
                status.className = 'status ' + state;
                status.textContent = state.replace('-', ' ').toUpperCase() +
                    (data.error_message ? ': ' + data.error_message : '');
                document.getElementById('progress').value = data.progress_percent || 0;

                for (const panel of ['scan', 'connected', 'naming', 'error']) {
                    document.getElementById(panel).style.display = 'none';
                }
                const panel = state === 'qr-ready' ? 'scan' : state === 'scanning' ? 'scan' : state;
                const el = document.getElementById(panel);
                if (el) el.style.display = 'block';

                const img = document.getElementById('qr-image');
                if (data.qr_code && data.qr_code !== lastQr) {
                    lastQr = data.qr_code;
                    img.src = '/qr.png?t=' + Date.now();
                }
                img.style.display = data.qr_code ? 'block' : 'none';
                document.getElementById('countdown').textContent =
                    state === 'scanning' ? 'Valid for ' + data.time_remaining_seconds + 's' : '';
                if (data.validation_message) {
                    document.getElementById('message').textContent = data.validation_message;
                }
            } catch (err) {
                console.error('Status update error:', err);
            }
        }

        refresh();
        setInterval(refresh, 1000);
    </script>
</body>
</html>
"""
