"""Static views and the multipart upload limit."""

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

VIEW_ROUTES = {"/client": "client", "/monitor": "monitor"}

# Room for boundaries and part headers on top of the file size limit.
MULTIPART_OVERHEAD_BYTES = 16 * 1024


def register_views(app: FastAPI) -> None:
    """Map each view path to a GET route rendering the named view."""
    for path, view_name in VIEW_ROUTES.items():
        app.add_api_route(
            path,
            _view_endpoint(view_name),
            methods=["GET"],
            response_class=HTMLResponse,
            include_in_schema=False,
        )


def _view_endpoint(view_name: str):  # type: ignore[no-untyped-def]
    html = _VIEWS[view_name]

    async def render() -> HTMLResponse:
        return HTMLResponse(html)

    render.__name__ = f"{view_name}_view"
    return render


class UploadLimitMiddleware:
    """Rejects multipart bodies larger than ``max_bytes`` with HTTP 413.

    This is a transport cap on the whole body. The exact per-file limit is
    checked by the upload route once the part is parsed. A declared
    Content-Length over the cap is refused before the request reaches
    routing. Bodies without a usable length are counted as they stream in
    and refused once the cap is crossed.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not _is_multipart(scope):
            await self.app(scope, receive, send)
            return

        content_length = _header(scope, b"content-length")
        if content_length is not None and content_length.isdigit():
            if int(content_length) > self.max_bytes:
                response = PlainTextResponse(
                    "Upload too large",
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="Upload too large",
                    )
            return message

        await self.app(scope, limited_receive, send)


def _header(scope: Scope, name: bytes) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def _is_multipart(scope: Scope) -> bool:
    content_type = _header(scope, b"content-type") or ""
    return content_type.lower().startswith("multipart/form-data")


_CLIENT_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>such doge client</title>
    <style>
      body { font-family: "Comic Sans MS", sans-serif; margin: 2rem; }
      label, select, input, button { display: block; margin: 0.5rem 0; }
    </style>
  </head>
  <body>
    <h1>such doge. very upload.</h1>
    <form id="upload">
      <label for="user">User</label>
      <select id="user"></select>
      <label for="file">Photo</label>
      <input id="file" name="file" type="file" accept="image/*" required />
      <button type="submit">wow</button>
    </form>
    <p id="result"></p>
    <script>
      async function loadUsers() {
        const response = await fetch("/users");
        const payload = await response.json();
        const select = document.getElementById("user");
        for (const user of payload.users) {
          const option = document.createElement("option");
          option.value = user.id;
          option.textContent = user.name;
          select.appendChild(option);
        }
      }
      document.getElementById("upload").addEventListener("submit", async (event) => {
        event.preventDefault();
        const user = document.getElementById("user").value;
        const body = new FormData();
        body.append("file", document.getElementById("file").files[0]);
        const response = await fetch(`/users/${user}/doge`, { method: "POST", body });
        const result = document.getElementById("result");
        if (response.ok) {
          const payload = await response.json();
          result.innerHTML = `<img src="${payload.uri}" alt="doge" />`;
        } else {
          result.textContent = `much fail (${response.status})`;
        }
      });
      loadUsers();
    </script>
  </body>
</html>
"""

_MONITOR_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>such doge monitor</title>
    <script src="https://cdn.jsdelivr.net/npm/sockjs-client@1/dist/sockjs.min.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/@stomp/stompjs@7/bundles/stomp.umd.min.js"></script>
    <style>
      body { font-family: "Comic Sans MS", sans-serif; margin: 2rem; }
      img { max-width: 320px; margin: 0.5rem; }
    </style>
  </head>
  <body>
    <h1>such monitor. many doge.</h1>
    <div id="doges"></div>
    <script>
      const client = new StompJs.Client({
        webSocketFactory: () => new SockJS("/doge"),
        reconnectDelay: 5000,
      });
      client.onConnect = () => {
        client.subscribe("/topic/alarms", (message) => {
          const event = JSON.parse(message.body);
          const image = document.createElement("img");
          image.src = event.dogePhotoUri;
          image.alt = event.userId;
          document.getElementById("doges").prepend(image);
        });
      };
      client.activate();
    </script>
  </body>
</html>
"""

_VIEWS = {"client": _CLIENT_HTML, "monitor": _MONITOR_HTML}
