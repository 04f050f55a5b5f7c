"""Sample media payloads and HTTP transports shared by cgmedia tests."""

import base64
import io
from collections.abc import Callable

import httpx
import pillow_heif
from PIL import Image

SAMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="24" height="12" viewBox="0 0 24 12">'
    '<rect width="24" height="12" fill="#3366ff"/>'
    '<circle cx="12" cy="6" r="4" fill="#ffcc00"/>'
    "</svg>"
)


def make_png(size: tuple[int, int] = (64, 64), color: tuple[int, ...] = (255, 0, 0)) -> bytes:
    """Encode a solid-colour PNG (RGBA when a 4-tuple colour is given)."""
    mode = "RGBA" if len(color) == 4 else "RGB"
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format="PNG")
    return out.getvalue()


def make_heic(
    size: tuple[int, int] = (64, 64), color: tuple[int, int, int] = (255, 0, 0)
) -> bytes:
    """Encode a solid-colour HEIC still, as phone-camera NFTs often are."""
    out = io.BytesIO()
    pillow_heif.from_pillow(Image.new("RGB", size, color)).save(out, quality=90)
    return out.getvalue()


def make_gif(frames: int = 3, size: tuple[int, int] = (32, 32)) -> bytes:
    """Encode an animated GIF whose first frame is pure green."""
    colors = [(0, 255, 0), (0, 0, 255), (255, 0, 0)]
    images = [Image.new("RGB", size, colors[i % len(colors)]) for i in range(frames)]
    out = io.BytesIO()
    images[0].save(out, format="GIF", save_all=True, append_images=images[1:], duration=100, loop=0)
    return out.getvalue()


def svg_data_uri(svg: str = SAMPLE_SVG) -> str:
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


def png_data_uri(data: bytes | None = None) -> str:
    return "data:image/png;base64," + base64.b64encode(data or make_png()).decode("ascii")


Handler = Callable[[httpx.Request], httpx.Response]


def mock_client(handler: Handler) -> httpx.AsyncClient:
    """AsyncClient backed by an in-process MockTransport."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def unreachable(request: httpx.Request) -> httpx.Response:
    """Transport handler simulating a host that cannot be reached."""
    raise httpx.ConnectError("connection refused", request=request)


class MediaServer:
    """Serves fixed bodies per URL path and records every request.

    Supports HEAD, plain GET and `Range: bytes=0-1023` GET like a typical
    gateway. Paths listed in `head_fails` answer HEAD with 405.
    """

    def __init__(self) -> None:
        # path -> (content_type, body)
        self.routes: dict[str, tuple[str, bytes]] = {}
        self.head_fails: set[str] = set()
        self.requests: list[httpx.Request] = []

    def add(self, path: str, content_type: str, body: bytes) -> str:
        self.routes[path] = (content_type, body)
        return f"https://media.example{path}"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        content_type, body = route
        if request.method == "HEAD":
            if request.url.path in self.head_fails:
                return httpx.Response(405)
            return httpx.Response(
                200,
                headers={"Content-Type": content_type, "Content-Length": str(len(body))},
            )
        if request.headers.get("Range") == "bytes=0-1023":
            return httpx.Response(
                206,
                headers={
                    "Content-Type": content_type,
                    "Content-Range": f"bytes 0-1023/{len(body)}",
                },
                content=body[:1024],
            )
        return httpx.Response(200, headers={"Content-Type": content_type}, content=body)

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
