"""Route table for the study presence API."""

from aiohttp import web

from .controller import PresenceAPIController
from .middleware import create_error_response

API_PREFIX = "/api/v1"


def setup_routes(app: web.Application) -> None:
    app.router.add_get(f"{API_PREFIX}/health", health_handler)
    app.router.add_get(f"{API_PREFIX}/status", status_handler)
    app.router.add_post(f"{API_PREFIX}/timer/toggle", toggle_handler)
    app.router.add_post(f"{API_PREFIX}/timer/start", start_handler)
    app.router.add_post(f"{API_PREFIX}/timer/stop", stop_handler)
    app.router.add_post(f"{API_PREFIX}/timer/reset", reset_handler)
    app.router.add_post(f"{API_PREFIX}/camera/enable", enable_camera_handler)
    app.router.add_post(f"{API_PREFIX}/camera/disable", disable_camera_handler)
    app.router.add_get(f"{API_PREFIX}/camera/preview.jpg", preview_handler)


def _controller(request: web.Request) -> PresenceAPIController:
    return request.app["controller"]


def _result_response(result: dict) -> web.Response:
    if not result.get("success"):
        return web.json_response(
            {
                "error": {
                    "code": result.get("error_code", "ERROR"),
                    "message": result.get("error", "Request failed"),
                },
                "status": 409,
                "state": result.get("status"),
            },
            status=409,
        )
    return web.json_response(result)


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/v1/health"""
    return web.json_response(await _controller(request).health_check())


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/status - timer, presence, camera and connectivity state."""
    return web.json_response(await _controller(request).get_status())


async def toggle_handler(request: web.Request) -> web.Response:
    """POST /api/v1/timer/toggle - start when stopped, stop when running."""
    return _result_response(await _controller(request).toggle_timer())


async def start_handler(request: web.Request) -> web.Response:
    return _result_response(await _controller(request).start_timer())


async def stop_handler(request: web.Request) -> web.Response:
    return _result_response(await _controller(request).stop_timer())


async def reset_handler(request: web.Request) -> web.Response:
    """POST /api/v1/timer/reset - zero the elapsed time, run state untouched."""
    return _result_response(await _controller(request).reset_timer())


async def enable_camera_handler(request: web.Request) -> web.Response:
    return _result_response(await _controller(request).enable_camera())


async def disable_camera_handler(request: web.Request) -> web.Response:
    return _result_response(await _controller(request).disable_camera())


async def preview_handler(request: web.Request) -> web.Response:
    """GET /api/v1/camera/preview.jpg - newest camera frame as JPEG."""
    payload = _controller(request).preview_jpeg()
    if payload is None:
        return create_error_response("NO_PREVIEW", "No camera frame available", status=404)
    return web.Response(body=payload, content_type="image/jpeg", headers={"Cache-Control": "no-store"})


__all__ = ["API_PREFIX", "setup_routes"]
