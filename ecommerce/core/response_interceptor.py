"""
Success Response Interceptor Middleware.
Wraps all successful JSON responses in a standard format with success flag and optional count.
"""

import json
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.base import BaseHTTPMiddleware


# Key for skipping the interceptor on specific routes
SKIP_INTERCEPTOR_KEY = "skip_interceptor"

# FastAPI documentation and infrastructure endpoints are never wrapped
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/redoc", "/health"}


class SuccessResponseInterceptor(BaseHTTPMiddleware):
    """
    Middleware that wraps all successful responses in a standard format:
    {
        "success": true,
        "count": <length> (if data is a list),
        "data": <original response>
    }

    Error responses already carry the error envelope and pass through.
    Can be skipped on specific routes using the @skip_interceptor decorator.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.url.path in EXCLUDED_PATHS:
            return response

        if not (200 <= response.status_code < 300):
            return response

        if getattr(request.state, SKIP_INTERCEPTOR_KEY, False):
            return response

        if "application/json" not in response.headers.get("content-type", ""):
            return response

        response_body = b"".join([chunk async for chunk in response.body_iterator])

        try:
            original_data = json.loads(response_body.decode())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return Response(
                content=response_body,
                status_code=response.status_code,
                headers=dict(response.headers),
            )

        wrapped_response = {"success": True, "data": original_data}
        if isinstance(original_data, list):
            wrapped_response["count"] = len(original_data)

        # Content-Length is recalculated by JSONResponse
        headers = dict(response.headers)
        headers.pop("content-length", None)

        return JSONResponse(
            content=wrapped_response,
            status_code=response.status_code,
            headers=headers,
        )


def skip_interceptor(func: Callable) -> Callable:
    """
    Decorator to skip the success response interceptor on specific routes.

    Usage:
        @router.delete("/{item_id}")
        @skip_interceptor
        async def delete_item(item_id: int):
            return {"success": True, "message": "Deleted"}
    """
    setattr(func, SKIP_INTERCEPTOR_KEY, True)
    return func


class CustomAPIRoute(APIRoute):
    """
    Custom API Route that checks for the skip_interceptor decorator
    and sets it in the request state.
    """

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def custom_route_handler(request: Request) -> Response:
            if getattr(self.endpoint, SKIP_INTERCEPTOR_KEY, False):
                setattr(request.state, SKIP_INTERCEPTOR_KEY, True)
            return await original_route_handler(request)

        return custom_route_handler
