"""Flask application factory for the echo service.

Every path and every supported method lands on one route, which replies
with JSON describing the request it received:

- ``method`` and ``path`` from the request line.
- ``query`` as the decoded query parameters.
- ``headers`` as a name/value object.
- ``body`` as the UTF-8 decoded payload.

A ``status`` query parameter picks the response status (default 200),
which lets tests exercise error responses too.
"""

from __future__ import annotations

from flask import Flask, Response, jsonify, request

from stream_http.request import HttpMethod

_HTTP_OK = 200


def create_app() -> Flask:
    """Create and configure the echo application.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)
    methods = [m.value for m in HttpMethod]

    @app.route("/", defaults={"path": ""}, methods=methods)
    @app.route("/<path:path>", methods=methods)
    def echo(path: str) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        """Describe the incoming request as JSON."""
        status = request.args.get("status", default=_HTTP_OK, type=int)
        payload = {
            "method": request.method,
            "path": f"/{path}",
            "query": request.args.to_dict(),
            "headers": dict(request.headers.items()),
            "body": request.get_data(as_text=True),
        }
        return jsonify(payload), status

    return app
