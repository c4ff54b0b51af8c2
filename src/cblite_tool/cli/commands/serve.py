"""``serve``: expose the database read-only over HTTP as JSON.

Only available in one-shot mode: the server blocks the single control
thread until interrupted with Ctrl+C.

Routes
------
* ``GET /``: database summary.
* ``GET /_all_docs``: IDs and revisions of live documents.
* ``GET /<docid>``: one document, or 404.

Any write method answers 405.
"""

from __future__ import annotations

import logging
import socket
from typing import Any

from cblite_tool.cli.console import console
from cblite_tool.cli.commands.base import Command
from cblite_tool.core.arguments import ArgumentCursor, FlagAction
from cblite_tool.core.protocols import DatabaseHandle
from cblite_tool.core.session import Session
from cblite_tool.exceptions import EnvironmentError, OperationFailedError
from cblite_tool.utils.config import load_settings

LOG = logging.getLogger(__name__)

_WRITE_METHODS = ["PUT", "POST", "DELETE", "PATCH"]
_INSTALL_HINT = "Install with: pip install fastapi uvicorn"


def _import_fastapi() -> tuple[Any, Any]:
    """Return ``(FastAPI, JSONResponse)`` or raise ``EnvironmentError``."""
    try:
        from fastapi import FastAPI
        from fastapi.responses import JSONResponse
    except ModuleNotFoundError as exc:
        raise EnvironmentError(f"fastapi is not installed. {_INSTALL_HINT}") from exc
    return FastAPI, JSONResponse


def _import_uvicorn() -> Any:
    try:
        import uvicorn
    except ModuleNotFoundError as exc:
        raise EnvironmentError(f"uvicorn is not installed. {_INSTALL_HINT}") from exc
    return uvicorn


def create_app(db: DatabaseHandle) -> Any:
    """Build the read-only FastAPI application over *db*.

    Handlers are ``async`` so they run on the event loop thread, the same
    thread that opened the database.
    """
    FastAPI, JSONResponse = _import_fastapi()
    app = FastAPI(title="cblite serve", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/")
    async def summary() -> dict[str, Any]:
        return {
            "db_name": db.path,
            "doc_count": db.document_count(),
            "update_seq": db.last_sequence(),
        }

    @app.get("/_all_docs")
    async def all_docs() -> dict[str, Any]:
        rows = [{"id": doc.doc_id, "rev": doc.rev_id} for doc in db.documents()]
        return {"total_rows": len(rows), "rows": rows}

    @app.get("/{docid:path}")
    async def document(docid: str) -> Any:
        doc = db.get_document(docid)
        if doc is None or doc.deleted:
            return JSONResponse(
                status_code=404,
                content={"error": "not_found", "reason": "missing"},
            )
        return {"_id": doc.doc_id, "_rev": doc.rev_id, **doc.body}

    @app.api_route("/{path:path}", methods=_WRITE_METHODS)
    async def read_only(path: str) -> Any:
        LOG.info("Refused write request to /%s", path)
        return JSONResponse(
            status_code=405,
            content={"error": "method_not_allowed", "reason": "server is read-only"},
        )

    return app


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise OperationFailedError(
            f"Couldn't listen on {host}:{port}: {exc.strerror or exc}",
        ) from exc
    return sock


class ServeCommand(Command):
    SUMMARY = "Serve the database read-only over HTTP until interrupted."
    FLAG_HELP = (
        ("--host HOST", "Interface to listen on (default 127.0.0.1)"),
        ("--port N", "TCP port (default $CBLITE_SERVE_PORT or 59840)"),
    )

    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self._host = "127.0.0.1"
        self._port = load_settings().serve_port

    def flags(self, args: ArgumentCursor) -> list[tuple[str, FlagAction]]:
        def set_host() -> None:
            self._host = args.next_arg("--host")

        def set_port() -> None:
            self._port = self.int_arg(args, "--port")

        return [("--host", set_host), ("--port", set_port)]

    def run(self, args: ArgumentCursor) -> None:
        self.process_flags(args)
        db = self.open_database(args)
        args.end_of_args()

        uvicorn = _import_uvicorn()
        app = create_app(db)
        sock = _bind(self._host, self._port)
        port = sock.getsockname()[1]
        server = uvicorn.Server(uvicorn.Config(app, log_config=None, access_log=False))

        console.text(f"Serving {db.path} at http://{self._host}:{port}/ (Ctrl+C to stop)")
        try:
            server.run(sockets=[sock])
        except KeyboardInterrupt:
            LOG.debug("serve interrupted")
        finally:
            sock.close()
        console.text("Stopped.")
