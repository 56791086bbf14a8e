import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
# name of the rate source whose refresh or query is running in this task
source_ctx: ContextVar[str | None] = ContextVar("source", default=None)

# record attributes copied into the JSON line when set via ``extra=``
_FX_FIELDS = ("source", "from_currency", "to_currency", "ingested", "skipped")


@contextmanager
def source_context(name: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``source=name``."""
    token = source_ctx.set(name)
    try:
        yield
    finally:
        source_ctx.reset(token)


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx.get() or "-"
        if getattr(record, "source", None) is None:
            record.source = source_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        for field in _FX_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                base[field] = value
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def init_logging(debug: bool = False) -> None:
    """Send JSON lines to stdout; the ``fxrate`` tree follows ``debug``."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.INFO)
    logging.getLogger("fxrate").setLevel(logging.DEBUG if debug else logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


async def request_context_middleware(request, call_next):  # type: ignore
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    token = request_id_ctx.set(rid)
    logger = logging.getLogger("fxrate.request")
    logger.info("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response
    finally:
        logger.debug("request end")
        request_id_ctx.reset(token)
