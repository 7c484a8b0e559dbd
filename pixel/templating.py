from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%d %b %y %H:%M:%S UTC")


templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)
templates.filters["format_ts"] = _format_timestamp
