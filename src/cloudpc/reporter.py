from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import humanize
import jinja2

from .dispatcher import allowed_actions
from .schemas.cloudpc import CloudPCResource

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _environment() -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=jinja2.select_autoescape(["html", "xml"]),
    )

    def relative_time(value: Any) -> str:
        if not value:
            return "-"
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return str(humanize.naturaltime(datetime.now(timezone.utc) - value))
        return str(value)

    def format_date(value: Any) -> str:
        if hasattr(value, "strftime"):
            return value.strftime("%Y-%m-%d %H:%M")  # type: ignore[no-any-return]
        return "-" if value is None else str(value)

    env.filters["relative_time"] = relative_time
    env.filters["format_date"] = format_date
    return env


def render_inventory_html(
    resources: list[CloudPCResource], scan_time: datetime | None = None
) -> str:
    """Renders the Cloud PC inventory (with allowed actions) as a standalone page."""
    counts: dict[str, int] = {}
    for r in resources:
        counts[r.provisioning_type.value] = counts.get(r.provisioning_type.value, 0) + 1

    rows = [
        {
            "resource": r,
            "actions": ", ".join(a.value for a in allowed_actions(r)),
        }
        for r in resources
    ]

    template = _environment().get_template("inventory.html")
    return template.render(
        rows=rows,
        counts=counts,
        total=len(resources),
        scan_time=(scan_time or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
    )


def write_inventory_html(
    resources: list[CloudPCResource], output_path: str, scan_time: datetime | None = None
) -> None:
    html_content = render_inventory_html(resources, scan_time)
    with Path(output_path).open("w") as f:
        f.write(html_content)
