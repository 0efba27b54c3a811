import html
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ExportError
from ..models import ERROR_MARKER

logger = logging.getLogger("inventory.writers.html")

TABLE_PLACEHOLDER = "{{REPORT_TABLE}}"
TITLE_PLACEHOLDER = "{{TITLE}}"
GENERATED_PLACEHOLDER = "{{GENERATED_AT}}"

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{TITLE}}</title>
<style>
body { font-family: Segoe UI, Arial, sans-serif; font-size: 13px; }
table { border-collapse: collapse; }
th, td { border: 1px solid #999; padding: 4px 8px; text-align: left; }
th { background: #2f4f6f; color: #fff; }
td.error { background: #f8d7da; color: #721c24; }
</style>
</head>
<body>
<h1>{{TITLE}}</h1>
<p>Generated {{GENERATED_AT}}</p>
{{REPORT_TABLE}}
</body>
</html>
"""


def render_html_table(records: List[Dict[str, Any]], columns: List[str]) -> str:
    lines = ["<table>", "<thead><tr>" + "".join(f"<th>{html.escape(c)}</th>" for c in columns) + "</tr></thead>", "<tbody>"]
    for r in records:
        cells = []
        for c in columns:
            val = r.get(c, "")
            val = "" if val is None else str(val)
            css = ' class="error"' if val == ERROR_MARKER else ""
            cells.append(f"<td{css}>{html.escape(val)}</td>")
        lines.append("<tr>" + "".join(cells) + "</tr>")
    lines.append("</tbody>")
    lines.append("</table>")
    return "\n".join(lines)


def load_template(template_path: Optional[Path]) -> str:
    if not template_path:
        return DEFAULT_TEMPLATE
    template_path = Path(template_path)
    try:
        return template_path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ExportError(template_path, f"cannot read markup template: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise ExportError(template_path, f"cannot read markup template: not UTF-8 ({e.reason} at byte {e.start})") from e


def write_markup(
    records: List[Dict[str, Any]],
    columns: List[str],
    dest_path: Path,
    template_path: Optional[Path] = None,
    title: str = "System Report",
    generated_at: str = "",
) -> None:
    template = load_template(template_path)
    fragment = render_html_table(records, columns)
    if TABLE_PLACEHOLDER not in template:
        logger.warning(f"Template has no {TABLE_PLACEHOLDER} placeholder, appending table")
        template = template + "\n" + TABLE_PLACEHOLDER + "\n"

    document = (
        template.replace(TITLE_PLACEHOLDER, html.escape(title))
        .replace(GENERATED_PLACEHOLDER, html.escape(generated_at))
        .replace(TABLE_PLACEHOLDER, fragment)
    )
    dest_path = Path(dest_path)
    try:
        with dest_path.open("w", encoding="utf-8", newline="\n") as f:
            f.write(document)
    except OSError as e:
        raise ExportError(dest_path, f"cannot write markup export: {e.strerror or e}") from e
