from typing import Any, Dict, List


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def render_table(records: List[Dict[str, Any]], columns: List[str]) -> str:
    """Fixed-width text table: header, separator, one line per record."""
    widths = {c: len(c) for c in columns}
    for r in records:
        for c in columns:
            widths[c] = max(widths[c], len(_cell(r.get(c))))

    header = " | ".join(f"{c:<{widths[c]}}" for c in columns)
    lines = [header.rstrip(), "-" * len(header)]
    for r in records:
        line = " | ".join(f"{_cell(r.get(c)):<{widths[c]}}" for c in columns)
        lines.append(line.rstrip())
    return "\n".join(lines) + "\n"
