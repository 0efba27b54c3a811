import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from ..errors import TransportError
from ..models import FactCategory

logger = logging.getLogger("inventory.collectors")

SCRIPT_PREAMBLE = r"""
$ErrorActionPreference = 'Stop'
$ProgressPreference = 'SilentlyContinue'
""".strip()


class Collector(Protocol):
    name: str
    category: FactCategory

    def collect(self, host: str, client) -> Any:
        """Return the category payload or raise TransportError."""
        ...


def is_empty(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, str):
        if val.strip() == "":
            return True
        if val.strip().lower() in ("null", "none"):
            return True
    return False


def text(val: Any) -> str:
    return "" if is_empty(val) else str(val).strip()


def extract_json_records(txt: str) -> Optional[List[Dict[str, Any]]]:
    """
    Parse PowerShell JSON output into a list of dicts.

    Accepts a JSON array, a single object, or either wrapped in banner text.
    Returns None when nothing parseable is found.
    """
    if not txt:
        return None
    s = txt.strip()
    if not s:
        return None

    candidates = [s]
    i, j = s.find('['), s.rfind(']')
    if i != -1 and j > i:
        candidates.append(s[i:j + 1])
    i, j = s.find('{'), s.rfind('}')
    if i != -1 and j > i:
        candidates.append(s[i:j + 1])

    for snippet in candidates:
        try:
            obj = json.loads(snippet)
        except ValueError:
            continue
        if isinstance(obj, list):
            return [o for o in obj if isinstance(o, dict)]
        if isinstance(obj, dict):
            return [obj]
    return None


def run_query(client, host: str, script: str, what: str) -> List[Dict[str, Any]]:
    """Run one remote script and return its JSON records, or raise TransportError."""
    res = client.run_command(f"{SCRIPT_PREAMBLE}\n{script.strip()}")
    if res.error:
        raise TransportError(host, f"{what}: {res.error[:200]}")
    if res.exit_code != 0:
        detail = (res.stderr or "").strip()[:200] or "no stderr"
        raise TransportError(host, f"{what}: exit code {res.exit_code}: {detail}")

    records = extract_json_records(res.stdout)
    if records is None:
        if not (res.stdout or "").strip():
            return []
        raise TransportError(host, f"{what}: unparseable output")
    return records


def first_record(records: List[Dict[str, Any]], host: str, what: str) -> Dict[str, Any]:
    if not records:
        raise TransportError(host, f"{what}: empty result")
    return records[0]
