import argparse
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError
from .models import CATEGORY_ORDER, FactCategory

logger = logging.getLogger("inventory.config")

DEFAULT_ENV_PATH = Path.cwd() / ".env"
DEFAULT_OUT_DIR = "./reports"

# Built-in defaults, overridden by the config file, then env, then CLI flags.
DEFAULTS: Dict[str, Any] = {
    "output_dir": DEFAULT_OUT_DIR,
    "html_template": None,
    "export_csv": True,
    "export_html": False,
    "compare_across_servers": False,
    "export_installed_apps": False,
    "export_xlsx": False,
}

BOOL_KEYS = ("export_csv", "export_html", "compare_across_servers", "export_installed_apps", "export_xlsx")
PATH_KEYS = ("output_dir", "html_template")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    # Targets
    hosts: List[str]
    categories: Tuple[FactCategory, ...]

    # Auth
    username: str
    password: str

    # WinRM settings
    winrm_port: int
    winrm_transport: str
    winrm_scheme: str
    verify_ssl: bool
    read_timeout: int
    max_concurrency: int

    # Report options
    hotfix_detail: bool
    compare_apps: bool
    export_csv: bool
    export_html: bool
    export_apps: bool
    export_xlsx: bool

    # Output
    out_dir: Path
    html_template: Optional[Path]

    # Mode
    debug: bool
    config_path: Optional[Path] = None
    config_errors: Tuple[str, ...] = field(default_factory=tuple)

    def summary(self) -> Dict[str, Any]:
        """Resolved settings, safe to log (no password)."""
        return {
            "hosts_targeted_count": len(self.hosts),
            "categories": [c.value for c in self.categories],
            "user": self.username,
            "winrm_endpoint": f"{self.winrm_scheme}:{self.winrm_port} ({self.winrm_transport})",
            "read_timeout": self.read_timeout,
            "max_concurrency": self.max_concurrency,
            "hotfix_detail": self.hotfix_detail,
            "compare_apps": self.compare_apps,
            "export_csv": self.export_csv,
            "export_html": self.export_html,
            "export_apps": self.export_apps,
            "export_xlsx": self.export_xlsx,
            "out_dir": str(self.out_dir),
            "html_template": str(self.html_template) if self.html_template else None,
            "config_path": str(self.config_path) if self.config_path else None,
        }


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read the JSON config file. Raises ConfigError when it cannot be used."""
    try:
        raw = Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"cannot read config file {path}: not UTF-8 ({e.reason} at byte {e.start})") from e
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigError(f"malformed config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"malformed config file {path}: top level must be an object")
    return data


def merge_file_settings(base: Dict[str, Any], data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Overlay recognised keys from `data` onto `base`; bad values are skipped."""
    merged = dict(base)
    problems: List[str] = []
    for key, value in data.items():
        if key not in DEFAULTS:
            problems.append(f"unknown config key {key!r} ignored")
            continue
        if key in BOOL_KEYS:
            parsed = parse_bool(value)
            if parsed is None:
                problems.append(f"invalid boolean for {key!r}: {value!r}, keeping {merged[key]!r}")
                continue
            merged[key] = parsed
        elif key in PATH_KEYS:
            if value in (None, ""):
                merged[key] = None if key == "html_template" else merged[key]
                continue
            if not isinstance(value, str):
                problems.append(f"invalid path for {key!r}: {value!r}, keeping {merged[key]!r}")
                continue
            merged[key] = value
    return merged, problems


def load_file_settings(path: Optional[Path]) -> Tuple[Dict[str, Any], List[str]]:
    """Defaults overlaid with the config file. Any ConfigError falls back to defaults."""
    settings = dict(DEFAULTS)
    if path is None:
        return settings, []
    try:
        data = read_config_file(path)
    except ConfigError as e:
        return settings, [f"{e}; using built-in defaults"]
    return merge_file_settings(settings, data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Remote fleet inventory report")

    # Target args
    parser.add_argument("--hosts", help="Comma-separated list of hosts (or path to file)")
    parser.add_argument("--hosts-file", help="Path to file with hosts (one per line)")

    # Categories
    parser.add_argument("--hotfix-count", action="store_true", help="Collect hotfix count")
    parser.add_argument("--hotfix-detail", action="store_true", help="Export per-machine hotfix list")
    parser.add_argument("--os", action="store_true", help="Collect OS facts")
    parser.add_argument("--bios", action="store_true", help="Collect BIOS facts")
    parser.add_argument("--hardware", action="store_true", help="Collect hardware facts")
    parser.add_argument("--apps", action="store_true", help="Collect installed applications")
    parser.add_argument("--all", action="store_true", help="Collect every category")

    # Toggles that override the config file
    for flag, dest, text in (
        ("compare-apps", "compare_apps", "cross-machine application comparison"),
        ("export-csv", "export_csv", "CSV export"),
        ("export-html", "export_html", "HTML export"),
        ("export-apps", "export_apps", "per-machine installed applications export"),
    ):
        toggle = parser.add_mutually_exclusive_group()
        toggle.add_argument(f"--{flag}", dest=dest, action="store_true", help=f"Enable {text}")
        toggle.add_argument(f"--no-{flag}", dest=dest, action="store_false", help=f"Disable {text}")
        parser.set_defaults(**{dest: None})
    parser.add_argument("--xlsx", dest="export_xlsx", action="store_true", default=None, help="Also write an XLSX workbook")

    # Output
    parser.add_argument("--out-dir", help=f"Output directory (default {DEFAULT_OUT_DIR})")
    parser.add_argument("--html-template", help="HTML template containing {{REPORT_TABLE}}")
    parser.add_argument("--config", help="Path to JSON config file")
    parser.add_argument("--env-file", help="Path to .env file")

    # Auth args
    parser.add_argument("--username", help="WinRM Username")
    parser.add_argument("--password", help="WinRM Password")

    # WinRM config
    parser.add_argument("--winrm-port", type=int, default=5985, help="WinRM Port (default 5985)")
    parser.add_argument("--winrm-transport", default="ntlm", choices=["ntlm", "kerberos", "basic", "credssp"], help="WinRM Transport")
    parser.add_argument("--winrm-scheme", default="http", choices=["http", "https"], help="WinRM Scheme")
    parser.add_argument("--insecure", action="store_true", help="Ignore SSL cert validation")
    parser.add_argument("--read-timeout", type=int, default=60, help="Operation timeout (sec) per remote query")
    parser.add_argument("--concurrency", type=int, default=4, help="Max parallel hosts (1 = sequential)")

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _read_hosts_file(path: str) -> List[str]:
    with open(path, 'r', encoding="utf-8-sig") as f:
        return [line.strip() for line in f if line.strip() and not line.strip().startswith("#")]


def resolve_hosts(args: argparse.Namespace) -> List[str]:
    hosts: List[str] = []
    if args.hosts_file and os.path.isfile(args.hosts_file):
        hosts.extend(_read_hosts_file(args.hosts_file))
    if args.hosts:
        if os.path.isfile(args.hosts):
            hosts.extend(_read_hosts_file(args.hosts))
        else:
            hosts.extend([h.strip() for h in args.hosts.split(",") if h.strip()])

    if not hosts and os.getenv("FLEET_HOSTS"):
        hosts = [h.strip() for h in os.getenv("FLEET_HOSTS").split(",") if h.strip()]

    return list(dict.fromkeys(hosts))


def resolve_categories(args: argparse.Namespace, compare_apps: bool, export_apps: bool = False) -> Tuple[FactCategory, ...]:
    """
    Explicit category switches, or every category when none is given.

    Report options that need a category add it on top of that choice
    without counting as a switch themselves.
    """
    selected = set()
    if args.hotfix_count:
        selected.add(FactCategory.HOTFIX)
    if args.os:
        selected.add(FactCategory.OS)
    if args.bios:
        selected.add(FactCategory.BIOS)
    if args.hardware:
        selected.add(FactCategory.HARDWARE)
    if args.apps:
        selected.add(FactCategory.APPLICATIONS)
    if args.all or not selected:
        selected = set(CATEGORY_ORDER)
    if args.hotfix_detail:
        selected.add(FactCategory.HOTFIX)
    if compare_apps or export_apps:
        selected.add(FactCategory.APPLICATIONS)
    return tuple(c for c in CATEGORY_ORDER if c in selected)


def _pick(cli_value, env_name: str, file_value):
    if cli_value is not None:
        return cli_value
    env_value = os.getenv(env_name)
    if env_value is not None:
        parsed = parse_bool(env_value)
        if parsed is not None:
            return parsed
    return file_value


def load_config(argv: Optional[List[str]] = None) -> Config:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load Env
    env_path = Path(args.env_file) if args.env_file else DEFAULT_ENV_PATH
    if env_path.exists():
        load_dotenv(env_path)

    config_raw = args.config or os.getenv("FLEET_CONFIG")
    config_path = Path(config_raw) if config_raw else None
    settings, problems = load_file_settings(config_path)

    # Resolve Auth
    username = args.username or os.getenv("FLEET_USER") or ""
    password = args.password or os.getenv("FLEET_PASSWORD") or ""

    compare_apps = _pick(args.compare_apps, "FLEET_COMPARE_APPS", settings["compare_across_servers"])
    export_csv = _pick(args.export_csv, "FLEET_EXPORT_CSV", settings["export_csv"])
    export_html = _pick(args.export_html, "FLEET_EXPORT_HTML", settings["export_html"])
    export_apps = _pick(args.export_apps, "FLEET_EXPORT_APPS", settings["export_installed_apps"])
    export_xlsx = _pick(args.export_xlsx, "FLEET_EXPORT_XLSX", settings["export_xlsx"])

    out_dir = Path(args.out_dir or os.getenv("FLEET_OUT_DIR") or settings["output_dir"] or DEFAULT_OUT_DIR)
    template_raw = args.html_template or settings["html_template"]
    html_template = Path(template_raw) if template_raw else None

    concurrency = args.concurrency
    if concurrency < 1:
        problems.append(f"concurrency {concurrency} is lower than 1; using 1")
        concurrency = 1

    return Config(
        hosts=resolve_hosts(args),
        categories=resolve_categories(args, compare_apps, export_apps),
        username=username,
        password=password,
        winrm_port=args.winrm_port,
        winrm_transport=args.winrm_transport,
        winrm_scheme=args.winrm_scheme,
        verify_ssl=not args.insecure,
        read_timeout=args.read_timeout,
        max_concurrency=concurrency,
        hotfix_detail=args.hotfix_detail,
        compare_apps=compare_apps,
        export_csv=export_csv,
        export_html=export_html,
        export_apps=export_apps,
        export_xlsx=export_xlsx,
        out_dir=out_dir,
        html_template=html_template,
        debug=args.debug,
        config_path=config_path,
        config_errors=tuple(problems),
    )
