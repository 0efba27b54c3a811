import logging
from dataclasses import dataclass
from typing import Optional

import winrm

logger = logging.getLogger("inventory.winrm")


@dataclass
class WinRMResult:
    host: str
    exit_code: int
    stdout: str
    stderr: str
    error: Optional[str] = None


def categorize_error(error_msg: str) -> str:
    """Classify WinRM errors for better diagnostics."""
    lowered = error_msg.lower()
    if "401" in error_msg or "credentials were rejected" in lowered or "access is denied" in lowered:
        return "AUTH_REJECTED"
    if "timed out" in lowered or "timeout" in lowered:
        return "TIMEOUT"
    if "connection refused" in lowered:
        return "CONNECTION_REFUSED"
    if "certificate" in lowered or "ssl" in lowered:
        return "TLS_ERROR"
    if "resolve" in lowered or "unknown host" in lowered or "name or service not known" in lowered:
        return "DNS_ERROR"
    return "UNKNOWN"


class WinRMClient:
    """One WinRM endpoint. Every call returns a WinRMResult, never raises."""

    def __init__(self, host: str, config):
        self.host = host
        self.config = config
        self._session = None

    def _get_session(self):
        if self._session is not None:
            return self._session
        op_timeout = max(5, int(self.config.read_timeout))
        # HTTP read timeout must stay above the WSMan operation timeout.
        rd_timeout = op_timeout + 30

        endpoint = f"{self.config.winrm_scheme}://{self.host}:{self.config.winrm_port}/wsman"

        self._session = winrm.Session(
            target=endpoint,
            auth=(self.config.username, self.config.password),
            transport=self.config.winrm_transport,
            server_cert_validation='validate' if self.config.verify_ssl else 'ignore',
            operation_timeout_sec=op_timeout,
            read_timeout_sec=rd_timeout
        )
        return self._session

    def run_command(self, command: str) -> WinRMResult:
        """Run a PowerShell snippet on the host."""
        try:
            session = self._get_session()
            r = session.run_ps(command)
            return WinRMResult(
                host=self.host,
                exit_code=r.status_code,
                stdout=self._decode(r.std_out),
                stderr=self._decode(r.std_err)
            )
        except Exception as e:
            category = categorize_error(str(e))
            logger.debug(f"[{self.host}] WinRM call failed ({category}): {e}")
            return WinRMResult(self.host, -1, "", "", f"{category}: {e}")

    def _decode(self, b: bytes) -> str:
        if not b:
            return ""
        try:
            return b.decode("utf-8")
        except UnicodeDecodeError:
            return b.decode("utf-16-le", errors="ignore")
