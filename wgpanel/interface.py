import logging
import subprocess

from . import storage
from .config import SYSTEMCTL, WG, WG_QUICK
from .errors import ExternalToolError
from .reconciler import parse_dump

_log = logging.getLogger("wgpanel.interface")


def run_command(cmd):
    try:
        r = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ExternalToolError(f"Could not run {' '.join(cmd)}: {e}", command=cmd)
    if r.returncode != 0:
        stderr = (r.stderr or "").strip()
        raise ExternalToolError(
            f"Command failed: {' '.join(cmd)} (exit {r.returncode}): {stderr}",
            command=cmd, returncode=r.returncode, stderr=stderr,
        )
    return r.stdout


class InterfaceController:
    """Brings the WireGuard device up and down through wg-quick."""

    def __init__(self, interface, config_path, runner=run_command):
        self.interface = interface
        self.config_path = config_path
        self._run = runner

    def _invoke(self, cmd, stage, verb):
        _log.info("%s %s: %s", verb, self.interface, " ".join(cmd))
        try:
            self._run(cmd)
        except ExternalToolError as e:
            _log.error("could not %s %s: %s", verb, self.interface, e.message)
            raise ExternalToolError(
                f"Could not {verb} WireGuard: {e.message}",
                command=e.command, returncode=e.returncode, stderr=e.stderr, stage=stage,
            )

    def start(self):
        self._invoke([WG_QUICK, "up", self.interface], "start", "start")

    def stop(self):
        self._invoke([WG_QUICK, "down", self.interface], "stop", "stop")

    def restart(self, config_text):
        storage.write_wireguard_config(self.config_path, config_text)
        self.stop()
        self.start()

    def reload(self, config_text):
        storage.write_wireguard_config(self.config_path, config_text)
        self._invoke([SYSTEMCTL, "reload", f"wg-quick@{self.interface}"], "reload", "reload")


class InterfaceMonitor:
    def __init__(self, interface, runner=run_command):
        self.interface = interface
        self._run = runner

    def snapshot(self):
        out = self._run([WG, "show", self.interface, "dump"])
        return parse_dump(out)
