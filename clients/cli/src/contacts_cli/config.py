"""Connection settings: built-in defaults, the JSON settings file, then CLI flags."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from contacts_cli.snapshot import DEFAULT_NAMESPACE

DEFAULT_SETTINGS_FILE = Path.home() / ".contacts_tui.json"
DEFAULT_LOG_FILE = Path.home() / ".contacts_tui.log"
SETTINGS_KEYS = ("base_url", "service", "namespace", "timeout_s", "log_file", "log_level")


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    service: str
    namespace: str
    timeout_s: float
    log_file: Path
    log_level: str


def _build_default_settings() -> Dict[str, Any]:
    return {
        "base_url": "http://localhost:8080",
        "service": DEFAULT_NAMESPACE,
        "namespace": "",
        "timeout_s": 10.0,
        "log_file": str(DEFAULT_LOG_FILE),
        "log_level": "INFO",
    }


def load_settings(path: Path | str = DEFAULT_SETTINGS_FILE) -> Dict[str, Any]:
    """Load persisted connection settings from disk if present."""

    try:
        data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {key: data[key] for key in SETTINGS_KEYS if key in data}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contacts-tui", description="Terminal client for shared contact books")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_FILE), help="JSON settings file")
    parser.add_argument("--base-url", dest="base_url", help="Node HTTP base URL")
    parser.add_argument("--service", help="Process path serving /state, /post and /updates")
    parser.add_argument("--namespace", help="Suffix appended to bare peer identities (defaults to --service)")
    parser.add_argument("--timeout", dest="timeout_s", type=float, help="HTTP timeout in seconds")
    parser.add_argument("--log-file", dest="log_file", help="Diagnostics log path")
    parser.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def resolve_config(argv: Optional[Sequence[str]] = None) -> ClientConfig:
    args = build_parser().parse_args(argv)
    settings = _build_default_settings()
    settings.update(load_settings(args.settings))
    for key in SETTINGS_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            settings[key] = value
    service = str(settings["service"]).strip("/")
    return ClientConfig(
        base_url=str(settings["base_url"]).rstrip("/"),
        service=service,
        namespace=str(settings["namespace"] or service),
        timeout_s=float(settings["timeout_s"]),
        log_file=Path(str(settings["log_file"])).expanduser(),
        log_level=str(settings["log_level"]).upper(),
    )


def configure_logging(config: ClientConfig) -> None:
    """Send diagnostics to a file; curses owns the terminal."""

    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(config.log_file),
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("asyncio").setLevel(logging.ERROR)
