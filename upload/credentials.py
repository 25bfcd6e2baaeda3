"""Upload host lookup from the per-user netrc file."""

from __future__ import annotations

import logging
import netrc
import os
from dataclasses import dataclass, field
from typing import Optional

from engine.errors import CredentialsUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRecord:
    host: str
    login: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)


def default_netrc_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".netrc")


def load_credentials(path: Optional[str] = None) -> CredentialRecord:
    """Return the first ``machine`` entry of the netrc file.

    Raises:
        CredentialsUnavailable: If the file is missing, unreadable or
            unparsable, or lists no machine entries.
    """
    netrc_path = path or default_netrc_path()
    try:
        parsed = netrc.netrc(netrc_path)
    except FileNotFoundError as exc:
        raise CredentialsUnavailable(f"netrc file not found: {netrc_path}") from exc
    except netrc.NetrcParseError as exc:
        raise CredentialsUnavailable(f"Failed to read {netrc_path}: {exc}") from exc
    except OSError as exc:
        raise CredentialsUnavailable(f"Failed to read {netrc_path}: {exc}") from exc

    # "default" has no host name to connect to.
    hosts = [(host, auth) for host, auth in parsed.hosts.items() if host != "default"]
    if not hosts:
        raise CredentialsUnavailable(f"No machine entries in {netrc_path}")

    host, (login, _account, password) = hosts[0]
    if len(hosts) > 1:
        logger.info("Using first of %d netrc hosts: %s", len(hosts), host)
    return CredentialRecord(host=host, login=login or None, password=password or None)
