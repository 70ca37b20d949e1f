"""systemd socket activation.

When the service is started by a systemd ``.socket`` unit, the listening
socket is passed in as file descriptor 3 and ``LISTEN_PID`` / ``LISTEN_FDS``
are set in the environment. Otherwise the service binds its configured port.
"""

import os
from typing import Mapping, Optional

import structlog

logger = structlog.get_logger("index_service.activation")

# First descriptor systemd passes (sd_listen_fds(3))
SD_LISTEN_FDS_START = 3


def get_listen_fd(
    environ: Optional[Mapping[str, str]] = None,
    pid: Optional[int] = None
) -> Optional[int]:
    """Return the socket fd handed over by systemd, or None.

    Parameters
    - environ: Environment to inspect (default: ``os.environ``)
    - pid: Process id the variables must be addressed to (default: current)
    """
    environ = os.environ if environ is None else environ
    pid = os.getpid() if pid is None else pid

    listen_pid = environ.get("LISTEN_PID")
    listen_fds = environ.get("LISTEN_FDS")
    if listen_pid is None or listen_fds is None:
        return None

    try:
        if int(listen_pid) != pid:
            logger.debug("LISTEN_PID addressed to another process", listen_pid=listen_pid, pid=pid)
            return None
        count = int(listen_fds)
    except ValueError:
        logger.warning("Malformed socket activation variables", listen_pid=listen_pid, listen_fds=listen_fds)
        return None

    if count < 1:
        return None
    if count > 1:
        logger.warning("Several sockets passed, using the first", listen_fds=count)
    return SD_LISTEN_FDS_START
