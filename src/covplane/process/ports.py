"""Local port helpers."""

import socket

from covplane.config.constants import LOCALHOST


def get_open_port(host: str = LOCALHOST) -> int:
    """Return a port that is free on ``host`` right now.

    The socket is closed before returning, so another process can still take
    the port before the caller binds it.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]
