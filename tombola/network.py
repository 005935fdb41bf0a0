import logging
import socket

logger = logging.getLogger(__name__)


def local_ip() -> str:
    """First non-loopback IPv4 address of this host, or 'localhost'."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only picks the outgoing interface
        sock.connect(('10.255.255.255', 1))
        return sock.getsockname()[0]
    except OSError:
        logger.warning('[network] could not determine LAN address, advertising localhost')
        return 'localhost'
    finally:
        sock.close()


def server_url(config) -> str:
    public_url = config.get('PUBLIC_URL')
    if public_url:
        return public_url.rstrip('/')
    return f"http://{local_ip()}:{config.get('PORT', 3000)}"
