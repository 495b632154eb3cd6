"""
Broadcast channel for simulation control between processes.

UDP multicast on the local host: every listening display receives each
datagram, delivery is at-most-once and unordered. Receivers must tolerate
duplicates, gaps and stale commands.
"""

import logging
import socket
import struct
import threading
from typing import Callable, Optional

from core.errors import MalformedControlMessage
from core.messages import ControlMessage, encode, parse_message

DEFAULT_GROUP = "239.255.77.77"
DEFAULT_PORT = 50777
MAX_DATAGRAM = 4096
RECEIVE_RETRY_SEC = 1.0


class SimulationChannel:
    def __init__(self, group: str = DEFAULT_GROUP, port: int = DEFAULT_PORT, ttl: int = 1):
        self.group = group
        self.port = port
        self.ttl = ttl

        self._send_sock: Optional[socket.socket] = None
        self._send_lock = threading.Lock()

    # ------------ sending ------------
    def send(self, message: ControlMessage) -> bool:
        payload = encode(message)
        try:
            with self._send_lock:
                if self._send_sock is None:
                    self._send_sock = self._open_sender()
                self._send_sock.sendto(payload, (self.group, self.port))
            logging.debug(f"[CHAN] Sent {message.to_dict()['type']}")
            return True
        except OSError as e:
            logging.error(f"[CHAN] Send failed: {e}")
            return False

    def close(self) -> None:
        with self._send_lock:
            if self._send_sock is not None:
                self._send_sock.close()
                self._send_sock = None

    def _open_sender(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        return sock

    # ------------ receiving ------------
    def _open_receiver(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        sock.bind(("", self.port))
        membership = struct.pack("4s4s", socket.inet_aton(self.group), socket.inet_aton("0.0.0.0"))
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
        sock.settimeout(1.0)
        return sock

    def listen(self, handler: Callable[[ControlMessage], None], stop_event: threading.Event) -> None:
        """Receive until `stop_event` is set, passing each valid message to `handler`."""
        try:
            sock = self._open_receiver()
        except OSError as e:
            logging.error(f"[CHAN] Cannot listen on {self.group}:{self.port}: {e}")
            return

        logging.info(f"[CHAN] Listening on {self.group}:{self.port}")
        try:
            while not stop_event.is_set():
                try:
                    data, _ = sock.recvfrom(MAX_DATAGRAM)
                except socket.timeout:
                    continue
                except OSError as e:
                    logging.error(f"[CHAN] Receive failed: {e}")
                    stop_event.wait(RECEIVE_RETRY_SEC)
                    continue
                dispatch(data, handler)
        finally:
            sock.close()
            logging.info("[CHAN] Listener closed")

    def start_listener(self, handler: Callable[[ControlMessage], None], stop_event: threading.Event) -> threading.Thread:
        t = threading.Thread(
            target=self.listen,
            args=(handler, stop_event),
            name="SimChannelListener",
            daemon=True,
        )
        t.start()
        return t


def dispatch(data: bytes, handler: Callable[[ControlMessage], None]) -> Optional[ControlMessage]:
    """Parse one datagram and hand it to `handler`; malformed input is logged and dropped."""
    try:
        message = parse_message(data)
    except MalformedControlMessage as e:
        logging.warning(f"[CHAN] Dropping malformed message: {e}")
        return None

    try:
        handler(message)
    except Exception as e:
        logging.error(f"[CHAN] Handler failed: {e}", exc_info=True)
    return message
