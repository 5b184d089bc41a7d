"""Address parsing and small helpers for peer connections."""

from __future__ import annotations

import ipaddress
import random
import re
from dataclasses import dataclass

__all__ = ["AddrPort", "parse_addr", "flip_coin"]

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_PORT_RE = re.compile(r"[0-9]+\Z")


@dataclass(frozen=True)
class AddrPort:
    """An IP address and a port."""

    ip: IPAddress
    port: int

    def __str__(self) -> str:
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


def _split_host_port(address: str) -> tuple[str, str]:
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"address {address}: missing ']'")
        rest = address[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"address {address}: missing port")
        return address[1:end], rest[1:]
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port")
    if ":" in host:
        raise ValueError(f"address {address}: too many colons")
    return host, port


def parse_addr(address: str) -> AddrPort:
    """Parse "host:port" where host is an IP literal.

    IPv4-mapped IPv6 addresses are returned as IPv4 addresses.
    """
    host, port_text = _split_host_port(address)
    if not _PORT_RE.match(port_text) or int(port_text) > 0xFFFF:
        raise ValueError(f"invalid port {port_text!r}")
    ip = ipaddress.ip_address(host)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return AddrPort(ip=ip, port=int(port_text))


def flip_coin() -> bool:
    """True or False with equal probability."""
    return random.getrandbits(1) == 0