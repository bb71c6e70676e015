"""Broadcast address derivation for local IPv4 interfaces."""
from __future__ import annotations

import ipaddress
import socket
from typing import Callable, Dict, List, Optional, Sequence

import psutil

BROADCAST_FALLBACK = "255.255.255.255"

InterfaceLister = Callable[[], Dict[str, Sequence]]


def broadcast_address(ip: bytes, mask: bytes) -> bytes:
    """Return ``ip`` with every host bit selected by ``mask`` set to 1.

    A mask shorter than the address is aligned to its low-order bytes; the
    leading bytes are copied unchanged.
    """
    offset = len(ip) - len(mask)
    out = bytearray(ip)
    for i in range(len(ip)):
        if i - offset >= 0:
            out[i] = ip[i] | (~mask[i - offset] & 0xFF)
    return bytes(out)


def is_global_unicast(ip: ipaddress.IPv4Address) -> bool:
    """Mirror the classic definition: RFC 1918 ranges count as global."""
    return not (
        ip.is_unspecified
        or ip.is_loopback
        or ip.is_multicast
        or ip.is_link_local
        or ip == ipaddress.IPv4Address(BROADCAST_FALLBACK)
    )


def interface_broadcasts(interfaces: Optional[InterfaceLister] = None) -> List[str]:
    """Broadcast destinations for every global-unicast IPv4 interface address.

    Enumeration errors propagate; callers decide whether they are fatal.
    """
    lister = interfaces or psutil.net_if_addrs
    destinations: List[str] = []
    for addrs in lister().values():
        for addr in addrs:
            if addr.family != socket.AF_INET or not addr.netmask:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
                mask = ipaddress.IPv4Address(addr.netmask)
            except ValueError:
                continue
            if not is_global_unicast(ip):
                continue
            bcast = broadcast_address(ip.packed, mask.packed)
            destinations.append(str(ipaddress.IPv4Address(bcast)))
    return destinations
