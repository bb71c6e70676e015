"""Local-network discovery beacon over IPv4 UDP broadcast."""
from .broadcast import Beacon, Broadcast
from .schemas import ReceivedMessage, SourceAddress

__all__ = ["Beacon", "Broadcast", "ReceivedMessage", "SourceAddress"]
