"""Parse, build and packetize RTP packets and their header extensions."""

__version__ = "0.1.0"