"""Game packets, timed queues, handshake messages, map file paths and lobby/game servers."""

__version__ = "0.1.0"