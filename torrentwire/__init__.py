"""BitTorrent building blocks: bencode, metainfo, peer wire protocol and connection bookkeeping."""

__version__ = "0.1.0"