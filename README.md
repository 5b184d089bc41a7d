# torrentwire

Building blocks for a BitTorrent client: a bencode codec, `.torrent`
metainfo handling, magnet link parsing, the peer wire protocol (handshakes,
messages, bitfields, extension messages) and the per-connection bookkeeping
a client needs (choke/interest state, transfer statistics, the choking
algorithm, ut_metadata exchange).

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Bencode

```python
from torrentwire.encoder import encode
from torrentwire.decoder import decode, decode_prefix, get_value

data = encode({"a": 5, "b": "hello"})      # b"d1:ai5e1:b5:helloe"
decode(data)                                # {"a": 5, "b": b"hello"}

value, end = decode_prefix(b"i42etrailing")  # (42, 4)

raw = get_value(b"d4:infod1:ai1eee", "info")  # b"d1:ai1ee", or None if absent
```

`decode` turns integers into `int`, strings into `bytes`, lists into `list`
and dictionaries into `dict` with `str` keys. It raises subclasses of
`BencodeError`: `IncompatibleTypesError`, `LargeBufferError` (bytes left
after the value, with `remaining_len`), `UnknownValueError`, and
`get_value` raises `NotADictError` when the data is not a dictionary.

`encode` accepts `int`, `bool`, `str`, bytes-like objects, lists, tuples,
mappings and dataclass instances. Dictionary keys are sorted and entries
whose value is `None` are left out. On dataclass fields, the metadata key
`"bencode"` sets the dictionary key (`"-"` skips the field) and
`"omit_empty": True` leaves the field out when it is empty.

## Metainfo

```python
from torrentwire.metainfo import load_metainfo_file, parse_magnet

meta = load_metainfo_file("example.torrent")
print(meta.info.info_hash.hex(), meta.info.total_length(), meta.info.num_pieces())
meta.create_torrent_file("copy.torrent")

magnet = parse_magnet("magnet:?xt=urn:btih:c27727f12f2469ca4643f759ac2736a18de545b5")
magnet.info.info_hash   # the 20-byte hash; hex and base32 forms are accepted
```

`MetaInfo` and `InfoDict` are dataclasses with `from_dict`, `to_dict` and
`validate`; `InfoDict` also offers `piece_hashes`, `piece_hash`,
`files_info`, `piece_length` and `piece_offset`. Loading keeps the raw
bencoded info dictionary in `MetaInfo.info_bytes` and its SHA-1 in
`InfoDict.info_hash`. Problems are raised as `MetainfoError`.

`FileParser`, `MagnetParser`, `ReaderParser` (reads a binary stream to its
end) and `InfoHashParser` share a `parse()` method that returns a `MetaInfo`.

## Peer wire

```python
import io
from torrentwire.message import Message, MessageKind, decode_message
from torrentwire.handshake import HandShake, read_handshake
from torrentwire.bitfield import BitField

wire = Message(MessageKind.UNCHOKE).encode()   # b"\x00\x00\x00\x01\x01"
msg = decode_message(io.BytesIO(wire))

bf = BitField.new(17)
bf.set_piece(10)
bf.has_piece(10)   # True
```

`decode_message` raises `EOFError` when the stream ends early and
`MessageError` for malformed or oversized (over 256 KiB) messages. Extended
messages carry an `ExtHandshakeDict` or a `MetadataExtMsg`;
`torrentwire.extensions.extension_handshake_msg(metadata_size)` builds the
extended handshake this package advertises (`ut_metadata`).

`HandShake.do(stream)` performs either side of the handshake over any
object with `read` and `write` methods: with an info hash set it initiates,
with a zero info hash it answers and adopts the remote info hash. It
returns the remote handshake and raises `HandshakeError` on a mismatch.
`Reserved` holds the reserved bytes and the DHT and extension-protocol flags.

## Connection bookkeeping

- `torrentwire.connstate`: `ConnState` (choking and interest on both sides)
  and `ConnStats` (bytes, blocks, time spent downloading and uploading,
  snubbing after a minute without pieces; the clock is injectable).
- `torrentwire.conninfo`: `ConnInfo` queues commands for a connection on
  `send_queue` and keeps its state and statistics in step. Its `torrent`
  is any object providing `upload_enabled`, `download_enabled`,
  `owned_pieces`, `choker`, `have_info()`, `have_all()`, `num_pieces()` and
  `dropped_conn(conn)`.
- `torrentwire.choker`: `Choker` unchokes the fastest interested peers,
  picks an optimistic unchoke every fifth round (newest peers weighted
  three times) and fills the remaining slots at random.
- `torrentwire.utmetadata`: `UtMetadata` and `UtMetadatas` track the info
  dictionary in 16 KiB pieces for the ut_metadata extension.
- `torrentwire.freqmap`: `FreqMap` counts integer keys.
- `torrentwire.netutil` and `torrentwire.peer`: `parse_addr`, `AddrPort`,
  `Peer`, `PeerSource`, `addr_to_peer` and `new_peer_id`.

## What this package does not do

It is a library of parts, not a running client. It opens no sockets, does
not listen for or dial peers, does not talk to trackers or the DHT, does
not store or verify downloaded file data, and has no command-line program.