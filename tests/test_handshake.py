import io

import pytest

from torrentwire.handshake import HandShake, HandshakeError, read_handshake
from torrentwire.reserved import Reserved

PROTO = b"BitTorrent protocol"


def _with(size, index, value):
    raw = bytearray(size)
    raw[index] = value
    return bytes(raw)


class _Duplex:
    def __init__(self, incoming=b""):
        self._in = io.BytesIO(incoming)
        self.sent = io.BytesIO()

    def read(self, n=-1):
        return self._in.read(n)

    def write(self, data):
        return self.sent.write(data)


def test_write_handshake():
    out = io.BytesIO()
    HandShake(
        reserved=Reserved(_with(8, 2, 1)),
        info_hash=_with(20, 5, 23),
        peer_id=_with(20, 10, 10),
    ).write(out)
    data = out.getvalue()
    assert data[:20] == bytes([19]) + PROTO
    assert data[20:] == _with(8, 2, 1) + _with(20, 5, 23) + _with(20, 10, 10)


def test_read_handshake():
    payload = bytearray(48)
    payload[4] = 4
    payload[8] = 8
    payload[28] = 28
    hs = read_handshake(io.BytesIO(bytes([19]) + PROTO + bytes(payload)))
    assert hs == HandShake(
        reserved=Reserved(_with(8, 4, 4)),
        info_hash=_with(20, 0, 8),
        peer_id=_with(20, 0, 28),
    )


def test_to_bytes_round_trip():
    reserved = Reserved()
    reserved.set_extended()
    hs = HandShake(reserved=reserved, info_hash=b"i" * 20, peer_id=b"p" * 20)
    assert len(hs.to_bytes()) == 68
    assert read_handshake(io.BytesIO(hs.to_bytes())) == hs


def test_initiate():
    ours = HandShake(info_hash=b"h" * 20, peer_id=b"a" * 20)
    theirs = HandShake(info_hash=b"h" * 20, peer_id=b"b" * 20)
    stream = _Duplex(theirs.to_bytes())
    assert ours.do(stream) == theirs
    assert stream.sent.getvalue() == ours.to_bytes()


def test_initiate_info_hash_mismatch():
    ours = HandShake(info_hash=b"h" * 20, peer_id=b"a" * 20)
    theirs = HandShake(info_hash=b"x" * 20, peer_id=b"b" * 20)
    with pytest.raises(HandshakeError):
        ours.do(_Duplex(theirs.to_bytes()))


def test_receive():
    ours = HandShake(peer_id=b"a" * 20)
    theirs = HandShake(info_hash=b"h" * 20, peer_id=b"b" * 20)
    stream = _Duplex(theirs.to_bytes())
    result = ours.do(stream)
    assert result == theirs
    assert ours.info_hash == theirs.info_hash
    assert stream.sent.getvalue() == ours.to_bytes()


def test_bad_protocol_rejected():
    data = bytes([19]) + b"BitTorrent protocoX" + bytes(48)
    with pytest.raises(HandshakeError):
        read_handshake(io.BytesIO(data))


def test_truncated_handshake():
    with pytest.raises(EOFError):
        read_handshake(io.BytesIO(bytes([19]) + PROTO + bytes(10)))


def test_invalid_info_hash_length():
    with pytest.raises(ValueError):
        HandShake(info_hash=b"short")