import pytest

from torrentwire.bitfield import BitField, bitfield_length


def test_bitfield_source_case():
    bf = BitField.new(16)
    assert len(bf) == 2
    bf = BitField.new(15)
    assert len(bf) == 2
    bf = BitField.new(17)
    assert len(bf) == 3
    bf.set_piece(10)
    assert bf[1] == 0x20
    assert bf.has_piece(10) is True
    bf.set_piece(17)
    assert bf[2] == 0x40
    bf.set_piece(16)
    assert bf[2] == 0xC0
    for i in range(17):
        assert bf.has_piece(i) is (i in (10, 16, 17))


@pytest.mark.parametrize("pieces, expected", [(16, 2), (15, 2), (17, 3), (0, 0)])
def test_bitfield_length(pieces, expected):
    assert bitfield_length(pieces) == expected


def test_pieces_set_and_bits_set():
    bf = BitField.new(17)
    for piece in (16, 10, 17):
        bf.set_piece(piece)
    assert bf.pieces_set() == [10, 16, 17]
    assert bf.bits_set() == 3


def test_set_piece_is_idempotent():
    bf = BitField.new(8)
    bf.set_piece(3)
    bf.set_piece(3)
    assert bf.bits_set() == 1
    assert bf.pieces_set() == [3]


def test_valid():
    bf = BitField.new(17)
    assert bf.valid(17)
    assert bf.valid(24)
    assert not bf.valid(16)


def test_from_bytes_and_equality():
    bf = BitField(b"\x43\x83\x42")
    assert bf == b"\x43\x83\x42"
    assert bf.has_piece(1)
    assert not bf.has_piece(0)


@pytest.mark.parametrize("index", [-1, 24])
def test_out_of_range_raises(index):
    bf = BitField.new(17)
    with pytest.raises(IndexError):
        bf.has_piece(index)
    with pytest.raises(IndexError):
        bf.set_piece(index)