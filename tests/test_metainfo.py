import hashlib
import io

import pytest

from torrentwire.decoder import BencodeError, decode
from torrentwire.encoder import encode
from torrentwire.metainfo import (
    File,
    FileParser,
    InfoDict,
    InfoHashParser,
    MagnetParser,
    MetaInfo,
    MetainfoError,
    ReaderParser,
    load_metainfo_bytes,
    load_metainfo_file,
    parse_magnet,
)

PIECES = b"a" * 20 + b"b" * 20 + b"c" * 20
INFO = b"d6:lengthi50e4:name3:abc12:piece lengthi20e6:pieces60:" + PIECES + b"e"
TORRENT = b"d8:announce3:url4:info" + INFO + b"e"


def test_unmarshal_valid():
    meta = MetaInfo.from_dict(
        decode(b"d8:announce3:url4:infod12:piece lengthi5e6:pieces3:omgee")
    )
    assert meta == MetaInfo(announce="url", info=InfoDict(piece_len=5, pieces=b"omg"))


@pytest.mark.parametrize("data", [b"d4:infoe", b"d4:infoabce"])
def test_unmarshal_invalid(data):
    with pytest.raises(BencodeError):
        MetaInfo.from_dict(decode(data))


@pytest.mark.parametrize("data", [b"d4:infoe", b"d4:infoabce"])
def test_load_invalid_bytes(data):
    with pytest.raises(MetainfoError):
        load_metainfo_bytes(data)


def test_missing_mandatory_key():
    with pytest.raises(MetainfoError):
        MetaInfo.from_dict({"info": {"piece length": 1, "pieces": b""}})


def test_wrong_type():
    with pytest.raises(MetainfoError):
        MetaInfo.from_dict({"announce": 5, "info": {"piece length": 1, "pieces": b""}})


def test_load_computes_info_hash():
    meta = load_metainfo_bytes(TORRENT)
    assert meta.info_bytes == INFO
    assert meta.info.info_hash == hashlib.sha1(INFO).digest()
    assert meta.info.name == "abc"
    assert meta.announce == "url"


def test_piece_accessors():
    info = load_metainfo_bytes(TORRENT).info
    assert info.num_pieces() == 3
    assert info.piece_hashes() == [b"a" * 20, b"b" * 20, b"c" * 20]
    assert info.piece_hash(1) == b"b" * 20
    assert info.piece_length(0) == 20
    assert info.piece_length(2) == 10
    assert info.piece_offset(2) == 40
    assert info.total_length() == 50


def test_piece_hash_out_of_range():
    info = load_metainfo_bytes(TORRENT).info
    with pytest.raises(IndexError):
        info.piece_hash(3)


def test_bad_pieces_length_rejected():
    data = b"d8:announce3:url4:infod12:piece lengthi5e6:pieces3:omgee"
    with pytest.raises(MetainfoError):
        load_metainfo_bytes(data)


def test_multi_file_lengths():
    info = InfoDict(files=[File(length=3, path=["a"]), File(length=4, path=["b", "c"])])
    assert info.total_length() == 7
    assert info.files_info() == info.files


def test_single_file_info():
    info = InfoDict(length=50)
    assert info.files_info() == [File(length=50)]


def test_info_to_dict_omits_empty():
    assert InfoDict(piece_len=5, pieces=b"x").to_dict() == {"piece length": 5, "pieces": b"x"}


def test_info_from_dict_with_files():
    info = InfoDict.from_dict(
        decode(b"d5:filesld6:lengthi3e4:pathl1:a1:beee12:piece lengthi1e6:pieces0:e")
    )
    assert info.files == [File(length=3, path=["a", "b"])]


def test_create_torrent_file_round_trip(tmp_path):
    meta = load_metainfo_bytes(TORRENT)
    target = tmp_path / "out.torrent"
    meta.create_torrent_file(target)
    assert target.read_bytes() == TORRENT
    assert load_metainfo_file(target) == meta


def test_encode_to_dict_matches_source():
    assert encode(load_metainfo_bytes(TORRENT).to_dict()) == TORRENT


def test_file_parser(tmp_path):
    target = tmp_path / "a.torrent"
    target.write_bytes(TORRENT)
    assert FileParser(target).parse().info_bytes == INFO


def test_reader_parser():
    assert ReaderParser(io.BytesIO(TORRENT)).parse().info.name == "abc"


def test_info_hash_parser():
    meta = InfoHashParser(b"\x01" * 20).parse()
    assert meta.info.info_hash == b"\x01" * 20


def test_info_hash_parser_bad_length():
    with pytest.raises(ValueError):
        InfoHashParser(b"\x01" * 5)


def test_magnet_hex():
    meta = parse_magnet("magnet:?xt=urn:btih:c27727f12f2469ca4643f759ac2736a18de545b5")
    assert meta.info.info_hash == bytes.fromhex("c27727f12f2469ca4643f759ac2736a18de545b5")


def test_magnet_base32():
    assert MagnetParser("magnet:?xt=urn:btih:" + "A" * 32).parse().info.info_hash == bytes(20)
    assert parse_magnet("magnet:?xt=urn:btih:" + "7" * 32).info.info_hash == b"\xff" * 20


@pytest.mark.parametrize(
    "uri",
    [
        "http://example.com/?xt=urn:btih:" + "0" * 40,
        "magnet:?xt=urn:sha1:" + "0" * 40,
        "magnet:?xt=urn:btih:abc",
        "magnet:?xt=urn:btih:" + "z" * 40,
    ],
)
def test_magnet_errors(uri):
    with pytest.raises(MetainfoError):
        parse_magnet(uri)