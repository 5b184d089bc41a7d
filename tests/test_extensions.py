import io

from torrentwire.extensions import EXTENSIONS, extension_handshake_msg
from torrentwire.message import ExtHandshakeDict, MessageKind, decode_message


def round_trip(msg):
    return decode_message(io.BytesIO(msg.encode()))


def test_handshake_without_metadata_size():
    msg = extension_handshake_msg(0)
    assert msg.kind is MessageKind.EXTENDED
    assert msg.extended_id == 0
    assert msg.encode()[6:] == b"d1:md11:ut_metadatai1eee"


def test_handshake_round_trip_without_size():
    decoded = round_trip(extension_handshake_msg(0))
    assert isinstance(decoded.extended_msg, ExtHandshakeDict)
    assert decoded.extended_msg.extensions() == EXTENSIONS
    assert decoded.extended_msg.metadata_size() is None


def test_handshake_round_trip_with_size():
    decoded = round_trip(extension_handshake_msg(12345))
    assert decoded.extended_msg.metadata_size() == 12345
    assert decoded.extended_msg.extensions() == {"ut_metadata": 1}


def test_handshake_does_not_share_extension_map():
    first = extension_handshake_msg(0)
    first.extended_msg["m"]["other"] = 7
    second = extension_handshake_msg(0)
    assert second.extended_msg["m"] == {"ut_metadata": 1}
    assert second.encode()[6:] == b"d1:md11:ut_metadatai1eee"