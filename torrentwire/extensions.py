"""The extension protocol handshake that this client sends."""

from __future__ import annotations

from torrentwire.message import EXT_METADATA_NAME, ExtensionID, Message, MessageKind

__all__ = ["EXTENSIONS", "extension_handshake_msg"]

EXTENSIONS: dict[str, int] = {EXT_METADATA_NAME: int(ExtensionID.METADATA)}


def extension_handshake_msg(metadata_size: int) -> Message:
    """The extended handshake; metadata_size is left out when zero."""
    payload: dict[str, object] = {"m": dict(EXTENSIONS)}
    if metadata_size:
        payload["metadata_size"] = metadata_size
    return Message(
        MessageKind.EXTENDED,
        extended_id=int(ExtensionID.HANDSHAKE),
        extended_msg=payload,
    )