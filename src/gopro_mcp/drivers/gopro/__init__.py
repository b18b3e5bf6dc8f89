"""HERO2-HERO4 Wi-Fi control protocol: constants and codec."""

from gopro_mcp.drivers.gopro import definitions
from gopro_mcp.drivers.gopro.codec import (
    BacpacStatus,
    CameraInfo,
    CodecError,
    OptionError,
    StatusValue,
    decode_bacpac_status,
    decode_camera_status,
    encode_option,
    encode_options,
    find_option,
    parse_camera_info,
    parse_password,
)

__all__ = [
    "definitions",
    # Decoded values
    "BacpacStatus",
    "CameraInfo",
    "StatusValue",
    # Errors
    "CodecError",
    "OptionError",
    # Codec
    "decode_bacpac_status",
    "decode_camera_status",
    "encode_option",
    "encode_options",
    "find_option",
    "parse_camera_info",
    "parse_password",
]
