"""Encode option changes and decode camera responses.

Pure functions, no I/O. The device layer feeds response bodies in and gets
labelled values out, and turns ``{"CameraMode": "Photo"}`` style mappings
into the CameraRequest sequence that applies them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import CameraRequest

#: Value types that appear in a decoded status mapping.
StatusValue = str | int | float


class CodecError(ValueError):
    """A response body could not be decoded."""


class OptionError(ValueError):
    """An option label or value the camera does not support.

    Attributes:
        label: Option label as given by the caller.
        value: Offending value (None when the label itself is unknown).
    """

    def __init__(self, label: str, value: Any = None, message: str = "") -> None:
        self.label = label
        self.value = value
        super().__init__(message or f"Unsupported option {label}={value!r}")


# =============================================================================
# Handshake responses
# =============================================================================


@dataclass(frozen=True, slots=True)
class BacpacStatus:
    """Power and readiness reported by the Wi-Fi module."""

    powered: bool
    ready: bool


@dataclass(frozen=True, slots=True)
class CameraInfo:
    """Identification from /camera/cv.

    Attributes:
        model_id: Hardware id such as "HD3.02".
        model_name: Marketing name, or the id for unlisted models.
        firmware: Firmware version such as "03.00".
    """

    model_id: str = d.UNKNOWN
    model_name: str = d.UNKNOWN
    firmware: str = d.UNKNOWN


def parse_password(body: str) -> str:
    """Strip the length header from a /bacpac/sd response."""
    return body[d.PASSWORD_HEADER_LENGTH :]


def decode_bacpac_status(body: bytes) -> BacpacStatus:
    """Decode /bacpac/se.

    Raises:
        CodecError: Body too short to hold the power and ready bytes.
    """
    if len(body) <= d.BACPAC_READY_BYTE:
        raise CodecError(f"Bacpac status too short: {len(body)} bytes")
    return BacpacStatus(
        powered=body[d.BACPAC_POWER_BYTE] == 1,
        ready=body[d.BACPAC_READY_BYTE] == 1,
    )


def parse_camera_info(body: str) -> CameraInfo:
    """Parse /camera/cv into model and firmware.

    The body is a 4-character header followed by ``\\x05``-separated
    fields; the first field is ``<model id>.<firmware>``, for example
    ``HD3.02.03.00``. Anything that does not look like that yields
    "Unknown" values rather than an error, since identification is
    informational only.

    Example:
        >>> parse_camera_info("\\x00\\x00\\x00\\x00HD3.03.02.01\\x05HERO3").model_name
        'HERO3 Black Edition'
    """
    fields = body[d.CAMERA_INFO_HEADER_LENGTH :].split(d.CAMERA_INFO_SEPARATOR)
    if len(fields) < 2:
        return CameraInfo()

    parts = fields[0].split(".")
    if len(parts) < 2:
        return CameraInfo()

    model_id = f"{parts[0]}.{parts[1]}"
    model_name = _model_name(model_id)
    firmware = ".".join(parts[2:]) or d.UNKNOWN
    return CameraInfo(model_id=model_id, model_name=model_name, firmware=firmware)


def _model_name(model_id: str) -> str:
    for known, name in d.MODEL_NAMES.items():
        if known.lower() == model_id.lower():
            return name
    return model_id


# =============================================================================
# Camera status
# =============================================================================


def decode_camera_status(
    status: bytes,
    video_mode: bytes | None = None,
    video_fps: bytes | None = None,
    burst_rate: bytes | None = None,
) -> dict[str, StatusValue]:
    """Decode /camera/se plus the three single-setting reads.

    The auxiliary reads (/camera/vv, /camera/fs, /camera/bu) answer two
    bytes with the value in the second; a missing or malformed answer
    decodes as "Unknown" (or 0 for the frame rate) instead of failing the
    whole status.

    Args:
        status: /camera/se body.
        video_mode: /camera/vv body.
        video_fps: /camera/fs body.
        burst_rate: /camera/bu body.

    Returns:
        Status label -> value. Keys are the same for every call.

    Raises:
        CodecError: ``status`` is too short to decode.
    """
    if len(status) < d.CAMERA_STATUS_MIN_LENGTH:
        raise CodecError(
            f"Camera status too short: {len(status)} bytes, "
            f"need {d.CAMERA_STATUS_MIN_LENGTH}"
        )

    flags1 = status[d.STATUS_FLAGS_1]
    flags2 = status[d.STATUS_FLAGS_2]
    photos_hi = status[d.STATUS_PHOTOS_AVAILABLE_HI]

    def flag(bits: int, mask: int) -> str:
        return d.ON if bits & mask else d.OFF

    def word(hi: int, lo: int) -> int:
        return (status[hi] << 8) | status[lo]

    return {
        # Video
        d.VIDEO_STANDARD: "PAL" if flags1 & d.FLAG_PAL else "NTSC",
        d.VIDEO_MODE: _lookup(d.VIDEO_MODES, _second_byte(video_mode)),
        d.VIDEO_FPS: _lookup(d.VIDEO_FRAME_RATES, _second_byte(video_fps), default=0),
        d.VIDEO_FOV: _lookup(d.FIELDS_OF_VIEW, status[d.STATUS_FOV]),
        d.VIDEO_COUNT: word(d.STATUS_VIDEO_COUNT_HI, d.STATUS_VIDEO_COUNT_LO),
        d.VIDEO_AVAILABLE_TIME: word(d.STATUS_VIDEO_MINUTES_HI, d.STATUS_VIDEO_MINUTES_LO)
        * 60,
        d.VIDEO_RECORDING: d.ON if status[d.STATUS_RECORDING] == 1 else d.OFF,
        d.VIDEO_RECORDING_TIME: status[d.STATUS_RECORDING_MINUTES] * 60
        + status[d.STATUS_RECORDING_SECONDS],
        # Photo
        d.PHOTO_MODE: _lookup(d.PHOTO_MODES, status[d.STATUS_PHOTO_MODE]),
        d.PHOTO_COUNT: word(d.STATUS_PHOTO_COUNT_HI, d.STATUS_PHOTO_COUNT_LO),
        d.PHOTOS_AVAILABLE: word(
            d.STATUS_PHOTOS_AVAILABLE_HI, d.STATUS_PHOTOS_AVAILABLE_LO
        ),
        # Burst
        d.BURST_RATE: _lookup(d.BURST_RATES, _second_byte(burst_rate)),
        d.BURST_RECORDING: flag(flags2, d.FLAG_BURST_RECORDING),
        # Timelapse
        d.TIMELAPSE_INTERVAL: _lookup(
            d.TIMELAPSE_INTERVALS, status[d.STATUS_TIMELAPSE], default=0
        ),
        # General
        d.CAMERA_MODE: _lookup(d.REPORTED_CAMERA_MODES, status[d.STATUS_CAMERA_MODE]),
        d.DEFAULT_CAMERA_MODE: _lookup(
            d.DEFAULT_CAMERA_MODES, status[d.STATUS_DEFAULT_MODE]
        ),
        d.PREVIEW: flag(flags1, d.FLAG_PREVIEW),
        d.ORIENTATION: "Down" if flags1 & d.FLAG_ORIENTATION_DOWN else "Up",
        d.OSD: flag(flags1, d.FLAG_OSD),
        d.LOCATE: flag(flags1, d.FLAG_LOCATE),
        d.PROTUNE: flag(flags2, d.FLAG_PROTUNE),
        d.BATTERY_LEVEL: status[d.STATUS_BATTERY],
        d.SD_CARD: "Yes" if photos_hi != d.NO_SD_CARD else "No",
        d.AUTO_POWER_OFF: _lookup(
            d.AUTO_POWER_OFF_DELAYS, status[d.STATUS_AUTO_POWER_OFF]
        ),
        d.BEEP_VOLUME: _lookup(d.BEEP_VOLUMES, status[d.STATUS_BEEP], default=0),
        d.LEDS: _lookup(d.LED_MODES, status[d.STATUS_LEDS]),
        d.SPOT_METER: d.ON if status[d.STATUS_SPOT_METER] == 1 else d.OFF,
    }


def _second_byte(body: bytes | None) -> int | None:
    if body is None or len(body) != 2:
        return None
    return body[1]


def _lookup(
    table: Mapping[Any, int], code: int | None, default: StatusValue = d.UNKNOWN
) -> StatusValue:
    """Reverse lookup of a camera code in a value table."""
    if code is None:
        return default
    for value, value_code in table.items():
        if value_code == code:
            return value
    return default


# =============================================================================
# Option encoding
# =============================================================================


def find_option(label: str) -> d.OptionSpec:
    """Look up a settable option by label, case-insensitively.

    Raises:
        OptionError: Unknown label.
    """
    spec = d.OPTIONS_BY_LABEL.get(label.lower())
    if spec is None:
        raise OptionError(label, message=f"Unknown option: {label}")
    return spec


def encode_option(label: str, value: Any) -> CameraRequest:
    """Build the request that sets one option.

    String values match case-insensitively ("photo" selects Photo). Switch
    options also take booleans and "True"/"False". Numeric options take
    numbers or numeric strings; beep volume accepts any percentage 0-100.

    Raises:
        OptionError: Unknown label or unsupported value.

    Example:
        >>> encode_option("CameraMode", "Photo")
        CameraRequest(path='/camera/CM', param=1, authenticated=True)
    """
    spec = find_option(label)
    code = _encode_value(spec, value)
    if code is None:
        raise OptionError(
            spec.label,
            value,
            f"Unsupported value for {spec.label}: {value!r} "
            f"(accepted: {', '.join(str(v) for v in spec.values)})",
        )
    return CameraRequest(spec.path, param=code)


def encode_options(options: Mapping[str, Any]) -> list[tuple[str, CameraRequest]]:
    """Encode a whole mapping, in the order the camera needs them applied.

    Every entry is validated before anything is returned, so a bad entry
    anywhere in the mapping means no request is sent at all.

    Returns:
        (canonical label, request) pairs in application order.

    Raises:
        OptionError: First unknown label or unsupported value found.
    """
    encoded: dict[str, CameraRequest] = {}
    for label, value in options.items():
        request = encode_option(label, value)
        encoded[find_option(label).label] = request

    return [(spec.label, encoded[spec.label]) for spec in d.OPTIONS if spec.label in encoded]


def _encode_value(spec: d.OptionSpec, value: Any) -> int | None:
    if spec.values is d.SWITCH:
        state = _parse_switch(value)
        return None if state is None else spec.values[d.ON if state else d.OFF]

    if spec.values is d.BEEP_VOLUMES:
        return _encode_beep(value)

    if spec.numeric:
        number = _parse_number(value)
        if number is None:
            return None
        for key, code in spec.values.items():
            if float(key) == number:
                return code
        return None

    text = str(value).strip().lower()
    for key, code in spec.values.items():
        if str(key).lower() == text:
            return code
    return None


def _parse_switch(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("on", "true"):
        return True
    if text in ("off", "false"):
        return False
    return None


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _encode_beep(value: Any) -> int | None:
    number = _parse_number(value)
    if number is None or not 0 <= number <= 100:
        return None
    if number == 0:
        return d.BEEP_VOLUMES[0]
    if number <= 70:
        return d.BEEP_VOLUMES[70]
    return d.BEEP_VOLUMES[100]
