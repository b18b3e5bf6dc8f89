"""Digital twin camera for development and testing without hardware.

DigitalTwinCamera answers the same endpoints a HERO3 does, with the same
byte layouts, so the whole client stack (codec, session, poller) runs
unchanged against it. DigitalTwinTransport puts a twin "on the network" at
an address: requests to any other address fail as unreachable.

Failure injection:
    camera.reachable = False   # link drops, every exchange raises
    camera.reject_paths.add("/camera/CM")   # device refuses a command
    camera.latency_s = 0.5     # slow link
    camera.booting = True      # powered, bacpac not ready yet

Example:
    from gopro_mcp.drivers.transport.twin import (
        DigitalTwinCamera, DigitalTwinTransport,
    )

    camera = DigitalTwinCamera()
    transport = DigitalTwinTransport("10.5.5.9", camera)
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from gopro_mcp.drivers.gopro import definitions as d
from gopro_mcp.drivers.transport import CameraRequest, CameraResponse, TransportError
from gopro_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "DigitalTwinCamera",
    "DigitalTwinConfig",
    "DigitalTwinTransport",
]

_HTTP_OK = 200
_HTTP_BAD_REQUEST = 400
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_GONE = 410

_SETTERS = {spec.path: spec for spec in d.OPTIONS}


@dataclass
class DigitalTwinConfig:
    """Initial state of a simulated camera.

    Attributes:
        address: Address the twin answers on.
        wifi_name: Identity reported by /bacpac/cv.
        password: Access password reported by /bacpac/sd.
        firmware_id: Model and firmware reported by /camera/cv.
        powered: Camera body powered on at start.
        battery_level: Battery percentage.
        photos_available: Remaining photo capacity.
        video_minutes_available: Remaining video capacity in minutes.
        sd_card: An SD card is inserted.
        latency_s: Delay added to every exchange.
    """

    address: str = d.DEFAULT_CAMERA_ADDRESS
    wifi_name: str = "GoPro-Twin"
    password: str = "goprohero"
    firmware_id: str = "HD3.03.03.00"
    powered: bool = True
    battery_level: int = 80
    photos_available: int = 1250
    video_minutes_available: int = 95
    sd_card: bool = True
    latency_s: float = 0.0

    def __repr__(self) -> str:
        return (
            f"DigitalTwinConfig(address={self.address!r}, "
            f"firmware={self.firmware_id!r}, powered={self.powered})"
        )


class DigitalTwinCamera:
    """Simulated camera state plus request handling.

    Settings are kept as the raw codes the camera would store, keyed by
    option label, so status bytes are produced exactly the way a camera
    reports what it was told.
    """

    def __init__(self, config: DigitalTwinConfig | None = None) -> None:
        self.config = config or DigitalTwinConfig()
        self._lock = threading.Lock()

        self.address = self.config.address
        self.reachable = True
        self.booting = False
        self.latency_s = self.config.latency_s
        self.reject_paths: set[str] = set()
        self.requests: list[CameraRequest] = []

        self.powered = self.config.powered
        self.recording = False
        self.recording_seconds = 0
        self.photo_count = 0
        self.video_count = 0
        self.battery_level = self.config.battery_level
        self.settings: dict[str, int] = {
            d.CAMERA_MODE: d.CAMERA_MODES["Video"],
            d.DEFAULT_CAMERA_MODE: d.DEFAULT_CAMERA_MODES["Video"],
            d.VIDEO_STANDARD: d.VIDEO_STANDARDS["NTSC"],
            d.VIDEO_MODE: d.VIDEO_MODES["1080"],
            d.VIDEO_FPS: d.VIDEO_FRAME_RATES[30],
            d.VIDEO_FOV: d.FIELDS_OF_VIEW["Wide"],
            d.PHOTO_MODE: d.PHOTO_MODES["11mpWide"],
            d.BURST_RATE: d.BURST_RATES["10/1s"],
            d.TIMELAPSE_INTERVAL: d.TIMELAPSE_INTERVALS[1],
            d.ORIENTATION: d.ORIENTATIONS["Up"],
            d.PROTUNE: d.PARAM_OFF,
            d.ONE_BUTTON: d.PARAM_OFF,
            d.OSD: d.PARAM_ON,
            d.PREVIEW: d.PARAM_ON,
            d.LOCATE: d.PARAM_OFF,
            d.BEEP_VOLUME: d.BEEP_VOLUMES[70],
            d.SPOT_METER: d.PARAM_OFF,
            d.LEDS: d.LED_MODES["4"],
            d.AUTO_POWER_OFF: d.AUTO_POWER_OFF_DELAYS["Never"],
        }

    # -------------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------------

    def handle(self, request: CameraRequest, password: str | None) -> CameraResponse:
        """Answer one request the way the camera would.

        Raises:
            TransportError: The twin is marked unreachable.
        """
        if self.latency_s > 0:
            time.sleep(self.latency_s)

        with self._lock:
            if not self.reachable:
                raise TransportError(f"No route to {self.address}")
            self.requests.append(request)

            if request.path in self.reject_paths:
                return CameraResponse(_HTTP_BAD_REQUEST)

            if request.path == d.WIFI_NAME_PATH:
                return CameraResponse(_HTTP_OK, self.config.wifi_name.encode())
            if request.path == d.PASSWORD_PATH:
                header = bytes([0, len(self.config.password)])
                return CameraResponse(_HTTP_OK, header + self.config.password.encode())

            if request.authenticated and password != self.config.password:
                return CameraResponse(_HTTP_FORBIDDEN)

            if request.path == d.BACPAC_STATUS_PATH:
                return CameraResponse(_HTTP_OK, self._bacpac_status())
            if request.path == d.POWER_PATH:
                return self._set_power(request.param)

            if not self.powered:
                return CameraResponse(_HTTP_GONE)

            return self._handle_camera(request)

    def _handle_camera(self, request: CameraRequest) -> CameraResponse:
        path = request.path
        if path == d.SHUTTER_PATH:
            return self._set_shutter(request.param)
        if path == d.CAMERA_INFO_PATH:
            fields = (self.config.firmware_id, self.config.wifi_name)
            body = "\x00" * d.CAMERA_INFO_HEADER_LENGTH + d.CAMERA_INFO_SEPARATOR.join(
                fields
            )
            return CameraResponse(_HTTP_OK, body.encode())
        if path == d.CAMERA_STATUS_PATH:
            return CameraResponse(_HTTP_OK, self._camera_status())
        if path == d.VIDEO_MODE_READ_PATH:
            return CameraResponse(_HTTP_OK, bytes([0, self.settings[d.VIDEO_MODE]]))
        if path == d.VIDEO_FPS_READ_PATH:
            return CameraResponse(_HTTP_OK, bytes([0, self.settings[d.VIDEO_FPS]]))
        if path == d.BURST_RATE_READ_PATH:
            return CameraResponse(_HTTP_OK, bytes([0, self.settings[d.BURST_RATE]]))

        spec = _SETTERS.get(path)
        if spec is None:
            return CameraResponse(_HTTP_NOT_FOUND)
        if request.param not in spec.values.values():
            return CameraResponse(_HTTP_BAD_REQUEST)
        self.settings[spec.label] = request.param
        logger.debug("Twin setting changed", option=spec.label, code=request.param)
        return CameraResponse(_HTTP_OK)

    def _set_power(self, param: int | None) -> CameraResponse:
        if param not in (d.PARAM_ON, d.PARAM_OFF):
            return CameraResponse(_HTTP_BAD_REQUEST)
        self.powered = param == d.PARAM_ON
        if not self.powered:
            self.recording = False
        logger.debug("Twin power changed", powered=self.powered)
        return CameraResponse(_HTTP_OK)

    def _set_shutter(self, param: int | None) -> CameraResponse:
        if param == d.PARAM_ON:
            if not self.recording:
                self.recording = True
                self.recording_seconds = 0
                if self.settings[d.CAMERA_MODE] == d.CAMERA_MODES["Video"]:
                    self.video_count += 1
                else:
                    self.photo_count += 1
            return CameraResponse(_HTTP_OK)
        if param == d.PARAM_OFF:
            self.recording = False
            return CameraResponse(_HTTP_OK)
        return CameraResponse(_HTTP_BAD_REQUEST)

    # -------------------------------------------------------------------------
    # Status bytes
    # -------------------------------------------------------------------------

    def _bacpac_status(self) -> bytes:
        status = bytearray(d.BACPAC_READY_BYTE + 2)
        status[d.BACPAC_POWER_BYTE] = 1 if self.powered else 0
        status[d.BACPAC_READY_BYTE] = 1 if self.powered and not self.booting else 0
        return bytes(status)

    def _camera_status(self) -> bytes:
        s = self.settings
        status = bytearray(d.CAMERA_STATUS_MIN_LENGTH)

        status[d.STATUS_CAMERA_MODE] = s[d.CAMERA_MODE]
        status[d.STATUS_DEFAULT_MODE] = s[d.DEFAULT_CAMERA_MODE]
        status[d.STATUS_SPOT_METER] = s[d.SPOT_METER]
        status[d.STATUS_TIMELAPSE] = s[d.TIMELAPSE_INTERVAL]
        status[d.STATUS_AUTO_POWER_OFF] = s[d.AUTO_POWER_OFF]
        status[d.STATUS_FOV] = s[d.VIDEO_FOV]
        status[d.STATUS_PHOTO_MODE] = s[d.PHOTO_MODE]
        status[d.STATUS_RECORDING_MINUTES] = self.recording_seconds // 60
        status[d.STATUS_RECORDING_SECONDS] = self.recording_seconds % 60
        status[d.STATUS_BEEP] = s[d.BEEP_VOLUME]
        status[d.STATUS_LEDS] = s[d.LEDS]

        flags1 = 0
        if s[d.PREVIEW]:
            flags1 |= d.FLAG_PREVIEW
        if s[d.ORIENTATION]:
            flags1 |= d.FLAG_ORIENTATION_DOWN
        if s[d.ONE_BUTTON]:
            flags1 |= d.FLAG_ONE_BUTTON
        if s[d.OSD]:
            flags1 |= d.FLAG_OSD
        if s[d.VIDEO_STANDARD] == d.VIDEO_STANDARDS["PAL"]:
            flags1 |= d.FLAG_PAL
        if s[d.LOCATE]:
            flags1 |= d.FLAG_LOCATE
        status[d.STATUS_FLAGS_1] = flags1

        status[d.STATUS_BATTERY] = self.battery_level

        if self.config.sd_card:
            photos = self.config.photos_available
            status[d.STATUS_PHOTOS_AVAILABLE_HI] = (photos >> 8) & 0xFF
            status[d.STATUS_PHOTOS_AVAILABLE_LO] = photos & 0xFF
        else:
            status[d.STATUS_PHOTOS_AVAILABLE_HI] = d.NO_SD_CARD
            status[d.STATUS_PHOTOS_AVAILABLE_LO] = d.NO_SD_CARD
        status[d.STATUS_PHOTO_COUNT_HI] = (self.photo_count >> 8) & 0xFF
        status[d.STATUS_PHOTO_COUNT_LO] = self.photo_count & 0xFF
        minutes = self.config.video_minutes_available
        status[d.STATUS_VIDEO_MINUTES_HI] = (minutes >> 8) & 0xFF
        status[d.STATUS_VIDEO_MINUTES_LO] = minutes & 0xFF
        status[d.STATUS_VIDEO_COUNT_HI] = (self.video_count >> 8) & 0xFF
        status[d.STATUS_VIDEO_COUNT_LO] = self.video_count & 0xFF
        status[d.STATUS_RECORDING] = 1 if self.recording else 0

        flags2 = 0
        if s[d.PROTUNE]:
            flags2 |= d.FLAG_PROTUNE
        status[d.STATUS_FLAGS_2] = flags2

        return bytes(status)

    def paths_requested(self) -> list[str]:
        """Paths of every request handled so far, oldest first."""
        with self._lock:
            return [r.path for r in self.requests]


class DigitalTwinTransport:
    """CameraTransport that reaches a DigitalTwinCamera in-process.

    Requests succeed only when ``address`` matches the twin's address,
    which lets tests model connecting to the wrong host.
    """

    def __init__(
        self,
        address: str = d.DEFAULT_CAMERA_ADDRESS,
        camera: DigitalTwinCamera | None = None,
    ) -> None:
        self._address = address
        self.camera = camera or DigitalTwinCamera()
        self._closed = False

    @property
    def address(self) -> str:
        return self._address

    def send(
        self, request: CameraRequest, password: str | None = None
    ) -> CameraResponse:
        if self._closed:
            raise TransportError(f"Transport to {self._address} is closed")
        if self._address != self.camera.address:
            raise TransportError(f"No camera at {self._address}")
        return self.camera.handle(request, password)

    def close(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        return f"DigitalTwinTransport(address={self._address!r})"
