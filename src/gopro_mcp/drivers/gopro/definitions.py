"""Wire constants for the HERO2-HERO4 Wi-Fi control API.

The camera (through its Wi-Fi "bacpac") answers plain HTTP GET requests:

    http://<address>/<endpoint>?t=<password>&p=%<hex byte>

Endpoints under ``/bacpac`` talk to the Wi-Fi module itself (identity,
password, power, shutter); endpoints under ``/camera`` talk to the camera
body. Upper-case ``/camera/XX`` paths set a value, lower-case ones read it.

Every settable option is described by an OptionSpec: the status label it
appears under, the endpoint that sets it, and the table between value
labels and the single byte the camera uses for them. The same tables decode
the status bytes, because the camera reports settings with the codes it
accepts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

DEFAULT_CAMERA_ADDRESS = "10.5.5.9"

#: Value reported for a setting the camera returned an unrecognised code for,
#: and for model/firmware before the camera has been identified.
UNKNOWN = "Unknown"

# =============================================================================
# Endpoints
# =============================================================================

# Wi-Fi module, readable without a password
WIFI_NAME_PATH = "/bacpac/cv"
PASSWORD_PATH = "/bacpac/sd"

# Wi-Fi module
BACPAC_STATUS_PATH = "/bacpac/se"
POWER_PATH = "/bacpac/PW"
SHUTTER_PATH = "/bacpac/SH"

# Camera body reads
CAMERA_INFO_PATH = "/camera/cv"
CAMERA_STATUS_PATH = "/camera/se"
VIDEO_MODE_READ_PATH = "/camera/vv"
VIDEO_FPS_READ_PATH = "/camera/fs"
BURST_RATE_READ_PATH = "/camera/bu"

# Camera body commands
LOCATE_PATH = "/camera/LL"

PARAM_ON = 0x01
PARAM_OFF = 0x00

# =============================================================================
# Bacpac status bytes (/bacpac/se)
# =============================================================================

BACPAC_POWER_BYTE = 9
BACPAC_READY_BYTE = 11

# =============================================================================
# Camera status bytes (/camera/se)
# =============================================================================

STATUS_CAMERA_MODE = 1
STATUS_DEFAULT_MODE = 3
STATUS_SPOT_METER = 4
STATUS_TIMELAPSE = 5
STATUS_AUTO_POWER_OFF = 6
STATUS_FOV = 7
STATUS_PHOTO_MODE = 8
STATUS_RECORDING_MINUTES = 13
STATUS_RECORDING_SECONDS = 14
STATUS_BEEP = 16
STATUS_LEDS = 17
STATUS_FLAGS_1 = 18
STATUS_BATTERY = 19
STATUS_PHOTOS_AVAILABLE_HI = 21
STATUS_PHOTOS_AVAILABLE_LO = 22
STATUS_PHOTO_COUNT_HI = 23
STATUS_PHOTO_COUNT_LO = 24
STATUS_VIDEO_MINUTES_HI = 25
STATUS_VIDEO_MINUTES_LO = 26
STATUS_VIDEO_COUNT_HI = 27
STATUS_VIDEO_COUNT_LO = 28
STATUS_RECORDING = 29
STATUS_FLAGS_2 = 30

#: Shortest /camera/se body that covers every offset above.
CAMERA_STATUS_MIN_LENGTH = STATUS_FLAGS_2 + 1

# Bits of STATUS_FLAGS_1
FLAG_PREVIEW = 0x01
FLAG_ORIENTATION_DOWN = 0x04
FLAG_ONE_BUTTON = 0x08
FLAG_OSD = 0x10
FLAG_PAL = 0x20
FLAG_LOCATE = 0x40

# Bits of STATUS_FLAGS_2
FLAG_BURST_RECORDING = 0x01
FLAG_PROTUNE = 0x02

#: High byte of "photos available" when no SD card is inserted.
NO_SD_CARD = 0xFF

# =============================================================================
# Status labels
# =============================================================================

CAMERA_MODE = "CameraMode"
DEFAULT_CAMERA_MODE = "DefaultCameraMode"
VIDEO_STANDARD = "VideoStandard"
VIDEO_MODE = "VideoMode"
VIDEO_FPS = "VideoFPS"
VIDEO_FOV = "VideoFOV"
VIDEO_COUNT = "VideoCount"
VIDEO_AVAILABLE_TIME = "VideoAvailableTime"
VIDEO_RECORDING = "VideoRecording"
VIDEO_RECORDING_TIME = "VideoRecordingTime"
PHOTO_MODE = "PhotoMode"
PHOTO_COUNT = "PhotoCount"
PHOTOS_AVAILABLE = "PhotosAvailable"
BURST_RATE = "BurstRate"
BURST_RECORDING = "BurstRecording"
TIMELAPSE_INTERVAL = "TimelapseInterval"
PREVIEW = "Preview"
ORIENTATION = "Orientation"
ONE_BUTTON = "OneButton"
OSD = "OSD"
LOCATE = "Locate"
PROTUNE = "Protune"
BATTERY_LEVEL = "BatteryLevel"
SD_CARD = "SDCard"
AUTO_POWER_OFF = "AutoPowerOff"
BEEP_VOLUME = "BeepVolume"
LEDS = "LEDs"
SPOT_METER = "SpotMeter"

ON = "On"
OFF = "Off"

# =============================================================================
# Value tables (value label -> camera code)
# =============================================================================


def _table(entries: dict[Any, int]) -> Mapping[Any, int]:
    return MappingProxyType(entries)


CAMERA_MODES = _table(
    {
        "Video": 0x00,
        "Photo": 0x01,
        "Burst": 0x02,
        "Timelapse": 0x03,
        "Playback": 0x05,
        "Settings": 0x07,
    }
)

#: HERO2 reports a self-timer mode it cannot be switched into remotely.
REPORTED_CAMERA_MODES = _table({**CAMERA_MODES, "Timer": 0x04})

DEFAULT_CAMERA_MODES = _table(
    {"Video": 0x00, "Photo": 0x01, "Burst": 0x02, "Timelapse": 0x03}
)

ORIENTATIONS = _table({"Up": 0x00, "Down": 0x01})

VIDEO_STANDARDS = _table({"NTSC": 0x00, "PAL": 0x01})

SWITCH = _table({ON: PARAM_ON, OFF: PARAM_OFF})

VIDEO_MODES = _table(
    {
        "WVGA": 0x00,
        "720": 0x01,
        "960": 0x02,
        "1080": 0x03,
        "1440": 0x04,
        "2.7K": 0x05,
        "4K": 0x06,
        "2.7KCinema": 0x07,
        "4KCinema": 0x08,
        "1080SuperView": 0x09,
        "720SuperView": 0x0A,
    }
)

VIDEO_FRAME_RATES = _table(
    {
        12: 0x00,
        15: 0x01,
        12.5: 0x0B,
        24: 0x02,
        25: 0x03,
        30: 0x04,
        48: 0x05,
        50: 0x06,
        60: 0x07,
        100: 0x08,
        120: 0x09,
        240: 0x0A,
    }
)

FIELDS_OF_VIEW = _table({"Wide": 0x00, "Medium": 0x01, "Narrow": 0x02})

PHOTO_MODES = _table(
    {
        "11mpWide": 0x00,
        "8mpMedium": 0x01,
        "5mpWide": 0x02,
        "5mpMedium": 0x03,
        "7mpWide": 0x04,
        "12mpWide": 0x05,
        "7mpMedium": 0x06,
    }
)

BURST_RATES = _table(
    {
        "3/1s": 0x00,
        "5/1s": 0x01,
        "10/1s": 0x02,
        "10/2s": 0x03,
        "30/1s": 0x04,
        "30/2s": 0x05,
        "30/3s": 0x06,
    }
)

TIMELAPSE_INTERVALS = _table(
    {
        0.5: 0x00,
        1: 0x01,
        2: 0x02,
        5: 0x05,
        10: 0x0A,
        20: 0x14,
        30: 0x1E,
        60: 0x3C,
    }
)

#: Beep volume in percent. The camera has three levels; set_options maps
#: any percentage onto them (0 silent, up to 70 low, above 70 full).
BEEP_VOLUMES = _table({0: 0x00, 70: 0x01, 100: 0x02})

LED_MODES = _table({"Off": 0x00, "2": 0x01, "4": 0x02})

AUTO_POWER_OFF_DELAYS = _table({"Never": 0x00, "60": 0x01, "120": 0x02, "300": 0x03})


# =============================================================================
# Settable options
# =============================================================================


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """A setting the client can change.

    Attributes:
        label: Status/option label ("VideoMode").
        path: Endpoint that sets it ("/camera/VV").
        values: Value label -> camera code. Keys are strings for named
            values and numbers for numeric ones (frame rate, interval).
    """

    label: str
    path: str
    values: Mapping[Any, int]

    @property
    def numeric(self) -> bool:
        return all(isinstance(k, int | float) for k in self.values)


#: Settable options in the order set_options applies them. CameraMode and
#: Protune come first because they change which video settings are valid.
OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec(CAMERA_MODE, "/camera/CM", CAMERA_MODES),
    OptionSpec(PROTUNE, "/camera/PT", SWITCH),
    OptionSpec(VIDEO_STANDARD, "/camera/VM", VIDEO_STANDARDS),
    OptionSpec(VIDEO_MODE, "/camera/VV", VIDEO_MODES),
    OptionSpec(VIDEO_FPS, "/camera/FS", VIDEO_FRAME_RATES),
    OptionSpec(VIDEO_FOV, "/camera/FV", FIELDS_OF_VIEW),
    OptionSpec(PHOTO_MODE, "/camera/PR", PHOTO_MODES),
    OptionSpec(BURST_RATE, "/camera/BU", BURST_RATES),
    OptionSpec(TIMELAPSE_INTERVAL, "/camera/TI", TIMELAPSE_INTERVALS),
    OptionSpec(ORIENTATION, "/camera/UP", ORIENTATIONS),
    OptionSpec(ONE_BUTTON, "/camera/OB", SWITCH),
    OptionSpec(OSD, "/camera/OS", SWITCH),
    OptionSpec(PREVIEW, "/camera/PV", SWITCH),
    OptionSpec(LOCATE, LOCATE_PATH, SWITCH),
    OptionSpec(DEFAULT_CAMERA_MODE, "/camera/DM", DEFAULT_CAMERA_MODES),
    OptionSpec(BEEP_VOLUME, "/camera/BS", BEEP_VOLUMES),
    OptionSpec(SPOT_METER, "/camera/EX", SWITCH),
    OptionSpec(LEDS, "/camera/LB", LED_MODES),
    OptionSpec(AUTO_POWER_OFF, "/camera/AO", AUTO_POWER_OFF_DELAYS),
)

OPTIONS_BY_LABEL: Mapping[str, OptionSpec] = MappingProxyType(
    {spec.label.lower(): spec for spec in OPTIONS}
)

# =============================================================================
# Models
# =============================================================================

MODEL_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "HD2.08": "HD HERO2",
        "HD3.01": "HERO3 White Edition",
        "HD3.02": "HERO3 Silver Edition",
        "HD3.03": "HERO3 Black Edition",
        "HD3.10": "HERO3+ Silver Edition",
        "HD3.11": "HERO3+ Black Edition",
        "HD4.01": "HERO4 Silver Edition",
        "HD4.02": "HERO4 Black Edition",
    }
)

#: Characters preceding the fields of a /camera/cv response.
CAMERA_INFO_HEADER_LENGTH = 4
CAMERA_INFO_SEPARATOR = "\x05"

#: Characters preceding the password in a /bacpac/sd response.
PASSWORD_HEADER_LENGTH = 2
