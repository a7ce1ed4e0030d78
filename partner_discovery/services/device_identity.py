"""
Device identity for personalized recommendation.

A device identity is a non-secret analytics token, stored once per method in
the caller's durable local store and reused on every later request:

    - ``random``: a version-4 UUID, for mobile-like environments where the
      token stands in for an app install ID.
    - ``fingerprint``: an 8-hex-digit hash of environment signals (user agent,
      language, screen, timezone offset, canvas snapshot). Identical signals
      give identical tokens on different devices; that collision is accepted.

Example:
    >>> provider = DeviceIdentityProvider(MemoryDeviceStore(), StaticSignalSource())
    >>> identity = provider.get_or_create(environment_is_mobile_like=False)
    >>> identity.method
    'fingerprint'
"""

from __future__ import annotations

import base64
import json
import locale
import os
import platform
import re
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol
from uuid import uuid4

from partner_discovery.models.schemas import DeviceIdentity, DeviceIdMethod
from partner_discovery.utils.logger import get_logger

logger = get_logger(__name__)

STORE_KEY_PREFIX = "partner_discovery.device_id"
SIGNAL_DELIMITER = "|"

# The canvas probe: a fixed short text drawn with a fixed font
CANVAS_PROBE_TEXT = "partner-discovery,fp"
CANVAS_PROBE_FONT = "14px 'Arial'"

MOBILE_UA_PATTERN = re.compile(r"Mobi|Android|iPhone|iPad|iPod", re.IGNORECASE)


def store_key(method: DeviceIdMethod | str) -> str:
    return f"{STORE_KEY_PREFIX}.{DeviceIdMethod(method).value}"


# =============================================================================
# Environment Signals
# =============================================================================

@dataclass(frozen=True)
class EnvironmentSignals:
    """The environment inputs of a fingerprint."""
    user_agent: str
    language: str
    screen_width: int
    screen_height: int
    timezone_offset: int  # minutes, positive west of UTC
    canvas_snapshot: str

    @property
    def resolution(self) -> str:
        return f"{self.screen_width}x{self.screen_height}"

    def joined(self) -> str:
        return SIGNAL_DELIMITER.join([
            self.user_agent,
            self.language,
            self.resolution,
            str(self.timezone_offset),
            self.canvas_snapshot,
        ])


class EnvironmentSignalSource(Protocol):
    """Anything able to report the current environment's signals."""

    def collect(self) -> EnvironmentSignals:
        ...


def default_canvas_snapshot() -> str:
    """Deterministic encoding of the canvas probe text and font."""
    raw = f"{CANVAS_PROBE_FONT}{SIGNAL_DELIMITER}{CANVAS_PROBE_TEXT}".encode("utf-8")
    return "data:text/plain;base64," + base64.b64encode(raw).decode("ascii")


def _parse_resolution(value: Optional[str]) -> tuple[int, int]:
    if value:
        match = re.fullmatch(r"\s*(\d+)\s*[xX]\s*(\d+)\s*", value)
        if match:
            return int(match.group(1)), int(match.group(2))
    return 0, 0


def _parse_offset(value: Optional[str]) -> int:
    try:
        return int(str(value).strip()) if value is not None else 0
    except ValueError:
        return 0


class HeaderSignalSource:
    """
    Signals reported by a browser over HTTP.

    User agent and language come from the standard headers. Screen size,
    timezone offset and canvas snapshot are not sent by browsers on their own,
    so the console page reports them in ``X-Screen-Resolution``,
    ``X-Timezone-Offset`` and ``X-Canvas-Snapshot``.
    """

    def __init__(self, headers: Mapping[str, str]):
        self.headers = {k.lower(): v for k, v in headers.items()}

    def is_mobile_like(self) -> bool:
        """Client hint first, user agent sniffing second."""
        hint = self.headers.get("sec-ch-ua-mobile")
        if hint is not None:
            return hint.strip() == "?1"
        return bool(MOBILE_UA_PATTERN.search(self.headers.get("user-agent", "")))

    def collect(self) -> EnvironmentSignals:
        accept_language = self.headers.get("accept-language", "")
        language = accept_language.split(",")[0].split(";")[0].strip()
        width, height = _parse_resolution(self.headers.get("x-screen-resolution"))
        return EnvironmentSignals(
            user_agent=self.headers.get("user-agent", ""),
            language=language,
            screen_width=width,
            screen_height=height,
            timezone_offset=_parse_offset(self.headers.get("x-timezone-offset")),
            canvas_snapshot=self.headers.get("x-canvas-snapshot") or default_canvas_snapshot(),
        )


class LocalSignalSource:
    """Signals of the machine running the CLI."""

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent or f"partner-discovery ({platform.platform()})"

    def collect(self) -> EnvironmentSignals:
        language = (locale.getlocale()[0] or "en_US").replace("_", "-")
        size = shutil.get_terminal_size()
        return EnvironmentSignals(
            user_agent=self.user_agent,
            language=language,
            screen_width=size.columns,
            screen_height=size.lines,
            timezone_offset=-(time.localtime().tm_gmtoff // 60),
            canvas_snapshot=default_canvas_snapshot(),
        )


class StaticSignalSource:
    """Fixed signals, for tests and reproducible runs."""

    def __init__(self, signals: Optional[EnvironmentSignals] = None):
        self.signals = signals or EnvironmentSignals(
            user_agent="Mozilla/5.0 (X11; Linux x86_64)",
            language="ko-KR",
            screen_width=1920,
            screen_height=1080,
            timezone_offset=-540,
            canvas_snapshot=default_canvas_snapshot(),
        )

    def collect(self) -> EnvironmentSignals:
        return self.signals


# =============================================================================
# Token generation
# =============================================================================

def generate_random_token() -> str:
    """A version-4 UUID string: 8-4-4-4-12 lowercase hex."""
    return str(uuid4())


def fingerprint_hash(text: str) -> str:
    """
    31-multiplier string hash wrapped to a signed 32-bit integer.

    Iterates UTF-16 code units so non-BMP characters hash the way a browser
    would hash them. Returns abs(hash) as 8 lowercase hex digits.
    """
    value = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code_unit = units[i] | (units[i + 1] << 8)
        value = (value * 31 + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return format(abs(value), "x").zfill(8)


def generate_fingerprint_token(signals: EnvironmentSignals) -> str:
    return fingerprint_hash(signals.joined())


# =============================================================================
# Stores
# =============================================================================

class DeviceStore(Protocol):
    """Key/value store scoped to one browser profile."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryDeviceStore:
    """Volatile store; lives as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileDeviceStore:
    """
    Durable store backed by one JSON file per profile.

    Writes replace the whole file; concurrent writers are last-writer-wins.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as e:
            # Covers JSONDecodeError and UnicodeDecodeError
            logger.warning("Device store unreadable, starting empty", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        # Only non-empty string tokens are identities
        return {str(k): v for k, v in data.items() if isinstance(v, str) and v}

    def _save(self, values: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".device-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(values, fh, indent=2, sort_keys=True)
        os.replace(tmp_name, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    def delete(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._save(values)


# =============================================================================
# Provider
# =============================================================================

class DeviceIdentityProvider:
    """Derives, persists and regenerates per-browser device identities."""

    def __init__(self, store: DeviceStore, signal_source: EnvironmentSignalSource):
        self.store = store
        self.signal_source = signal_source

    @staticmethod
    def method_for(environment_is_mobile_like: bool) -> DeviceIdMethod:
        return DeviceIdMethod.RANDOM if environment_is_mobile_like else DeviceIdMethod.FINGERPRINT

    def get_or_create(self, environment_is_mobile_like: bool) -> DeviceIdentity:
        """Return the persisted identity for this environment, creating it once."""
        return self._get_or_create(self.method_for(environment_is_mobile_like))

    def peek(self, method: DeviceIdMethod | str) -> Optional[DeviceIdentity]:
        """The persisted identity for ``method``, without creating one."""
        method = DeviceIdMethod(method)
        token = self.store.get(store_key(method))
        return DeviceIdentity(token=token, method=method) if token else None

    def regenerate(self, method: DeviceIdMethod | str) -> DeviceIdentity:
        """
        Drop the persisted identity for ``method`` and derive a new one.

        A random token always changes. A fingerprint only changes when one of
        the environment signals changed.
        """
        method = DeviceIdMethod(method)
        key = store_key(method)
        previous = self.store.get(key)
        self.store.delete(key)

        if method is DeviceIdMethod.RANDOM:
            token = generate_random_token()
            while token == previous:
                token = generate_random_token()
            self.store.set(key, token)
            logger.info("Device identity regenerated", method=method.value)
            return DeviceIdentity(token=token, method=method)

        identity = self._get_or_create(method)
        if identity.token == previous:
            logger.info("Fingerprint unchanged after regeneration", method=method.value)
        return identity

    def _get_or_create(self, method: DeviceIdMethod) -> DeviceIdentity:
        key = store_key(method)
        token = self.store.get(key)
        if token:
            return DeviceIdentity(token=token, method=method)

        if method is DeviceIdMethod.RANDOM:
            token = generate_random_token()
        else:
            token = generate_fingerprint_token(self.signal_source.collect())

        self.store.set(key, token)
        logger.info("Device identity created", method=method.value)
        return DeviceIdentity(token=token, method=method)
