# src/geofeature/config.py

"""
Process-wide settings for the marshalling layer.
"""

import codecs
import logging
from contextlib import contextmanager
from typing import Any, Iterator

from geofeature.datetime_codec import is_valid_tz_flag

log = logging.getLogger(__name__)

__all__ = [
    "MarshalConfig",
    "get_config",
    "set_config",
    "configured"
]

class MarshalConfig:
    """Configuration object for the marshalling layer.

    Args:
        encoding: Codec used for every string crossing into or out of the engine. Default='utf-8'.
        errors: Codec error handler used when decoding engine strings. Default='replace'.
        default_tz_flag: Timezone flag stored for naive datetimes when no flag is given.
            0=unknown, 1=local/unqualified, 100=UTC. Default=1.
        warn_on_overflow: Log a warning when the engine clamps a value into a narrower
            integer field. Default=True.
    """
    def __init__(
        self,
        encoding: str = "utf-8",
        errors: str = "replace",
        default_tz_flag: int = 1,
        warn_on_overflow: bool = True
    ):
        try:
            codecs.lookup(encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding '{encoding}'")
        try:
            codecs.lookup_error(errors)
        except LookupError:
            raise ValueError(f"Unknown codec error handler '{errors}'")
        if not is_valid_tz_flag(default_tz_flag):
            raise ValueError(f"Timezone flag must be 0, 1 or between 5 and 195, got {default_tz_flag}")

        self.encoding = encoding
        self.errors = errors
        self.default_tz_flag = default_tz_flag
        self.warn_on_overflow = warn_on_overflow

    def replace(self, **overrides: Any) -> "MarshalConfig":
        values = {
            "encoding": self.encoding,
            "errors": self.errors,
            "default_tz_flag": self.default_tz_flag,
            "warn_on_overflow": self.warn_on_overflow
        }
        values.update(overrides)
        return MarshalConfig(**values)

    def __repr__(self):
        return (
            f"<MarshalConfig encoding={self.encoding} errors={self.errors} "
            f"default_tz_flag={self.default_tz_flag} warn_on_overflow={self.warn_on_overflow}>"
        )

_active = MarshalConfig()

def get_config() -> MarshalConfig:
    return _active

def set_config(config: MarshalConfig) -> None:
    global _active
    if not isinstance(config, MarshalConfig):
        raise TypeError(f"Expected MarshalConfig, got {type(config)}")
    log.debug(f"Marshalling configuration replaced: {config}")
    _active = config

@contextmanager
def configured(**overrides: Any) -> Iterator[MarshalConfig]:
    """
    Temporarily overrides settings of the active configuration.

    Args:
        **overrides (Any): MarshalConfig keyword arguments to change.

    Yields:
        MarshalConfig: The configuration active inside the block.
    """
    previous = get_config()
    set_config(previous.replace(**overrides))
    try:
        yield get_config()
    finally:
        set_config(previous)
