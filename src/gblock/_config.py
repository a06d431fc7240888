"""
gblock Config - Global Configuration

Process-wide defaults for block construction with thread-local overrides.

Environment variables (read once at import):
    GBLOCK_DEFAULT_KIND: Kind used when none is given ('float64', 'int', ...)
    GBLOCK_MAX_BYTES: Upper bound for a single allocation (0 = unlimited)
    GBLOCK_ALIGNMENT: Alignment of owned storage in bytes
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from ._dtypes import Kind, validate_kind
from ._errors import InvalidRange, KindMismatch

logger = logging.getLogger("gblock.config")


# =============================================================================
# Configuration Classes
# =============================================================================

@dataclass
class MemoryConfig:
    """Configuration for storage allocation."""
    alignment: int = 64            # Alignment of owned storage, power of two
    max_bytes: int = 0             # Per-allocation limit, 0 = unlimited

    def __post_init__(self):
        if self.alignment <= 0 or self.alignment & (self.alignment - 1):
            raise InvalidRange(f"alignment must be a positive power of two, got {self.alignment}")
        if self.max_bytes < 0:
            raise InvalidRange(f"max_bytes must be non-negative, got {self.max_bytes}")


@dataclass
class KindConfig:
    """Configuration for element kinds."""
    default_kind: Kind = Kind.FLOAT64


@dataclass
class DisplayConfig:
    """Configuration for repr()."""
    threshold: int = 8             # Show every element up to this size
    edge_items: int = 3            # Elements shown at each end when summarised


# =============================================================================
# Global Configuration Manager
# =============================================================================

class BlockConfig:
    """
    Global configuration manager for gblock.

    Configuration can be set globally or locally (per thread) within a
    context.

    Example:
        # Global configuration
        gblock.config.memory = MemoryConfig(max_bytes=1 << 30)

        # Local configuration (context manager)
        with gblock.config.local(kinds=KindConfig(default_kind=Kind.INT32)):
            blk = gblock.zeros(10)      # int32 block
    """

    _SECTIONS = ("memory", "kinds", "display")

    def __init__(self):
        self._global_memory = MemoryConfig()
        self._global_kinds = KindConfig()
        self._global_display = DisplayConfig()

        # Thread-local storage for context overrides
        self._local = threading.local()

        self._callbacks: Dict[str, List[Callable]] = {name: [] for name in self._SECTIONS}

    def _get(self, name: str):
        value = getattr(self._local, name, None)
        if value is not None:
            return value
        return getattr(self, f"_global_{name}")

    def _set(self, name: str, value) -> None:
        setattr(self, f"_global_{name}", value)
        logger.debug("config %s set to %r", name, value)
        self._notify(name, value)

    # -------------------------------------------------------------------------
    # Property Accessors (with thread-local override support)
    # -------------------------------------------------------------------------

    @property
    def memory(self) -> MemoryConfig:
        return self._get("memory")

    @memory.setter
    def memory(self, value: MemoryConfig):
        self._set("memory", value)

    @property
    def kinds(self) -> KindConfig:
        return self._get("kinds")

    @kinds.setter
    def kinds(self, value: KindConfig):
        self._set("kinds", value)

    @property
    def display(self) -> DisplayConfig:
        return self._get("display")

    @display.setter
    def display(self, value: DisplayConfig):
        self._set("display", value)

    # -------------------------------------------------------------------------
    # Convenience Properties
    # -------------------------------------------------------------------------

    @property
    def default_kind(self) -> Kind:
        """Kind used when a constructor is not given one."""
        return self.kinds.default_kind

    @default_kind.setter
    def default_kind(self, value):
        self.kinds = KindConfig(default_kind=validate_kind(value))

    @property
    def alignment(self) -> int:
        return self.memory.alignment

    @alignment.setter
    def alignment(self, value: int):
        self.memory = replace(self._global_memory, alignment=value)

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **kwargs) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **kwargs: Section overrides (memory, kinds, display)
        """
        unknown = set(kwargs) - set(self._SECTIONS)
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")
        return _LocalConfigContext(self, **kwargs)

    def _set_local(self, **kwargs):
        for key, value in kwargs.items():
            if value is not None:
                setattr(self._local, key, value)

    def _clear_local(self, keys: List[str]):
        for key in keys:
            if hasattr(self._local, key):
                setattr(self._local, key, None)

    # -------------------------------------------------------------------------
    # Callback Registration
    # -------------------------------------------------------------------------

    def on_change(self, config_name: str, callback: Callable):
        """Register callback for global configuration changes."""
        if config_name not in self._callbacks:
            raise ValueError(f"Unknown config section: {config_name}")
        self._callbacks[config_name].append(callback)

    def _notify(self, config_name: str, value: Any):
        for callback in self._callbacks.get(config_name, []):
            callback(value)

    # -------------------------------------------------------------------------
    # Reset / Serialization
    # -------------------------------------------------------------------------

    def reset(self):
        """Reset all configurations to defaults (environment is not re-read)."""
        self._global_memory = MemoryConfig()
        self._global_kinds = KindConfig()
        self._global_display = DisplayConfig()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory": {
                "alignment": self.memory.alignment,
                "max_bytes": self.memory.max_bytes,
            },
            "kinds": {
                "default_kind": self.kinds.default_kind.type_name,
            },
            "display": {
                "threshold": self.display.threshold,
                "edge_items": self.display.edge_items,
            },
        }

    def __repr__(self) -> str:
        return f"BlockConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: BlockConfig, **kwargs):
        self._config = config
        self._kwargs = kwargs
        self._keys = list(kwargs.keys())

    def __enter__(self):
        self._config._set_local(**self._kwargs)
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._clear_local(self._keys)
        return False


# =============================================================================
# Environment
# =============================================================================

def _apply_environment(cfg: BlockConfig, environ=None) -> None:
    """Apply GBLOCK_* environment variables to ``cfg``."""
    environ = os.environ if environ is None else environ

    kind = environ.get("GBLOCK_DEFAULT_KIND")
    if kind:
        try:
            cfg.default_kind = kind
        except KindMismatch:
            logger.warning("ignoring unknown GBLOCK_DEFAULT_KIND=%r", kind)

    max_bytes = environ.get("GBLOCK_MAX_BYTES")
    alignment = environ.get("GBLOCK_ALIGNMENT")
    if max_bytes or alignment:
        try:
            cfg.memory = MemoryConfig(
                alignment=int(alignment) if alignment else cfg.memory.alignment,
                max_bytes=int(max_bytes) if max_bytes else cfg.memory.max_bytes,
            )
        except ValueError:
            logger.warning(
                "ignoring invalid GBLOCK_MAX_BYTES=%r / GBLOCK_ALIGNMENT=%r",
                max_bytes, alignment,
            )


# Global configuration instance
config = BlockConfig()
_apply_environment(config)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_config() -> BlockConfig:
    """Get the global configuration instance."""
    return config


def set_default_kind(kind) -> None:
    """Set the kind used when constructors are not given one."""
    config.default_kind = kind


def set_memory(alignment: Optional[int] = None, max_bytes: Optional[int] = None) -> None:
    """
    Configure storage allocation.

    Args:
        alignment: Alignment of owned storage in bytes
        max_bytes: Per-allocation limit (0 = unlimited)

    Raises:
        InvalidRange: If alignment is not a power of two or max_bytes < 0
    """
    current = config._global_memory
    config.memory = MemoryConfig(
        alignment=current.alignment if alignment is None else alignment,
        max_bytes=current.max_bytes if max_bytes is None else max_bytes,
    )


__all__ = [
    "MemoryConfig",
    "KindConfig",
    "DisplayConfig",
    "BlockConfig",
    "config",
    "get_config",
    "set_default_kind",
    "set_memory",
]
