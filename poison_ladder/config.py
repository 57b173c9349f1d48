"""
Configuration for a ladder instance.
"""

from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigurationError


@dataclass
class LadderConfig:
    """Configuration for the ladder service and its rebuilds."""

    data_dir: Path = Path("ladder_data")
    strict_replay: bool = False  # raise on unresolvable events instead of skipping
    default_reason: str = "Manual adjustment"
    default_actor: str = "admin"

    def __post_init__(self):
        """Validate configuration."""
        self.data_dir = Path(self.data_dir)
        if not self.default_reason.strip():
            raise ConfigurationError("default_reason cannot be blank")
        if not self.default_actor.strip():
            raise ConfigurationError("default_actor cannot be blank")
        if self.data_dir.exists() and not self.data_dir.is_dir():
            raise ConfigurationError(f"data_dir is not a directory: {self.data_dir}")
