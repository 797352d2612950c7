"""
Configuration loader for voicing and harmonization settings.

Provides centralized loading of the YAML configuration files shipped in
``chordlab/configs`` with caching. Register settings may be overridden
from the environment (``CHORDLAB_ROOT_OCTAVE``, ``CHORDLAB_BASS_OCTAVE``,
``CHORDLAB_UPPER_MIN``, ``CHORDLAB_UPPER_MAX``).
"""

from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

import yaml

from .errors import InvalidVoicingRequest
from .harmony.harmonizer import HarmonyHeuristicSettings
from .timeline import TimelineSpec
from .voicing.engine import VoicingSettings

logger = logging.getLogger(__name__)

VOICING_CONFIG = "voicing.yaml"
HARMONY_CONFIG = "harmony.yaml"


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""
    pass


class ConfigLoader:
    """
    Loads voicing and harmony configs from YAML files with caching.

    Attributes:
        config_dir: Base directory for configuration files
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Base directory for config files.
                       Defaults to the ``configs`` folder inside the package.
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent / "configs"
        else:
            self.config_dir = Path(config_dir)

        self._cache: Dict[str, Any] = {}

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """
        Load a YAML file and return its contents.

        Raises:
            ConfigLoadError: If the file cannot be loaded or parsed
        """
        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}")
        except OSError as e:
            raise ConfigLoadError(f"Failed to load configuration file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {path}")
        return data

    def load_raw(self, name: str) -> Dict[str, Any]:
        """Load (and cache) one config file by file name."""
        if name in self._cache:
            return self._cache[name]
        path = self.config_dir / name
        data = self._load_yaml(path)
        self._cache[name] = data
        logger.debug(f"Loaded {name} from {path}")
        return data

    def load_voicing_settings(self, apply_env: bool = True) -> VoicingSettings:
        """
        Build :class:`VoicingSettings` from ``voicing.yaml``.

        Args:
            apply_env: Let ``CHORDLAB_*`` environment variables override
                the register fields.

        Raises:
            ConfigLoadError: If the file is missing or holds invalid values
        """
        data = self.load_raw(VOICING_CONFIG)
        try:
            settings = VoicingSettings.from_dict(data)
            if apply_env:
                settings = VoicingSettings.from_env(settings)
        except (TypeError, ValueError, InvalidVoicingRequest) as e:
            raise ConfigLoadError(f"Invalid voicing settings: {e}")
        return settings

    def load_harmony_settings(self) -> HarmonyHeuristicSettings:
        """
        Build :class:`HarmonyHeuristicSettings` from ``harmony.yaml``.

        Raises:
            ConfigLoadError: If the file cannot be loaded
        """
        data = self.load_raw(HARMONY_CONFIG)
        return HarmonyHeuristicSettings.from_dict(data.get("heuristics", {}))

    def load_timeline_spec(self) -> TimelineSpec:
        """
        Build the default :class:`TimelineSpec` from ``harmony.yaml``.

        Raises:
            ConfigLoadError: If the file cannot be loaded or the grid is invalid
        """
        data = self.load_raw(HARMONY_CONFIG).get("timeline", {})
        try:
            return TimelineSpec(
                ticks_per_quarter=int(data.get("ticks_per_quarter", 4)),
                tempo_bpm=data.get("tempo_bpm"),
                time_sig_numerator=data.get("time_sig_numerator"),
                time_sig_denominator=data.get("time_sig_denominator"),
            )
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"Invalid timeline settings: {e}")

    def get_available_configs(self) -> List[str]:
        if not self.config_dir.exists():
            return []
        return sorted(path.name for path in self.config_dir.glob("*.yaml"))

    def has_config(self, name: str) -> bool:
        return (self.config_dir / name).exists()

    def reload(self) -> None:
        """
        Clear all caches for hot-reloading.

        Call this method when configuration files have been modified
        and you want to reload them on next access.
        """
        self._cache.clear()
        logger.info("Configuration cache cleared")

    def is_available(self) -> bool:
        return self.config_dir.exists()


# Module-level singleton for convenience
_default_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: Optional[Path] = None) -> ConfigLoader:
    """
    Get the default ConfigLoader instance.

    Creates a singleton instance on first call. Subsequent calls
    return the same instance unless a different config_dir is specified.
    """
    global _default_loader

    if config_dir is not None:
        return ConfigLoader(config_dir)

    if _default_loader is None:
        _default_loader = ConfigLoader()

    return _default_loader
