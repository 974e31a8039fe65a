"""Configuration manager for ts-reconcile.

This module provides functionality for loading, validating, and saving
YAML configuration files with Pydantic model validation.
"""

import logging
import tempfile
from pathlib import Path

import yaml

from .schema import ReconcilerConfig


logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Configuration manager for handling YAML config files with Pydantic validation.

    Provides methods for loading, saving, and validating configuration files
    with atomic writes.
    """

    @staticmethod
    def load_config(config_path: Path) -> ReconcilerConfig:
        """
        Load and validate configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            ReconcilerConfig: Validated configuration object

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML syntax is invalid
            ValueError: If the file does not contain a YAML dictionary
            ValidationError: If the configuration fails Pydantic validation
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as f:
                raw_config_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if raw_config_data is None:
            config_data: dict[str, object] = {}
        elif isinstance(raw_config_data, dict):
            config_data = raw_config_data  # pyright: ignore[reportUnknownVariableType]
        else:
            raise ValueError(
                f"Configuration file must contain a YAML dictionary, got {type(raw_config_data).__name__}"
            )

        parsed_data = ConfigManager._parse_config_data(config_data)
        config = ReconcilerConfig.model_validate(parsed_data)
        logger.debug(f"Loaded configuration from {config_path}")
        return config

    @staticmethod
    def _parse_config_data(config_data: dict[str, object]) -> dict[str, object]:
        """
        Normalize loosely written values before validation.

        Args:
            config_data: Raw configuration data from YAML

        Returns:
            dict[str, object]: Parsed configuration data
        """
        parsed_data = config_data.copy()

        for key, value in config_data.items():
            match key, value:
                case "catalog", dict():
                    section: dict[str, object] = dict(value)  # pyright: ignore[reportUnknownArgumentType]
                    for option in ("locations", "duplicate_policy"):
                        match section.get(option):
                            case str() as text:
                                section[option] = text.strip().lower()
                            case _:
                                pass
                    parsed_data[key] = section

                case "reconcile", dict():
                    section = dict(value)  # pyright: ignore[reportUnknownArgumentType]
                    # "never" reads better than null in hand-written files
                    match section.get("prune_vanished_after"):
                        case str() as text if text.strip().lower() == "never":
                            section["prune_vanished_after"] = None
                        case _:
                            pass
                    parsed_data[key] = section

                case _:
                    parsed_data[key] = value

        return parsed_data

    @staticmethod
    def save_config(config: ReconcilerConfig, config_path: Path) -> None:
        """
        Save configuration to a YAML file with atomic operation.

        Args:
            config: Configuration object to save
            config_path: Path where to save the configuration

        Raises:
            OSError: If file operations fail
        """
        config_dict = config.model_dump(mode="json")

        content_to_write = yaml.safe_dump(
            config_dict,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )

        temp_file = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=config_path.parent,
                prefix=f".{config_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as temp_file:
                _ = temp_file.write(content_to_write)
                temp_file.flush()
                temp_path = Path(temp_file.name)

            _ = temp_path.replace(config_path)

        except Exception as e:
            if temp_file and Path(temp_file.name).exists():
                Path(temp_file.name).unlink(missing_ok=True)
            raise OSError(f"Failed to save configuration to {config_path}: {e}") from e

    @staticmethod
    def get_default_config() -> ReconcilerConfig:
        """
        Get a configuration object with default values.

        Returns:
            ReconcilerConfig: Configuration with default values
        """
        return ReconcilerConfig()

    @staticmethod
    def create_sample_config(sample_path: Path) -> None:
        """
        Create a sample configuration file with all options and documentation.

        Args:
            sample_path: Path where to create the sample configuration file
        """
        _ = sample_path.parent.mkdir(parents=True, exist_ok=True)
        _ = sample_path.write_text(SAMPLE_CONFIG, encoding="utf-8")


SAMPLE_CONFIG = """# ts-reconcile configuration file
# Every option is optional; the values below are the defaults.

catalog:
  # Location output: relative (line deltas), absolute or none
  locations: relative
  # Duplicate keys in a catalog on load: reject, merge or keep
  duplicate_policy: reject
  # Order contexts by name instead of by scan order
  sort_contexts: false
  # Source language for new catalogs, e.g. en_US (null to omit)
  source_language: null

reconcile:
  # Drop vanished messages after this many passes (null or never to keep them)
  prune_vanished_after: null
  # Drop every obsolete and vanished message on each pass
  prune_obsolete: false
  # Report negative line deltas when loading catalogs
  strict_monotonic_locations: false
  # Catalogs reconciled in parallel by the batch command (1-64)
  max_workers: 4

logging:
  # DEBUG, INFO, WARNING or ERROR
  level: INFO
  # Folder for a rotating log file (null for console only)
  log_folder: null
"""
