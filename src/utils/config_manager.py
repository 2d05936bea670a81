"""
Configuration Manager

This module handles persistent storage and retrieval of presentation state
graphic preferences. Settings are stored in a JSON file in the user's
application data directory.

Inputs:
    - User preferences (default annotation color, label visibility,
      editable graphics, fixed-shape fallback)

Outputs:
    - Loaded configuration values
    - Saved configuration file

Requirements:
    - json module (standard library)
    - pathlib module (standard library)
    - os module (standard library)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class ConfigManager:
    """
    Manages presentation state graphic preferences.

    Handles loading and saving of settings including:
    - Default annotation color (used when a layer has no recommended color)
    - Label visibility of reconstructed graphics
    - Whether editable graphics are requested
    - Whether degenerate editable graphics fall back to fixed shapes
    """

    def __init__(self, config_filename: str = "pr_graphics_config.json",
                 config_dir: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_filename: Name of the configuration file to use
            config_dir: Directory override (defaults to the per-user config directory)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.name == 'nt':  # Windows
            app_data = os.getenv('APPDATA', os.path.expanduser('~'))
            self.config_dir = Path(app_data) / "DICOMPRGraphics"
        else:  # Mac/Linux
            self.config_dir = Path.home() / ".config" / "DICOMPRGraphics"

        self.config_path = self.config_dir / config_filename

        self.default_config = {
            "pr_default_color_r": 255,  # Yellow default
            "pr_default_color_g": 255,
            "pr_default_color_b": 0,
            "pr_label_visible": True,
            "pr_editable_graphics": True,
            "pr_fallback_to_fixed": True,
        }

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, or return defaults if file doesn't exist.

        Returns:
            Dictionary containing configuration values
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                    # Merge with defaults to ensure all keys exist
                    config = self.default_config.copy()
                    if isinstance(loaded_config, dict):
                        config.update(loaded_config)
                    return config
            except (json.JSONDecodeError, IOError) as e:
                # If file is corrupted, use defaults
                print(f"Warning: Could not load config file: {e}")
                return self.default_config.copy()
        else:
            return self.default_config.copy()

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if save was successful, False otherwise
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4, ensure_ascii=False)
            return True
        except IOError as e:
            print(f"Error saving config file: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key to set
            value: Value to set
        """
        self.config[key] = value

    def reset_to_defaults(self) -> None:
        self.config = self.default_config.copy()

    def get_default_color(self) -> Tuple[int, int, int]:
        """
        Get the default annotation color.

        Returns:
            Tuple of (r, g, b) values (0-255)
        """
        return (
            int(self.config.get("pr_default_color_r", 255)),
            int(self.config.get("pr_default_color_g", 255)),
            int(self.config.get("pr_default_color_b", 0)),
        )

    def set_default_color(self, r: int, g: int, b: int) -> None:
        """
        Set the default annotation color.

        Args:
            r: Red component (0-255)
            g: Green component (0-255)
            b: Blue component (0-255)
        """
        self.config["pr_default_color_r"] = max(0, min(255, int(r)))
        self.config["pr_default_color_g"] = max(0, min(255, int(g)))
        self.config["pr_default_color_b"] = max(0, min(255, int(b)))
        self.save_config()

    def get_label_visible(self) -> bool:
        return bool(self.config.get("pr_label_visible", True))

    def set_label_visible(self, visible: bool) -> None:
        self.config["pr_label_visible"] = bool(visible)
        self.save_config()

    def get_editable_graphics(self) -> bool:
        return bool(self.config.get("pr_editable_graphics", True))

    def set_editable_graphics(self, editable: bool) -> None:
        self.config["pr_editable_graphics"] = bool(editable)
        self.save_config()

    def get_fallback_to_fixed(self) -> bool:
        return bool(self.config.get("pr_fallback_to_fixed", True))

    def set_fallback_to_fixed(self, fallback: bool) -> None:
        self.config["pr_fallback_to_fixed"] = bool(fallback)
        self.save_config()
