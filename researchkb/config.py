"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/config.py
Version:        1.0.0
Description:    Manages application configuration using QSettings. Provides
                defaults for the knowledge base layout, query limits and
                logging, and standardizes the data directory (XDG on Linux).
------------------------------------------------------------------------------
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from PyQt6.QtCore import QSettings, QStandardPaths

from researchkb.models import KnowledgeBaseConfig
from researchkb.models.query import DEFAULT_MAX_RESULTS


class AppConfig:
    """
    Manages application configuration using QSettings.
    """

    KEY_KNOWLEDGE_DIR: str = "knowledge_dir"
    KEY_PAPERS_DIR: str = "papers_dir"
    KEY_MAX_RESULTS: str = "max_results"
    KEY_LOG_LEVEL: str = "log_level"
    KEY_LOG_COMPONENTS: str = "log_components"

    DEFAULT_KNOWLEDGE_DIR: str = "knowledge"
    DEFAULT_PAPERS_DIR: str = "papers"
    DEFAULT_LOG_LEVEL: str = "WARNING"

    APP_ID: str = "researchkb"
    _active_profile: Optional[str] = None

    def __init__(self, profile: Optional[str] = None) -> None:
        """
        Initializes the configuration manager.

        Args:
            profile: Optional profile name (e.g. 'dev', 'test'). Isolates all
                    settings and paths (researchkb-dev).
        """
        if profile is None:
            profile = AppConfig._active_profile
        else:
            AppConfig._active_profile = profile

        self.profile = profile
        self.active_id = self.APP_ID
        if profile:
            self.active_id = f"{self.APP_ID}-{profile}"

        self.settings = QSettings(self.active_id, self.active_id)

    def get_data_dir(self) -> Path:
        """
        Returns the application data directory:
        ~/.local/share/researchkb[-profile]/
        """
        base_path = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
        data_dir = Path(base_path) / self.active_id
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def _get_setting(self, group: str, key: str, default: Any = None) -> Any:
        if group:
            self.settings.beginGroup(group)
        val = self.settings.value(key, default)
        if group:
            self.settings.endGroup()
        return val

    def _set_setting(self, group: str, key: str, value: Any) -> None:
        if isinstance(value, str):
            value = value.strip()

        if group:
            self.settings.beginGroup(group)
        self.settings.setValue(key, value)
        if group:
            self.settings.endGroup()

    def get_knowledge_dir(self) -> str:
        """Base directory holding extracted/ and index/."""
        return str(self._get_setting("Storage", self.KEY_KNOWLEDGE_DIR, self.DEFAULT_KNOWLEDGE_DIR))

    def set_knowledge_dir(self, path: str) -> None:
        self._set_setting("Storage", self.KEY_KNOWLEDGE_DIR, path)

    def get_papers_dir(self) -> str:
        """Base directory holding metadata/ and markdown/."""
        return str(self._get_setting("Storage", self.KEY_PAPERS_DIR, self.DEFAULT_PAPERS_DIR))

    def set_papers_dir(self, path: str) -> None:
        self._set_setting("Storage", self.KEY_PAPERS_DIR, path)

    def get_max_results(self) -> int:
        """Default maximum number of query results."""
        val = self._get_setting("Query", self.KEY_MAX_RESULTS, DEFAULT_MAX_RESULTS)
        try:
            val = int(val)
        except (TypeError, ValueError):
            return DEFAULT_MAX_RESULTS
        return val if val > 0 else DEFAULT_MAX_RESULTS

    def set_max_results(self, value: int) -> None:
        self._set_setting("Query", self.KEY_MAX_RESULTS, int(value))

    def get_log_level(self) -> str:
        """Retrieves the global log level."""
        return str(self._get_setting("Logging", self.KEY_LOG_LEVEL, self.DEFAULT_LOG_LEVEL))

    def set_log_level(self, level: str) -> None:
        self._set_setting("Logging", self.KEY_LOG_LEVEL, level.upper())

    def get_log_components(self) -> Dict[str, str]:
        """Retrieves a dictionary of component-specific log levels."""
        raw = str(self._get_setting("Logging", self.KEY_LOG_COMPONENTS, "{}"))
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def set_log_components(self, components: Dict[str, str]) -> None:
        self._set_setting("Logging", self.KEY_LOG_COMPONENTS, json.dumps(components))

    def get_log_file_path(self) -> Path:
        """Returns the absolute path to the log file."""
        return self.get_data_dir() / "researchkb.log"

    def knowledge_base_config(self) -> KnowledgeBaseConfig:
        """Bundles the stored settings for KnowledgeStore."""
        return KnowledgeBaseConfig(
            knowledge_dir=self.get_knowledge_dir(),
            papers_dir=self.get_papers_dir(),
            max_results=self.get_max_results(),
        )
