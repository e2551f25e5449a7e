"""Manager classes for the asset cleanup MCP server"""

from managers.analytics_manager import AnalyticsManager
from managers.cleanup_manager import CleanupManager
from managers.defaults_manager import DefaultsManager

__all__ = ["AnalyticsManager", "CleanupManager", "DefaultsManager"]
