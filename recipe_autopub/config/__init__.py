"""
設定管理モジュール
"""

from .simple_config_manager import SimpleConfigManager

__all__ = ['SimpleConfigManager']
