"""
カスタム例外クラス定義
"""
from typing import Any, Optional


class AutoPublishError(Exception):
    """自動公開システムの基底例外クラス"""
    pass


class ConfigurationError(AutoPublishError):
    """設定関連のエラー"""
    pass


class MissingAPIKeyError(ConfigurationError):
    """アクティブスロットのAPIキーが未設定"""

    def __init__(self, slot_index: int, key_name: str):
        self.slot_index = slot_index
        self.key_name = key_name
        super().__init__(f"APIキーが設定されていません: スロット{slot_index} ({key_name})")


class APIError(AutoPublishError):
    """API関連のエラー"""
    pass


class GeminiAPIError(APIError):
    """Gemini API関連のエラー"""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class GoogleSearchAPIError(APIError):
    """Google Custom Search API関連のエラー"""
    pass


class DataProcessingError(AutoPublishError):
    """データ処理関連のエラー"""
    pass


class ContentGenerationError(AutoPublishError):
    """リトライ上限に達してもコンテンツ生成できなかった"""
    pass
