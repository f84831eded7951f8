"""
定数定義モジュール
"""
from typing import Final


class Constants:
    """システム定数定義"""

    # Gemini API関連
    GEMINI_API_BASE_URL: Final[str] = 'https://generativelanguage.googleapis.com/v1beta'
    GEMINI_DEFAULT_MODEL: Final[str] = 'gemini-pro'
    GEMINI_KEY_ENV_PREFIX: Final[str] = 'GEMINI_API_KEY'
    KEY_POOL_SIZE: Final[int] = 10
    ERROR_THRESHOLD: Final[int] = 5
    API_TIMEOUT: Final[int] = 30

    # 生成関連
    MAX_GENERATION_ATTEMPTS: Final[int] = 3
    GENERATION_RETRY_DELAY: Final[float] = 1.0
    PIN_DESCRIPTION_MAX_LENGTH: Final[int] = 500

    # Google Custom Search関連
    GOOGLE_SEARCH_URL: Final[str] = 'https://www.googleapis.com/customsearch/v1'
    DEFAULT_SEARCH_LIMIT: Final[int] = 5
    INGREDIENT_SEARCH_LIMIT: Final[int] = 3

    # ログ関連
    LOG_DATE_FORMAT: Final[str] = '%Y%m%d'
    LOG_FORMAT: Final[str] = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class GenerationConfig:
    """Gemini generationConfig プリセット"""

    BLOG_POST = {
        'temperature': 0.7,
        'topK': 40,
        'topP': 0.95,
        'maxOutputTokens': 2048,
    }

    PIN_DESCRIPTION = {
        'temperature': 0.8,
        'maxOutputTokens': 500,
    }


class ErrorMessages:
    """エラーメッセージ定数"""

    NO_CONTENT_GENERATED = "Geminiからコンテンツが生成されませんでした"
    JSON_NOT_FOUND = "GeminiのレスポンスからJSONを取得できませんでした"
    GENERATION_UNAVAILABLE = "コンテンツ生成が一時的に利用できません: {}"
    SEARCH_NOT_CONFIGURED = "Google Search APIの認証情報が設定されていません"
    INVALID_INTEGER = "数値設定が不正です: {}={}"
    INTEGER_OUT_OF_RANGE = "数値設定は{}以上である必要があります: {}={}"
