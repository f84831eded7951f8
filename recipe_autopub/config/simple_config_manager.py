"""
簡素化設定管理システム - .env + 環境変数
"""
import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from ..services.exceptions import ConfigurationError
from ..utils.constants import Constants, ErrorMessages
from ..utils.utils import mask_config_section

logger = logging.getLogger(__name__)


@dataclass
class GeminiConfig:
    """Gemini API設定"""
    key_pool_size: int
    error_threshold: int
    key_env_prefix: str
    model: str
    api_timeout: int
    max_generation_attempts: int
    retry_delay: float


@dataclass
class GoogleSearchConfig:
    """Google Custom Search設定"""
    api_key: str
    search_engine_id: str


@dataclass
class SystemConfig:
    """システム設定"""
    log_level: str
    log_dir: str


class SimpleConfigManager:
    """簡素化設定管理システム - .env直接読み込み"""

    def __init__(self, env_file: Optional[str] = ".env"):
        """
        簡素化設定管理の初期化

        Args:
            env_file: .envファイルパス（Noneの場合は環境変数のみ）

        Raises:
            ConfigurationError: 数値設定が不正な場合
        """
        self.env_file = env_file
        self._config_data: Dict[str, Dict[str, Any]] = {}
        self._load_env_file()
        self._setup_configuration()

        logger.info("簡素化設定管理システム初期化完了")

    def _load_env_file(self) -> None:
        """.envファイルを読み込み（既存の環境変数は上書きしない）"""
        if not self.env_file:
            return

        if not os.path.exists(self.env_file):
            logger.warning(f".envファイルが見つかりません: {self.env_file}")
            return

        load_dotenv(self.env_file, override=False)
        logger.info(f".envファイル読み込み完了: {self.env_file}")

    def _setup_configuration(self) -> None:
        """環境変数から設定を構築"""
        self._config_data['gemini'] = {
            'key_pool_size': self._get_int('GEMINI_KEY_POOL_SIZE', Constants.KEY_POOL_SIZE),
            'error_threshold': self._get_int('GEMINI_ERROR_THRESHOLD', Constants.ERROR_THRESHOLD),
            'key_env_prefix': os.getenv('GEMINI_KEY_ENV_PREFIX', Constants.GEMINI_KEY_ENV_PREFIX),
            'model': os.getenv('GEMINI_MODEL', Constants.GEMINI_DEFAULT_MODEL),
            'api_timeout': self._get_int('GEMINI_API_TIMEOUT', Constants.API_TIMEOUT),
            'max_generation_attempts': self._get_int('MAX_GENERATION_ATTEMPTS', Constants.MAX_GENERATION_ATTEMPTS),
            'retry_delay': self._get_float('GENERATION_RETRY_DELAY', Constants.GENERATION_RETRY_DELAY),
        }

        self._config_data['google_search'] = {
            'api_key': os.getenv('GOOGLE_API_KEY', ''),
            'search_engine_id': os.getenv('GOOGLE_SEARCH_ENGINE_ID', ''),
        }

        self._config_data['system'] = {
            'log_level': os.getenv('LOG_LEVEL', 'INFO'),
            'log_dir': os.getenv('LOG_DIR', 'logs'),
        }

    @staticmethod
    def _get_int(name: str, default: int, minimum: int = 1) -> int:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ConfigurationError(ErrorMessages.INVALID_INTEGER.format(name, raw))
        if value < minimum:
            raise ConfigurationError(ErrorMessages.INTEGER_OUT_OF_RANGE.format(minimum, name, raw))
        return value

    @staticmethod
    def _get_float(name: str, default: float, minimum: float = 0.0) -> float:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError:
            raise ConfigurationError(ErrorMessages.INVALID_INTEGER.format(name, raw))
        if value < minimum:
            raise ConfigurationError(ErrorMessages.INTEGER_OUT_OF_RANGE.format(minimum, name, raw))
        return value

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """設定値を取得"""
        return self._config_data.get(section, {}).get(key, default)

    def get_gemini_api_key(self, slot_index: int) -> Optional[str]:
        """
        スロット番号に対応するGemini APIキーを取得

        呼び出し時点の環境変数を参照するため、起動後に設定されたキーも反映される。
        """
        prefix = self.get('gemini', 'key_env_prefix')
        value = os.environ.get(f"{prefix}_{slot_index}", '')
        return value.strip() or None

    def get_configured_key_slots(self) -> List[int]:
        """キーが設定済みのスロット番号一覧"""
        pool_size = self.get('gemini', 'key_pool_size')
        return [index for index in range(1, pool_size + 1) if self.get_gemini_api_key(index)]

    def get_config_summary(self) -> Dict[str, Any]:
        """設定サマリーを取得（機密情報をマスク）"""
        summary = {section: mask_config_section(config) for section, config in self._config_data.items()}
        summary['gemini']['configured_keys'] = (
            f"{len(self.get_configured_key_slots())}/{self.get('gemini', 'key_pool_size')}"
        )
        return summary

    @property
    def gemini(self) -> GeminiConfig:
        """Gemini設定を取得"""
        return GeminiConfig(**self._config_data['gemini'])

    @property
    def google_search(self) -> GoogleSearchConfig:
        """Google Search設定を取得"""
        return GoogleSearchConfig(**self._config_data['google_search'])

    @property
    def system(self) -> SystemConfig:
        """システム設定を取得"""
        return SystemConfig(**self._config_data['system'])
