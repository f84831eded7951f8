"""
コンテンツ生成リクエストハンドラー

レシピ情報のリサーチとGeminiによる記事生成をまとめ、キーローテーションを
またいだリトライ回数を管理する。ローテーション自体はKeyRotationManagerが行う。
"""
import time
import logging
from typing import Any, Callable, Dict, List, Optional

from ..api.gemini_api import GeminiAPI
from ..api.google_search_api import GoogleSearchAPI
from ..security.input_validator import InputValidator
from ..services.exceptions import ContentGenerationError, GeminiAPIError
from ..utils.constants import Constants, ErrorMessages
from ..utils.utils import normalize_string

logger = logging.getLogger(__name__)


class ContentGenerator:
    """レシピ記事・Pinterest説明文の生成"""

    def __init__(
        self,
        gemini_api: GeminiAPI,
        search_api: Optional[GoogleSearchAPI] = None,
        validator: Optional[InputValidator] = None,
        max_attempts: int = Constants.MAX_GENERATION_ATTEMPTS,
        retry_delay: float = Constants.GENERATION_RETRY_DELAY
    ):
        """
        Args:
            gemini_api: Gemini APIクライアント
            search_api: Google Search APIクライアント（Noneの場合はリサーチなし）
            validator: 生成コンテンツのバリデーター
            max_attempts: 1リクエストあたりの最大試行回数
            retry_delay: 試行間の待機秒数
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts は1以上である必要があります: {max_attempts}")

        self.gemini_api = gemini_api
        self.search_api = search_api
        self.validator = validator or InputValidator()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    def generate_blog_post(self, title: str, search_for_ingredients: bool = True) -> Dict[str, Any]:
        """
        レシピブログ記事を生成

        Args:
            title: レシピタイトル
            search_for_ingredients: 生成前に材料情報を検索するか

        Returns:
            生成結果の辞書 (success, title, post, search_results, attempts, key_slot)

        Raises:
            ConfigurationError: APIキーが未設定の場合
            DataProcessingError: 生成結果を解析できない場合
            ContentGenerationError: 全試行が失敗した場合
        """
        title = normalize_string(title)

        search_results = None
        if search_for_ingredients:
            search_results = self._research(title)

        post, attempts, key_slot = self._with_retry(
            'generate_blog_post',
            lambda: self.gemini_api.generate_blog_post(title, search_results)
        )

        logger.info(f"記事生成完了: {title} (試行{attempts}回, スロット{key_slot})")

        return {
            'success': True,
            'title': title,
            'post': self.validator.validate_generated_post(post),
            'search_results': search_results,
            'attempts': attempts,
            'key_slot': key_slot,
        }

    def generate_pinterest_description(self, title: str, excerpt: str) -> str:
        """
        Pinterestピン説明文を生成

        Raises:
            ConfigurationError: APIキーが未設定の場合
            ContentGenerationError: 全試行が失敗した場合
        """
        description, _, _ = self._with_retry(
            'generate_pinterest_description',
            lambda: self.gemini_api.generate_pinterest_description(title, excerpt)
        )
        return self.validator.sanitize_text(description, Constants.PIN_DESCRIPTION_MAX_LENGTH)

    def _research(self, title: str) -> Optional[List[Dict[str, str]]]:
        """材料情報を検索（失敗時は検索結果なしで続行）"""
        if self.search_api is None:
            return None

        search = self.search_api.search_ingredients(title)
        if search.get('success'):
            return search.get('results')

        logger.warning(f"レシピ情報の検索に失敗しました（検索なしで続行）: {search.get('error')}")
        return None

    def _with_retry(self, operation: str, func: Callable[[], Any]):
        """
        Gemini呼び出しをリトライ付きで実行

        GeminiAPIErrorのみリトライ対象。失敗は呼び出し毎にGeminiAPIが報告済みなので、
        次の試行では必要に応じてローテーション後のキーが使われる。

        Returns:
            (結果, 試行回数, 成功時のスロット番号)
        """
        last_error: Optional[GeminiAPIError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = func()
                return result, attempt, self.gemini_api.last_slot_index
            except GeminiAPIError as e:
                last_error = e
                logger.warning(
                    f"{operation} 失敗 (試行{attempt}/{self.max_attempts}, "
                    f"スロット{self.gemini_api.last_slot_index}): {e}"
                )
                if attempt < self.max_attempts and self.retry_delay > 0:
                    time.sleep(self.retry_delay)

        logger.error(f"{operation}: 最大試行回数({self.max_attempts})に達しました")
        raise ContentGenerationError(ErrorMessages.GENERATION_UNAVAILABLE.format(last_error)) from last_error
