"""
Google Custom Search API クライアント（レシピ情報リサーチ用）
"""
import logging
from typing import Dict, List, Union

import requests

from ..services.exceptions import GoogleSearchAPIError
from ..services.resource_manager import SessionMixin
from ..utils.constants import Constants, ErrorMessages
from ..utils.utils import normalize_string, safe_get_nested

logger = logging.getLogger(__name__)


SearchResponse = Dict[str, Union[bool, str, List[Dict[str, str]]]]


class GoogleSearchAPI(SessionMixin):
    """Google Custom Search API クライアント"""

    def __init__(self, api_key: str, search_engine_id: str, timeout: float = Constants.API_TIMEOUT):
        """
        Args:
            api_key: Google APIキー
            search_engine_id: カスタム検索エンジンID
            timeout: リクエストタイムアウト（秒）
        """
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.search_engine_id = search_engine_id

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.search_engine_id)

    def search_recipe_info(self, query: str, limit: int = Constants.DEFAULT_SEARCH_LIMIT) -> SearchResponse:
        """
        レシピ情報を検索

        Args:
            query: 検索クエリ
            limit: 取得件数

        Returns:
            検索結果の辞書 (success, results, error)
        """
        if not self.is_configured:
            return {"success": False, "error": ErrorMessages.SEARCH_NOT_CONFIGURED}

        params = {
            'q': normalize_string(query),
            'cx': self.search_engine_id,
            'key': self.api_key,
            'num': limit,
        }

        try:
            response = self.session.get(Constants.GOOGLE_SEARCH_URL, params=params, timeout=self.timeout)

            if response.status_code != 200:
                raise GoogleSearchAPIError(self._error_message(response))

            data = response.json()
            if data.get('error'):
                raise GoogleSearchAPIError(safe_get_nested(data, 'error', 'message', default='Unknown error'))

        except GoogleSearchAPIError as e:
            logger.error(f"Google Search error: {e}")
            return {"success": False, "error": str(e)}
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error during Google Search: {e}")
            return {"success": False, "error": str(e)}
        except ValueError as e:
            logger.error(f"Invalid JSON from Google Search: {e}")
            return {"success": False, "error": f"Invalid response: {e}"}

        results = [
            {
                'title': item.get('title', ''),
                'link': item.get('link', ''),
                'snippet': item.get('snippet', ''),
            }
            for item in data.get('items') or []
        ]

        logger.info(f"Google Search: {len(results)} results for '{query}'")
        return {"success": True, "results": results}

    def search_ingredients(self, recipe_name: str) -> SearchResponse:
        """レシピの材料・手順を検索"""
        return self.search_recipe_info(
            f"{recipe_name} recipe ingredients instructions", Constants.INGREDIENT_SEARCH_LIMIT
        )

    def search_cooking_techniques(self, technique: str) -> SearchResponse:
        """調理テクニックを検索"""
        return self.search_recipe_info(
            f"how to {technique} cooking technique tips", Constants.INGREDIENT_SEARCH_LIMIT
        )

    def search_recipe_variations(self, recipe_name: str) -> SearchResponse:
        """レシピのバリエーションを検索"""
        return self.search_recipe_info(
            f"{recipe_name} variations alternatives twists", Constants.DEFAULT_SEARCH_LIMIT
        )

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        return safe_get_nested(data, 'error', 'message', default=None) or f"HTTP {response.status_code}"
