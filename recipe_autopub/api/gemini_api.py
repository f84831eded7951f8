"""
Gemini API クライアント（キーローテーション対応）
"""
import json
import re
import threading
import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.key_rotation_manager import KeyRotationManager
from ..services.exceptions import DataProcessingError, GeminiAPIError
from ..services.resource_manager import SessionMixin
from ..utils.constants import Constants, ErrorMessages, GenerationConfig
from ..utils.utils import safe_get_nested

logger = logging.getLogger(__name__)


class GeminiAPI(SessionMixin):
    """Gemini generateContent REST クライアント"""

    default_headers = {'Content-Type': 'application/json'}

    def __init__(
        self,
        rotation_manager: KeyRotationManager,
        model: str = Constants.GEMINI_DEFAULT_MODEL,
        timeout: float = Constants.API_TIMEOUT,
        base_url: str = Constants.GEMINI_API_BASE_URL
    ):
        """
        Gemini APIクライアントの初期化

        Args:
            rotation_manager: 共有のキーローテーション管理
            model: モデル名
            timeout: リクエストタイムアウト（秒）
            base_url: APIベースURL
        """
        super().__init__(timeout=timeout)
        self.rotation_manager = rotation_manager
        self.model = model
        self.endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._attempt_state = threading.local()

        logger.info(f"Gemini API client initialized: {model}")

    def generate_blog_post(self, title: str, search_results: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
        """
        レシピブログ記事を生成

        Args:
            title: レシピタイトル
            search_results: 参考にする検索結果（title, link, snippet）

        Returns:
            content, excerpt, ingredients, instructions を含む辞書

        Raises:
            GeminiAPIError: API呼び出しに失敗した場合
            DataProcessingError: レスポンスを解析できない場合
        """
        prompt = self._build_blog_post_prompt(title, search_results)
        generated_text = self._generate_content(prompt, GenerationConfig.BLOG_POST)

        result = self._extract_json(generated_text)
        post = {
            'content': result.get('content') or '',
            'excerpt': result.get('excerpt') or '',
            'ingredients': self._as_string_list(result.get('ingredients')),
            'instructions': self._as_string_list(result.get('instructions')),
        }

        logger.info(f"Successfully generated blog post for: {title}")
        return post

    def generate_pinterest_description(self, title: str, excerpt: str) -> str:
        """
        Pinterestピン説明文を生成

        Raises:
            GeminiAPIError: API呼び出しに失敗した場合
        """
        prompt = f"""Create a compelling Pinterest pin description (max {Constants.PIN_DESCRIPTION_MAX_LENGTH} characters) for this recipe:
Title: {title}
Excerpt: {excerpt}

Make it engaging and include relevant hashtags. Just provide the description, no JSON."""

        description = self._generate_content(prompt, GenerationConfig.PIN_DESCRIPTION, require_text=False)
        description = description.strip()[:Constants.PIN_DESCRIPTION_MAX_LENGTH]

        logger.info(f"Successfully generated Pinterest description for: {title}")
        return description

    @property
    def last_slot_index(self) -> Optional[int]:
        """このスレッドで直前の呼び出しに使用したスロット番号"""
        return getattr(self._attempt_state, 'slot_index', None)

    def get_rotation_status(self) -> Dict[str, Any]:
        """キーローテーション状態を取得"""
        return self.rotation_manager.get_status()

    def _generate_content(self, prompt: str, generation_config: Dict[str, Any], require_text: bool = True) -> str:
        """
        generateContentを1回だけ呼び出し、結果をローテーション管理に報告

        1回の試行につき current_credential() 1回・報告1回。リトライは呼び出し側の責務。
        """
        credential = self.rotation_manager.current_credential()
        self._attempt_state.slot_index = credential.slot_index
        body = {
            'contents': [{'parts': [{'text': prompt}]}],
            'generationConfig': generation_config,
        }

        try:
            response = self.session.post(
                self.endpoint,
                headers={'x-goog-api-key': credential.api_key},
                json=body,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling Gemini (slot {credential.slot_index}): {e}")
            self.rotation_manager.report_failure(e)
            raise GeminiAPIError(f"Gemini API network error: {e}") from e

        if not response.ok:
            payload = self._decode_error(response)
            error = GeminiAPIError(
                f"Gemini API error: {response.status_code} - {json.dumps(payload, ensure_ascii=False)}",
                status_code=response.status_code,
                payload=payload
            )
            logger.error(f"Gemini API error on slot {credential.slot_index}: HTTP {response.status_code}")
            self.rotation_manager.report_failure(error)
            raise error

        self.rotation_manager.report_success()

        try:
            data = response.json()
        except ValueError as e:
            raise DataProcessingError(f"Geminiのレスポンスが不正なJSONです: {e}") from e

        text = safe_get_nested(data, 'candidates', 0, 'content', 'parts', 0, 'text')
        if not isinstance(text, str) or not text:
            if require_text:
                raise DataProcessingError(ErrorMessages.NO_CONTENT_GENERATED)
            logger.warning("Empty response from Gemini API")
            return ''

        return text

    @staticmethod
    def _build_blog_post_prompt(title: str, search_results: Optional[List[Dict[str, str]]]) -> str:
        prompt = f"""You are a professional recipe blogger. Create a detailed blog post for a recipe titled: "{title}"

Please provide the response in this exact JSON format:
{{
  "content": "Full blog post content with introduction and story",
  "excerpt": "Brief 2-3 sentence excerpt",
  "ingredients": ["ingredient 1", "ingredient 2", ...],
  "instructions": ["step 1", "step 2", ...]
}}

Make it engaging, SEO-friendly, and include cooking tips."""

        if search_results:
            references = '\n'.join(
                f"- {item.get('title', '')}: {item.get('snippet', '')}" for item in search_results
            )
            prompt += f"\n\nUse these search results as background research (do not copy them):\n{references}"

        return prompt

    @staticmethod
    def _extract_json(text: str) -> Dict[str, Any]:
        """モデル出力からJSONオブジェクトを抽出"""
        match = re.search(r'\{[\s\S]*\}', text)
        if not match:
            raise DataProcessingError(ErrorMessages.JSON_NOT_FOUND)

        try:
            result = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise DataProcessingError(f"{ErrorMessages.JSON_NOT_FOUND}: {e}") from e

        if not isinstance(result, dict):
            raise DataProcessingError(ErrorMessages.JSON_NOT_FOUND)
        return result

    @staticmethod
    def _as_string_list(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    @staticmethod
    def _decode_error(response: requests.Response) -> Any:
        """エラーレスポンスのボディを取得（JSONでなければテキスト）"""
        try:
            return response.json()
        except ValueError:
            return {'error': {'code': response.status_code, 'message': response.text}}
