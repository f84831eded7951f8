#!/usr/bin/env python3
"""
Gemini API クライアントのテストモジュール
"""
import json
import pytest
import sys
import threading
from pathlib import Path
from unittest.mock import Mock, patch
import requests

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from recipe_autopub.api.gemini_api import GeminiAPI
from recipe_autopub.core.key_rotation_manager import KeyRotationManager
from recipe_autopub.services.exceptions import DataProcessingError, GeminiAPIError, MissingAPIKeyError


def gemini_response(text, status_code=200):
    """generateContentの成功レスポンスのモック"""
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = {
        'candidates': [{'content': {'parts': [{'text': text}]}}]
    }
    return response


def gemini_error_response(status_code, status, message):
    """generateContentのエラーレスポンスのモック"""
    response = Mock()
    response.status_code = status_code
    response.ok = False
    response.json.return_value = {'error': {'code': status_code, 'status': status, 'message': message}}
    return response


BLOG_POST_TEXT = """Here is your post:
```json
{
  "content": "<p>The fluffiest pancakes you will ever make.</p>",
  "excerpt": "Fluffy buttermilk pancakes in 20 minutes.",
  "ingredients": ["2 cups flour", "2 eggs", "1.5 cups buttermilk"],
  "instructions": ["Whisk dry ingredients", "Add wet ingredients", "Cook on a griddle"]
}
```"""


class TestGeminiAPI:
    """Gemini API クライアントのテストクラス"""

    @pytest.fixture
    def manager(self):
        """テスト用キーローテーション管理（3スロット）"""
        keys = {1: "key-1", 2: "key-2", 3: "key-3"}
        return KeyRotationManager(pool_size=3, error_threshold=2, key_resolver=keys.get)

    @pytest.fixture
    def client(self, manager):
        """テスト用クライアント"""
        return GeminiAPI(rotation_manager=manager, model="gemini-pro", timeout=10)

    def test_init(self, client, manager):
        """初期化テスト"""
        assert client.rotation_manager is manager
        assert client.endpoint == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
        )
        assert client.timeout == 10

    @patch('requests.Session.post')
    def test_generate_blog_post_success(self, mock_post, client, manager):
        """記事生成成功テスト"""
        mock_post.return_value = gemini_response(BLOG_POST_TEXT)

        post = client.generate_blog_post("Buttermilk Pancakes")

        assert post['excerpt'] == "Fluffy buttermilk pancakes in 20 minutes."
        assert post['ingredients'] == ["2 cups flour", "2 eggs", "1.5 cups buttermilk"]
        assert len(post['instructions']) == 3
        assert manager.get_slot(1).request_count == 1
        assert manager.get_slot(1).error_count == 0

    @patch('requests.Session.post')
    def test_request_uses_active_key(self, mock_post, client):
        """アクティブスロットのキーと生成設定を送信"""
        mock_post.return_value = gemini_response(BLOG_POST_TEXT)

        client.generate_blog_post("Buttermilk Pancakes")

        _, kwargs = mock_post.call_args
        assert kwargs['headers'] == {'x-goog-api-key': 'key-1'}
        assert kwargs['timeout'] == 10
        assert kwargs['json']['generationConfig']['maxOutputTokens'] == 2048
        assert "Buttermilk Pancakes" in kwargs['json']['contents'][0]['parts'][0]['text']

    @patch('requests.Session.post')
    def test_search_results_included_in_prompt(self, mock_post, client):
        """検索結果をプロンプトに含める"""
        mock_post.return_value = gemini_response(BLOG_POST_TEXT)
        search_results = [{'title': 'Best Pancakes', 'link': 'https://example.com', 'snippet': 'Use buttermilk'}]

        client.generate_blog_post("Buttermilk Pancakes", search_results)

        prompt = mock_post.call_args[1]['json']['contents'][0]['parts'][0]['text']
        assert "Best Pancakes: Use buttermilk" in prompt

    @patch('requests.Session.post')
    def test_rate_limit_rotates_key(self, mock_post, client, manager):
        """429でエラーを送出し、次の呼び出しは別キーを使う"""
        mock_post.side_effect = [
            gemini_error_response(429, 'RESOURCE_EXHAUSTED', 'Resource has been exhausted'),
            gemini_response(BLOG_POST_TEXT),
        ]

        with pytest.raises(GeminiAPIError) as exc_info:
            client.generate_blog_post("Buttermilk Pancakes")

        assert exc_info.value.status_code == 429
        assert manager.current_slot_index == 2
        assert manager.get_slot(1).rate_limit_reached is True

        client.generate_blog_post("Buttermilk Pancakes")

        assert mock_post.call_args[1]['headers'] == {'x-goog-api-key': 'key-2'}
        assert manager.get_slot(2).request_count == 1

    @patch('requests.Session.post')
    def test_last_slot_index(self, mock_post, client, manager):
        """直前の呼び出しで使用したスロットを記録（ローテーション後も変わらない）"""
        assert client.last_slot_index is None

        mock_post.return_value = gemini_error_response(429, 'RESOURCE_EXHAUSTED', 'Resource has been exhausted')
        with pytest.raises(GeminiAPIError):
            client.generate_blog_post("Buttermilk Pancakes")

        assert manager.current_slot_index == 2
        assert client.last_slot_index == 1

        mock_post.return_value = gemini_response(BLOG_POST_TEXT)
        client.generate_blog_post("Buttermilk Pancakes")
        assert client.last_slot_index == 2

    @patch('requests.Session.post')
    def test_last_slot_index_is_per_thread(self, mock_post, client):
        """他スレッドの呼び出しは自スレッドの記録に影響しない"""
        mock_post.return_value = gemini_response(BLOG_POST_TEXT)
        client.generate_blog_post("Buttermilk Pancakes")

        seen = []
        worker = threading.Thread(target=lambda: seen.append(client.last_slot_index))
        worker.start()
        worker.join()

        assert seen == [None]
        assert client.last_slot_index == 1

    @patch('requests.Session.post')
    def test_server_error_reported_once(self, mock_post, client, manager):
        """500エラーは1回だけ失敗として記録（ローテーションなし）"""
        mock_post.return_value = gemini_error_response(500, 'INTERNAL', 'Internal error encountered')

        with pytest.raises(GeminiAPIError):
            client.generate_blog_post("Buttermilk Pancakes")

        assert manager.get_slot(1).error_count == 1
        assert manager.current_slot_index == 1

    @patch('requests.Session.post')
    def test_timeout_is_generic_failure(self, mock_post, client, manager):
        """タイムアウトは一般エラーとして報告し、閾値でローテーション"""
        mock_post.side_effect = requests.exceptions.Timeout("Read timed out")

        for _ in range(2):
            with pytest.raises(GeminiAPIError):
                client.generate_pinterest_description("Pancakes", "Fluffy")

        assert manager.current_slot_index == 2
        assert manager.get_slot(1).error_count == 2
        assert manager.get_slot(1).rate_limit_reached is False

    @patch('requests.Session.post')
    def test_non_json_error_body(self, mock_post, client, manager):
        """JSONでないエラーボディも扱える"""
        response = Mock()
        response.status_code = 429
        response.ok = False
        response.text = "Too Many Requests"
        response.json.side_effect = ValueError("No JSON")
        mock_post.return_value = response

        with pytest.raises(GeminiAPIError) as exc_info:
            client.generate_blog_post("Pancakes")

        assert exc_info.value.payload == {'error': {'code': 429, 'message': 'Too Many Requests'}}
        assert manager.current_slot_index == 2

    @patch('requests.Session.post')
    def test_unparseable_content_counts_as_key_success(self, mock_post, client, manager):
        """解析できない出力はDataProcessingError（キーは成功扱い）"""
        mock_post.return_value = gemini_response("Sorry, I cannot help with that.")

        with pytest.raises(DataProcessingError):
            client.generate_blog_post("Pancakes")

        assert manager.get_slot(1).request_count == 1
        assert manager.get_slot(1).error_count == 0

    @patch('requests.Session.post')
    def test_missing_candidates(self, mock_post, client):
        """候補がない場合はDataProcessingError"""
        response = gemini_response("")
        response.json.return_value = {'candidates': []}
        mock_post.return_value = response

        with pytest.raises(DataProcessingError):
            client.generate_blog_post("Pancakes")

    @patch('requests.Session.post')
    def test_non_list_fields_default_to_empty(self, mock_post, client):
        """リストでない材料・手順は空リスト"""
        text = json.dumps({'content': 'Body', 'ingredients': 'flour, eggs'})
        mock_post.return_value = gemini_response(text)

        post = client.generate_blog_post("Pancakes")

        assert post['content'] == 'Body'
        assert post['excerpt'] == ''
        assert post['ingredients'] == []
        assert post['instructions'] == []

    @patch('requests.Session.post')
    def test_pinterest_description_truncated(self, mock_post, client):
        """ピン説明文は500文字に制限"""
        mock_post.return_value = gemini_response("  " + "a" * 600 + "  ")

        description = client.generate_pinterest_description("Pancakes", "Fluffy")

        assert len(description) == 500
        generation_config = mock_post.call_args[1]['json']['generationConfig']
        assert generation_config == {'temperature': 0.8, 'maxOutputTokens': 500}

    @patch('requests.Session.post')
    def test_pinterest_description_empty_response(self, mock_post, client):
        """ピン説明文は空レスポンスなら空文字"""
        response = gemini_response("")
        response.json.return_value = {'candidates': []}
        mock_post.return_value = response

        assert client.generate_pinterest_description("Pancakes", "Fluffy") == ''

    @patch('requests.Session.post')
    def test_missing_key_is_not_reported(self, mock_post):
        """キー未設定はリクエストも報告もせず送出"""
        manager = KeyRotationManager(pool_size=2, key_resolver={}.get)
        client = GeminiAPI(rotation_manager=manager)

        with pytest.raises(MissingAPIKeyError):
            client.generate_blog_post("Pancakes")

        mock_post.assert_not_called()
        assert manager.get_slot(1).error_count == 0

    def test_get_rotation_status(self, client, manager):
        """ローテーション状態を委譲"""
        assert client.get_rotation_status() == manager.get_status()

    def test_context_manager_closes_session(self, client):
        """コンテキストマネージャー終了時にセッションをクローズ"""
        with client:
            session = client.session
        assert client._session is None
        assert session is not None
