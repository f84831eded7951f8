"""
Gemini APIエラー分類

プロバイダ固有のステータスコード・文字列判定はすべてこのモジュールに閉じ込め、
キーローテーション管理側はプロバイダに依存しない形にする。
"""
import re
import logging
from enum import Enum
from typing import Any, List, Optional, Pattern

logger = logging.getLogger(__name__)


class FailureCategory(Enum):
    """失敗カテゴリの定義"""
    RATE_LIMIT = "rate_limit"
    GENERIC = "generic"


RATE_LIMIT_STATUS_CODES = frozenset([429])

# レート制限・クォータ枯渇を示すパターン
RATE_LIMIT_PATTERNS: List[Pattern[str]] = [
    re.compile(r'\b429\b'),
    re.compile(r'\brate[\s_-]?limit', re.IGNORECASE),
    re.compile(r'resource[\s_]?exhausted', re.IGNORECASE),
    # "quota project" 等の設定エラーは対象外
    re.compile(r'quota[\s_-]?(exceeded|exhausted)', re.IGNORECASE),
    re.compile(r'exceeded\b.*\bquota', re.IGNORECASE),
    re.compile(r'quota\b.*\bexhaust', re.IGNORECASE),
    re.compile(r'too many requests', re.IGNORECASE),
]

# ネストしたエラーペイロードの探索深さ上限
_MAX_PAYLOAD_DEPTH = 5


def classify_failure(failure_detail: Any) -> FailureCategory:
    """
    失敗内容をレート制限系か一般エラーかに分類

    Args:
        failure_detail: 例外、HTTPステータスコード、Geminiのエラーボディ(dict)、
            またはエラーメッセージ文字列

    Returns:
        FailureCategory
    """
    if failure_detail is None:
        return FailureCategory.GENERIC

    if _has_rate_limit_status(failure_detail):
        return FailureCategory.RATE_LIMIT

    if _matches_rate_limit_text(_describe(failure_detail)):
        return FailureCategory.RATE_LIMIT

    return FailureCategory.GENERIC


def is_rate_limit(failure_detail: Any) -> bool:
    """レート制限系の失敗かどうか"""
    return classify_failure(failure_detail) is FailureCategory.RATE_LIMIT


def _has_rate_limit_status(detail: Any, depth: int = 0) -> bool:
    """ステータスコード・ペイロードからレート制限を判定"""
    if depth > _MAX_PAYLOAD_DEPTH:
        return False

    if isinstance(detail, bool):
        return False

    if isinstance(detail, int):
        return detail in RATE_LIMIT_STATUS_CODES

    if isinstance(detail, dict):
        for key in ('code', 'status', 'status_code'):
            if key in detail and _has_rate_limit_status(detail[key], depth + 1):
                return True
        error_body = detail.get('error')
        if error_body is not None and _has_rate_limit_status(error_body, depth + 1):
            return True
        return False

    if isinstance(detail, str):
        return detail.strip() == '429' or _matches_rate_limit_text(detail)

    # requests.HTTPError / GeminiAPIError / google.api_core 例外など
    for attr in ('status_code', 'code'):
        value = _status_value(getattr(detail, attr, None))
        if value in RATE_LIMIT_STATUS_CODES:
            return True

    response = getattr(detail, 'response', None)
    if response is not None:
        value = _status_value(getattr(response, 'status_code', None))
        if value in RATE_LIMIT_STATUS_CODES:
            return True

    payload = getattr(detail, 'payload', None)
    if payload is not None and _has_rate_limit_status(payload, depth + 1):
        return True

    return False


def _status_value(value: Any) -> Optional[int]:
    """属性値をHTTPステータスコードとして解釈"""
    if callable(value):
        # grpc の code() のようなメソッドは対象外
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _describe(detail: Any) -> str:
    """分類用の文字列表現を取得"""
    if isinstance(detail, str):
        return detail

    if isinstance(detail, BaseException):
        parts = [type(detail).__name__, str(detail)]
        response = getattr(detail, 'response', None)
        if response is not None:
            reason = getattr(response, 'reason', None)
            if isinstance(reason, str):
                parts.append(reason)
        return ' '.join(parts)

    try:
        return str(detail)
    except Exception:
        logger.debug("エラー詳細を文字列化できませんでした", exc_info=True)
        return ''


def _matches_rate_limit_text(text: str) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in RATE_LIMIT_PATTERNS)
