"""
入力検証・サニタイゼーションシステム - 生成コンテンツの無害化
"""
import re
import html
import logging
from typing import Any, Dict, List

import bleach

logger = logging.getLogger(__name__)


class InputValidator:
    """生成コンテンツの検証・サニタイゼーション"""

    # 許可されるHTMLタグ（WordPress投稿用）
    ALLOWED_HTML_TAGS = frozenset([
        'p', 'br', 'strong', 'em', 'u', 'h2', 'h3', 'h4', 'h5', 'h6',
        'ul', 'ol', 'li', 'blockquote', 'a', 'img', 'div', 'span'
    ])

    ALLOWED_HTML_ATTRIBUTES = {
        'a': ['href', 'title', 'target'],
        'img': ['src', 'alt', 'title', 'width', 'height'],
        'div': ['class'],
        'span': ['class']
    }

    ALLOWED_PROTOCOLS = frozenset(['http', 'https', 'mailto'])

    # 中身ごと除去するタグ
    DANGEROUS_PATTERNS = [
        r'<script[^>]*>.*?</script>',
        r'<style[^>]*>.*?</style>',
        r'<iframe[^>]*>.*?</iframe>',
        r'<object[^>]*>.*?</object>',
        r'<form[^>]*>.*?</form>',
    ]

    MAX_CONTENT_LENGTH = 50000
    MAX_EXCERPT_LENGTH = 1000
    MAX_LIST_ITEM_LENGTH = 500

    def sanitize_html(self, content: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
        """
        記事本文のサニタイゼーション

        Args:
            content: 生成された本文
            max_length: 最大文字数

        Returns:
            許可タグのみを残した本文
        """
        if not content or not isinstance(content, str):
            return ""

        sanitized = content
        for pattern in self.DANGEROUS_PATTERNS:
            sanitized = re.sub(pattern, '', sanitized, flags=re.IGNORECASE | re.DOTALL)

        sanitized = bleach.clean(
            sanitized,
            tags=self.ALLOWED_HTML_TAGS,
            attributes=self.ALLOWED_HTML_ATTRIBUTES,
            protocols=self.ALLOWED_PROTOCOLS,
            strip=True
        )

        if len(sanitized) > max_length:
            logger.warning(f"本文が長すぎるため切り詰めます ({len(sanitized)} → {max_length}文字)")
            sanitized = sanitized[:max_length]

        return sanitized.strip()

    def sanitize_text(self, text: Any, max_length: int = MAX_EXCERPT_LENGTH) -> str:
        """タグを含まないプレーンテキストに変換"""
        if text is None:
            return ""

        cleaned = bleach.clean(str(text), tags=set(), strip=True)
        cleaned = html.unescape(cleaned)
        cleaned = ' '.join(cleaned.split())
        return cleaned[:max_length]

    def sanitize_text_list(self, items: List[Any]) -> List[str]:
        """材料・手順リストのサニタイゼーション（空要素は除外）"""
        sanitized = [self.sanitize_text(item, self.MAX_LIST_ITEM_LENGTH) for item in items or []]
        return [item for item in sanitized if item]

    def validate_generated_post(self, post: Dict[str, Any]) -> Dict[str, Any]:
        """
        Geminiが生成した記事データの検証とサニタイゼーション

        Args:
            post: content, excerpt, ingredients, instructions を含む辞書

        Returns:
            サニタイズ済みの記事データ
        """
        validated = {
            'content': self.sanitize_html(post.get('content', '')),
            'excerpt': self.sanitize_text(post.get('excerpt', '')),
            'ingredients': self.sanitize_text_list(post.get('ingredients', [])),
            'instructions': self.sanitize_text_list(post.get('instructions', [])),
        }

        if not validated['content']:
            logger.warning("サニタイズ後の本文が空になりました")

        return validated
