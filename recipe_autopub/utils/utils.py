"""
共通ユーティリティ関数
"""
import logging
import sys
import os
from datetime import datetime
from typing import Any, Dict, Optional


def safe_get_nested(data: Any, *keys, default=None) -> Any:
    """
    安全なネストされた辞書・リストアクセス

    Args:
        data: 辞書またはリスト
        *keys: アクセスするキー（リストの場合はインデックス）のパス
        default: デフォルト値

    Returns:
        取得した値またはデフォルト値
    """
    current = data
    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and isinstance(key, int) and -len(current) <= key < len(current):
            current = current[key]
        else:
            return default
    return current


def setup_logging(log_level: str = 'INFO', log_dir: str = 'logs') -> logging.Logger:
    """
    ログ設定のセットアップ

    Args:
        log_level: ログレベル
        log_dir: ログディレクトリ

    Returns:
        設定済みのロガー
    """
    from .constants import Constants

    os.makedirs(log_dir, exist_ok=True)

    # ログファイル名（日付付き）
    log_file = os.path.join(log_dir, f'recipe_autopub_{datetime.now().strftime(Constants.LOG_DATE_FORMAT)}.log')

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=Constants.LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def normalize_string(text: Optional[str]) -> str:
    """
    文字列の正規化（タイトルや検索クエリ用）

    Args:
        text: 正規化する文字列

    Returns:
        正規化された文字列
    """
    if not text:
        return ""

    # 前後の空白を削除し、内部の連続空白を単一空白に変換
    return ' '.join(text.strip().split())


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """
    機密情報をマスク（末尾のみ表示）

    Args:
        value: マスクする文字列
        visible: 末尾に残す文字数

    Returns:
        マスク済み文字列、未設定なら「未設定」
    """
    if not value:
        return "未設定"

    masked = '*' * min(len(value), 8)
    if len(value) > visible:
        masked += value[-visible:]
    return masked


def mask_config_section(section: Dict[str, Any]) -> Dict[str, Any]:
    """設定セクション内の機密項目をマスク"""
    summary = {}
    for key, value in section.items():
        if any(sensitive in key.lower() for sensitive in ['password', 'api_key', 'secret', 'token']):
            summary[key] = mask_secret(str(value) if value else None)
        else:
            summary[key] = value
    return summary
