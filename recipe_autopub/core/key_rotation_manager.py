"""
Gemini APIキーローテーション管理

固定サイズのキープール（スロット）を保持し、呼び出し側から成功・失敗の報告を
受けてアクティブスロットを切り替える。レート制限系の失敗はスロットを
ローテーション対象外にし、一般エラーは閾値到達時のみ切り替える。
全スロットがレート制限に達した場合はプール全体をリセットしてスロット1に戻る。
"""
import os
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..services.error_classifier import FailureCategory, classify_failure
from ..services.exceptions import MissingAPIKeyError
from ..utils.constants import Constants
from ..utils.utils import mask_secret

logger = logging.getLogger(__name__)


KeyResolver = Callable[[int], Optional[str]]


@dataclass
class CredentialSlot:
    """キープール内の1スロットの状態"""
    slot_index: int
    request_count: int = 0
    error_count: int = 0
    last_used_at: datetime = field(default_factory=datetime.now)
    rate_limit_reached: bool = False

    def clear(self) -> None:
        """プールリセット時の初期化（last_used_atは保持）"""
        self.request_count = 0
        self.error_count = 0
        self.rate_limit_reached = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slot_index': self.slot_index,
            'request_count': self.request_count,
            'error_count': self.error_count,
            'last_used_at': self.last_used_at.isoformat(),
            'rate_limit_reached': self.rate_limit_reached,
        }


@dataclass(frozen=True)
class CredentialHandle:
    """アクティブスロットに紐づくAPIキー"""
    slot_index: int
    api_key: str = field(repr=False)

    @property
    def masked_key(self) -> str:
        return mask_secret(self.api_key)


class KeyRotationManager:
    """Gemini APIキーのローテーション管理"""

    def __init__(
        self,
        pool_size: int = Constants.KEY_POOL_SIZE,
        error_threshold: int = Constants.ERROR_THRESHOLD,
        key_resolver: Optional[KeyResolver] = None,
        key_env_prefix: str = Constants.GEMINI_KEY_ENV_PREFIX
    ):
        """
        キーローテーション管理の初期化

        Args:
            pool_size: スロット数
            error_threshold: ローテーションを行う一般エラー回数
            key_resolver: スロット番号からAPIキーを解決する関数（Noneの場合は環境変数）
            key_env_prefix: 環境変数名のプレフィックス（{prefix}_{スロット番号}）

        Raises:
            ValueError: pool_size / error_threshold が1未満の場合
        """
        if pool_size < 1:
            raise ValueError(f"pool_size は1以上である必要があります: {pool_size}")
        if error_threshold < 1:
            raise ValueError(f"error_threshold は1以上である必要があります: {error_threshold}")

        self.pool_size = pool_size
        self.error_threshold = error_threshold
        self.key_env_prefix = key_env_prefix
        self._key_resolver = key_resolver or self._resolve_from_env

        self._lock = threading.Lock()
        self._slots: Dict[int, CredentialSlot] = {
            index: CredentialSlot(slot_index=index) for index in range(1, pool_size + 1)
        }
        self._current_slot_index = 1

        logger.info(f"キーローテーション管理初期化完了: {pool_size}スロット, エラー閾値{error_threshold}")

    @property
    def current_slot_index(self) -> int:
        with self._lock:
            return self._current_slot_index

    def key_name(self, slot_index: int) -> str:
        """スロットに対応する環境変数名"""
        return f"{self.key_env_prefix}_{slot_index}"

    def current_credential(self) -> CredentialHandle:
        """
        アクティブスロットのAPIキーを取得（プール状態は変更しない）

        Returns:
            CredentialHandle

        Raises:
            MissingAPIKeyError: アクティブスロットのキーが未設定の場合
        """
        with self._lock:
            slot_index = self._current_slot_index

        api_key = self._key_resolver(slot_index)
        if not api_key:
            logger.error(f"APIキー未設定: スロット{slot_index} ({self.key_name(slot_index)})")
            raise MissingAPIKeyError(slot_index, self.key_name(slot_index))

        return CredentialHandle(slot_index=slot_index, api_key=api_key)

    def report_success(self) -> None:
        """アクティブスロットでの呼び出し成功を記録"""
        with self._lock:
            slot = self._slots[self._current_slot_index]
            slot.request_count += 1
            slot.last_used_at = datetime.now()
            logger.debug(f"スロット{slot.slot_index} 成功 (累計{slot.request_count}件)")

    def report_failure(self, failure_detail: Any = None) -> None:
        """
        アクティブスロットでの呼び出し失敗を記録し、必要ならローテーション

        Args:
            failure_detail: プロバイダのエラー（例外、ステータスコード、エラーボディ等）
        """
        category = classify_failure(failure_detail)

        with self._lock:
            slot = self._slots[self._current_slot_index]
            slot.error_count += 1
            slot.last_used_at = datetime.now()

            if category is FailureCategory.RATE_LIMIT:
                logger.warning(f"スロット{slot.slot_index} でレート制限を検出")
                slot.rate_limit_reached = True
                self._rotate()
            elif slot.error_count >= self.error_threshold:
                logger.warning(
                    f"スロット{slot.slot_index} のエラー回数が閾値に到達 ({slot.error_count}/{self.error_threshold})"
                )
                self._rotate()
            else:
                logger.debug(
                    f"スロット{slot.slot_index} エラー記録 ({slot.error_count}/{self.error_threshold}): {failure_detail}"
                )

    def reset(self) -> None:
        """プール全体をリセットしてスロット1に戻す"""
        with self._lock:
            self._reset_pool()

    def get_slot(self, slot_index: int) -> CredentialSlot:
        """スロット状態のコピーを取得"""
        if slot_index not in self._slots:
            raise ValueError(f"スロット番号が範囲外です: {slot_index} (1-{self.pool_size})")
        with self._lock:
            return replace(self._slots[slot_index])

    def get_status(self) -> Dict[str, Any]:
        """ローテーション状態のスナップショット"""
        with self._lock:
            return {
                'current_slot_index': self._current_slot_index,
                'pool_size': self.pool_size,
                'error_threshold': self.error_threshold,
                'slots': [self._slots[index].to_dict() for index in sorted(self._slots)],
            }

    def _rotate(self) -> None:
        """次の利用可能スロットへ切り替え（ロック保持中に呼ぶこと）"""
        for offset in range(1, self.pool_size + 1):
            candidate = (self._current_slot_index - 1 + offset) % self.pool_size + 1
            if not self._slots[candidate].rate_limit_reached:
                previous = self._current_slot_index
                self._current_slot_index = candidate
                logger.warning(f"スロット{previous} → スロット{candidate} にローテーション")
                return

        logger.warning("全スロットがレート制限に到達したためローテーションをリセットします")
        self._reset_pool()

    def _reset_pool(self) -> None:
        for slot in self._slots.values():
            slot.clear()
        self._current_slot_index = 1

    def _resolve_from_env(self, slot_index: int) -> Optional[str]:
        return os.environ.get(self.key_name(slot_index))
