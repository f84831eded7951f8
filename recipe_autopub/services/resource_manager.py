"""
リソース管理のためのユーティリティ
"""
import logging
import threading
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)


class SessionMixin:
    """HTTPセッション管理のためのミックスイン"""

    default_headers: Dict[str, str] = {}

    def __init__(self, *args, timeout: Optional[float] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._session: Optional[requests.Session] = None
        self._session_lock = threading.Lock()  # セッション生成用ロック
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        """遅延初期化されたセッション（複数スレッドで共有）"""
        with self._session_lock:
            if self._session is None:
                self._session = requests.Session()
                self._session.headers.update(self.default_headers)
            return self._session

    def close_session(self) -> None:
        """セッションのクリーンアップ"""
        with self._session_lock:
            session, self._session = self._session, None
        if session:
            session.close()
            logger.debug(f"{self.__class__.__name__} session closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_session()
