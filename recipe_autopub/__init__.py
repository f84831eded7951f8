"""
RecipeAutoPub - レシピブログ自動公開システム

ディレクトリ構造:
- api/: 外部API関連 (Gemini, Google Custom Search)
- core/: コアロジック (APIキーローテーション, コンテンツ生成)
- services/: システムサービス (例外, エラー分類, リソース管理)
- security/: 生成コンテンツのサニタイゼーション
- utils/: 定数とユーティリティ関数
- config/: 設定管理
"""

__version__ = "1.0.0"
