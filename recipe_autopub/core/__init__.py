"""
コアロジック (APIキーローテーション, コンテンツ生成)
"""
