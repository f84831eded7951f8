"""
外部APIクライアント (Gemini, Google Custom Search)
"""
